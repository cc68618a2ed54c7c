import logging
import threading
import weakref
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable
from database.template_dao import TemplateDAO
from database.transaction_dao import TransactionDAO
from models.recurring_template import RecurringTemplate
from models.transaction import Transaction
from services.occurrence_scheduler import OccurrenceScheduler, check_template
from utils.constants import EXCHANGE_RATE_TO_USD
from utils.date_helpers import format_date, to_date, today as system_today
from utils.exceptions import DuplicateKey, InvalidTemplate, StoreUnavailable

logger = logging.getLogger(__name__)

# One lock per user id, shared by every Materializer in the process.
# Entries disappear once no run holds the lock.
_user_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_user_locks_guard = threading.Lock()


def _lock_for(user_id: str) -> threading.Lock:
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = _user_locks[user_id] = threading.Lock()
        return lock


@dataclass
class MaterializeResult:
    created_count: int = 0
    errors: list[str] = field(default_factory=list)
    created: list[Transaction] = field(default_factory=list)
    skipped_duplicates: int = 0
    cancelled: bool = False


class Materializer:
    """Turns a user's due recurring templates into transactions for one day.

    The pre-insert lookup matches on (user, date, category, amount,
    description, type). It is not atomic with the insert, so two runs can
    both see "no match". Runs for the same user are serialized in-process by
    a per-user lock. Across processes the store's unique
    (user, template, date) index rejects the second insert with DuplicateKey,
    which is counted as already materialized.
    """

    def __init__(
        self,
        template_store: TemplateDAO,
        transaction_store: TransactionDAO,
        clock: Callable[[], date] = system_today,
        scheduler: OccurrenceScheduler | None = None,
    ):
        self._templates = template_store
        self._transactions = transaction_store
        self._clock = clock
        self._scheduler = scheduler or OccurrenceScheduler()

    def materialize_all(
        self,
        user_id: str,
        today: date | datetime | None = None,
        cancel_event: threading.Event | None = None,
    ) -> MaterializeResult:
        """
        Create today's transaction for every due active template of user_id.
        Never raises; failures are collected in MaterializeResult.errors.
        """
        ref = to_date(today or self._clock())
        with _lock_for(user_id):
            return self._run(user_id, ref, cancel_event)

    def _run(
        self, user_id: str, ref: date, cancel_event: threading.Event | None
    ) -> MaterializeResult:
        result = MaterializeResult()
        logger.info("Processing recurring transactions for user %s on %s", user_id, format_date(ref))

        try:
            templates = self._templates.list_active_templates(user_id)
        except Exception as exc:
            logger.error("Could not list recurring templates for user %s: %s", user_id, exc)
            result.errors.append(f"General error: could not list recurring templates: {exc}")
            return result

        if not templates:
            logger.info("No recurring templates found for user %s", user_id)
            return result

        for template in templates:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.warning("Recurring run for user %s cancelled before template %s", user_id, template.id)
                break
            try:
                self._materialize_one(user_id, template, ref, result)
            except Exception as exc:
                logger.exception("Unexpected error processing template %s", template.id)
                result.errors.append(f"Error processing template {template.id}: {exc}")

        logger.info(
            "Recurring transaction processing complete. Created: %d, Errors: %d",
            result.created_count, len(result.errors),
            extra={"extra_fields": {
                "user_id": user_id,
                "created": result.created_count,
                "errors": len(result.errors),
                "duplicates": result.skipped_duplicates,
                "cancelled": result.cancelled,
            }},
        )
        return result

    def _materialize_one(
        self, user_id: str, template: RecurringTemplate, ref: date, result: MaterializeResult
    ):
        if not template.is_active:
            return
        try:
            check_template(template)
        except InvalidTemplate as exc:
            logger.warning("Skipping invalid template %s: %s", template.id, exc)
            result.errors.append(f"Invalid template {template.id}: {exc}")
            return

        if not self._scheduler.is_due(template, ref):
            return

        try:
            existing = self._transactions.find_matching_transaction(
                user_id, ref, template.category_id, template.amount,
                template.description or "", template.type,
            )
        except StoreUnavailable as exc:
            logger.warning("Error checking existing transactions for template %s: %s", template.id, exc)
            result.errors.append(
                f"Error checking existing transactions for template {template.id}: {exc}"
            )
            return

        if existing is not None:
            logger.debug("Transaction already exists for template %s on %s", template.id, format_date(ref))
            result.skipped_duplicates += 1
            return

        instance = Transaction(
            id=None,
            user_id=user_id,
            category_id=template.category_id,
            type=template.type,
            amount=template.amount,
            currency=template.currency,
            description=template.description or "",
            date=ref,
            recurring_template_id=template.id,
            exchange_rate_to_usd=EXCHANGE_RATE_TO_USD,
        )
        try:
            created = self._transactions.insert_transaction(instance)
        except DuplicateKey:
            logger.debug("Template %s was materialized concurrently on %s", template.id, format_date(ref))
            result.skipped_duplicates += 1
            return
        except StoreUnavailable as exc:
            logger.warning("Failed to create transaction for template %s: %s", template.id, exc)
            result.errors.append(f"Failed to create transaction for template {template.id}: {exc}")
            return

        logger.info(
            "Created recurring %s of %.2f %s for template %s",
            created.type, created.amount, created.currency, template.id,
        )
        result.created_count += 1
        result.created.append(created)
