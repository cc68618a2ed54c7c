from datetime import date
from typing import Callable
from models.recurring_template import RecurringTemplate
from database.template_dao import TemplateDAO
from services.occurrence_scheduler import next_occurrence
from utils.constants import DEFAULT_CURRENCY, FREQUENCIES, TRANSACTION_TYPES
from utils.date_helpers import parse_date, to_date, today
from utils.exceptions import InvalidTemplate


def _as_date(value: date | str | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return parse_date(value)
    return to_date(value)


class RecurringService:
    def __init__(self, template_dao: TemplateDAO, clock: Callable[[], date] = today):
        self._dao = template_dao
        self._clock = clock

    def get_all(self, user_id: str) -> list[RecurringTemplate]:
        return self._dao.get_all(user_id, active_only=False)

    def get_active(self, user_id: str) -> list[RecurringTemplate]:
        return self._dao.list_active_templates(user_id)

    def get_by_id(self, template_id: str) -> RecurringTemplate | None:
        return self._dao.get_by_id(template_id)

    def create(
        self,
        user_id: str,
        category_id: str,
        type_: str,
        amount: float,
        description: str,
        start_date: date | str,
        frequency: str,
        end_date: date | str | None = None,
        currency: str = DEFAULT_CURRENCY,
    ) -> RecurringTemplate:
        start = _as_date(start_date)
        end = _as_date(end_date)
        if end_date and end is None:
            raise InvalidTemplate("Invalid end date.")
        self._validate(type_, amount, frequency, start, end)
        return self._dao.create(
            user_id=user_id, category_id=category_id, type_=type_,
            amount=amount, currency=currency or DEFAULT_CURRENCY,
            description=description, start_date=start,
            frequency=frequency, end_date=end,
        )

    def update(self, template_id: str, **updates) -> RecurringTemplate:
        """Change amount, description, frequency, end_date or is_active."""
        current = self._dao.get_by_id(template_id)
        if current is None:
            raise ValueError(f"Recurring template {template_id} not found.")
        if "end_date" in updates:
            raw = updates["end_date"]
            updates["end_date"] = _as_date(raw)
            if raw and updates["end_date"] is None:
                raise InvalidTemplate("Invalid end date.")
        self._validate(
            current.type,
            updates.get("amount", current.amount),
            updates.get("frequency", current.frequency),
            current.start_date,
            updates.get("end_date", current.end_date),
        )
        return self._dao.update(template_id, **updates)

    def deactivate(self, template_id: str):
        self._dao.set_active(template_id, False)

    def delete(self, template_id: str):
        self._dao.delete(template_id)

    def next_due_date(self, template: RecurringTemplate, after: date | None = None) -> date | None:
        """Return the next date the template is due after `after` (default: today)."""
        if not template.is_active:
            return None
        return next_occurrence(template, after or self._clock())

    def _validate(self, type_, amount, frequency, start_date, end_date):
        if type_ not in TRANSACTION_TYPES:
            raise InvalidTemplate("Type must be income or expense.")
        if amount is None or amount <= 0:
            raise InvalidTemplate("Amount must be positive.")
        if frequency not in FREQUENCIES:
            raise InvalidTemplate("Invalid frequency.")
        if not start_date:
            raise InvalidTemplate("Invalid start date.")
        if end_date and end_date < start_date:
            raise InvalidTemplate("End date cannot be before start date.")
