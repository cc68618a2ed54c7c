from datetime import date
from typing import Callable
from models.transaction import Transaction
from database.transaction_dao import TransactionDAO
from utils.constants import DEFAULT_CURRENCY, DEFAULT_FETCH_LIMIT, EXCHANGE_RATE_TO_USD, TRANSACTION_TYPES
from utils.date_helpers import date_range_for_filter, parse_date, to_date, today


class TransactionService:
    def __init__(self, tx_dao: TransactionDAO, clock: Callable[[], date] = today):
        self._dao = tx_dao
        self._clock = clock

    def fetch(
        self,
        user_id: str,
        time_filter: str = "week",
        limit: int = DEFAULT_FETCH_LIMIT,
        reference: date | None = None,
    ) -> list[Transaction]:
        """Transactions dated on or after the start of the current day/week/month/year, newest first.

        No upper bound: future-dated rows are included.
        """
        start, _ = date_range_for_filter(time_filter, reference or self._clock())
        return self._dao.get_for_user(user_id, start, None, limit)

    def create(
        self,
        user_id: str,
        amount: float,
        currency: str,
        description: str,
        category_id: str,
        type_: str,
        date: date | str | None = None,
    ) -> Transaction:
        tx_date = self._validate(type_, amount, date)
        return self._dao.insert_transaction(Transaction(
            id=None,
            user_id=user_id,
            category_id=category_id,
            type=type_,
            amount=amount,
            currency=currency or DEFAULT_CURRENCY,
            description=description or "",
            date=tx_date,
            exchange_rate_to_usd=EXCHANGE_RATE_TO_USD,
        ))

    def get_by_id(self, tx_id: str) -> Transaction | None:
        return self._dao.get_by_id(tx_id)

    def delete(self, tx_id: str):
        self._dao.delete(tx_id)

    def _validate(self, type_: str, amount: float, date_value) -> date:
        if type_ not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid type: {type_}")
        if amount is None or amount <= 0:
            raise ValueError("Amount must be positive.")
        if date_value is None or date_value == "":
            return self._clock()
        if isinstance(date_value, str):
            parsed = parse_date(date_value)
            if not parsed:
                raise ValueError("Invalid date format. Use YYYY-MM-DD.")
            return parsed
        return to_date(date_value)
