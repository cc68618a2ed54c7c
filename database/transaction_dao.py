import sqlite3
from datetime import date
from typing import Optional
from database.db_manager import DatabaseManager, new_id, store_errors
from models.transaction import Transaction
from utils.constants import DEFAULT_FETCH_LIMIT, UNCATEGORIZED
from utils.date_helpers import parse_date, format_date
from utils.exceptions import DuplicateKey, StoreUnavailable


class TransactionDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Transaction:
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            category_id=row["category_id"],
            type=row["type"],
            amount=row["amount"],
            currency=row["currency"],
            description=row["description"],
            date=parse_date(row["date"]),
            recurring_template_id=row["recurring_template_id"],
            exchange_rate_to_usd=row["exchange_rate_to_usd"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            category_name=row["category_name"] or UNCATEGORIZED,
        )

    def _select(self) -> str:
        return """
            SELECT t.*,
                   c.name AS category_name
            FROM transactions t
            LEFT JOIN categories c ON t.category_id = c.id
        """

    def get_by_id(self, tx_id: str) -> Optional[Transaction]:
        with store_errors("get transaction"):
            row = self._db.get_connection().execute(
                self._select() + " WHERE t.id = ?", (tx_id,)
            ).fetchone()
        return self._row_to_model(row) if row else None

    def get_for_user(
        self,
        user_id: str,
        start_date: date,
        end_date: date | None = None,
        limit: int = DEFAULT_FETCH_LIMIT,
    ) -> list[Transaction]:
        """Newest first; start_date/end_date are inclusive."""
        sql = self._select() + " WHERE t.user_id = ? AND t.date >= ?"
        params: list = [user_id, format_date(start_date)]
        if end_date:
            sql += " AND t.date <= ?"
            params.append(format_date(end_date))
        sql += " ORDER BY t.date DESC, t.created_at DESC, t.rowid DESC LIMIT ?"
        params.append(limit)
        with store_errors("list transactions"):
            rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_template(self, template_id: str) -> list[Transaction]:
        with store_errors("list template transactions"):
            rows = self._db.get_connection().execute(
                self._select() + " WHERE t.recurring_template_id = ? ORDER BY t.date ASC",
                (template_id,),
            ).fetchall()
        return [self._row_to_model(r) for r in rows]

    def find_matching_transaction(
        self,
        user_id: str,
        date_: date,
        category_id: str,
        amount: float,
        description: str,
        type_: str,
    ) -> Optional[Transaction]:
        """First transaction that looks like an already-materialized occurrence, or None."""
        with store_errors("find matching transaction"):
            row = self._db.get_connection().execute(
                self._select() + """
                WHERE t.user_id = ?
                  AND t.date = ?
                  AND t.category_id = ?
                  AND t.amount = ?
                  AND t.description = ?
                  AND t.type = ?
                LIMIT 1
                """,
                (user_id, format_date(date_), category_id, amount, description or "", type_),
            ).fetchone()
        return self._row_to_model(row) if row else None

    def sum_amount(
        self,
        user_id: str,
        category_id: str,
        type_: str,
        start_date: date,
        end_date: date,
    ) -> float:
        """Total amount of a user's transactions in one category between two dates (inclusive)."""
        with store_errors("sum transactions"):
            row = self._db.get_connection().execute(
                """SELECT COALESCE(SUM(amount), 0) AS total
                   FROM transactions
                   WHERE user_id = ? AND category_id = ? AND type = ?
                     AND date >= ? AND date <= ?""",
                (user_id, category_id, type_, format_date(start_date), format_date(end_date)),
            ).fetchone()
        return float(row["total"])

    def insert_transaction(self, instance: Transaction) -> Transaction:
        """Insert and return the stored row.

        Raises DuplicateKey when the (user, template, date) slot is taken.
        """
        tx_id = instance.id or new_id()
        try:
            with self._db.transaction() as conn:
                conn.execute(
                    """INSERT INTO transactions
                       (id, user_id, category_id, type, amount, currency,
                        exchange_rate_to_usd, description, date, recurring_template_id)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        tx_id, instance.user_id, instance.category_id, instance.type,
                        instance.amount, instance.currency, instance.exchange_rate_to_usd,
                        instance.description or "", format_date(instance.date),
                        instance.recurring_template_id,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            if instance.recurring_template_id and "UNIQUE" in str(exc).upper():
                raise DuplicateKey(instance.recurring_template_id, format_date(instance.date)) from exc
            raise StoreUnavailable(str(exc), "insert transaction") from exc
        except sqlite3.Error as exc:
            raise StoreUnavailable(str(exc), "insert transaction") from exc
        stored = self.get_by_id(tx_id)
        if stored is None:
            raise StoreUnavailable(f"row {tx_id} was not found after commit", "insert transaction")
        return stored

    def delete(self, tx_id: str):
        with store_errors("delete transaction"), self._db.transaction() as conn:
            conn.execute("DELETE FROM transactions WHERE id = ?", (tx_id,))
