from datetime import date
from typing import Optional
from database.db_manager import DatabaseManager, new_id, store_errors
from models.recurring_template import RecurringTemplate
from utils.constants import EXCHANGE_RATE_TO_USD, UNCATEGORIZED
from utils.date_helpers import parse_date, format_date, now_timestamp

# Columns a caller may change after creation
UPDATABLE_FIELDS = ("amount", "description", "frequency", "end_date", "is_active")


class TemplateDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> RecurringTemplate:
        return RecurringTemplate(
            id=row["id"],
            user_id=row["user_id"],
            category_id=row["category_id"],
            type=row["type"],
            amount=row["amount"],
            currency=row["currency"],
            description=row["description"],
            start_date=parse_date(row["start_date"]),
            frequency=row["frequency"],
            end_date=parse_date(row["end_date"]) if row["end_date"] else None,
            is_active=bool(row["is_active"]),
            exchange_rate_to_usd=row["exchange_rate_to_usd"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            category_name=row["category_name"] or UNCATEGORIZED,
        )

    def _select(self) -> str:
        return """
            SELECT r.*,
                   c.name AS category_name
            FROM recurring_templates r
            LEFT JOIN categories c ON r.category_id = c.id
        """

    def list_active_templates(self, user_id: str) -> list[RecurringTemplate]:
        return self.get_all(user_id, active_only=True)

    def get_all(self, user_id: str, active_only: bool = True) -> list[RecurringTemplate]:
        sql = self._select() + " WHERE r.user_id = ?"
        if active_only:
            sql += " AND r.is_active = 1"
        sql += " ORDER BY r.created_at DESC, r.rowid DESC"
        with store_errors("list templates"):
            rows = self._db.get_connection().execute(sql, (user_id,)).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, template_id: str) -> Optional[RecurringTemplate]:
        with store_errors("get template"):
            row = self._db.get_connection().execute(
                self._select() + " WHERE r.id = ?", (template_id,)
            ).fetchone()
        return self._row_to_model(row) if row else None

    def create(
        self,
        user_id: str,
        category_id: str,
        type_: str,
        amount: float,
        currency: str,
        description: str,
        start_date: date,
        frequency: str,
        end_date: date | None = None,
    ) -> RecurringTemplate:
        template_id = new_id()
        with store_errors("create template"), self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO recurring_templates
                   (id, user_id, category_id, type, amount, currency,
                    exchange_rate_to_usd, description, start_date, frequency, end_date)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    template_id, user_id, category_id, type_, amount, currency,
                    EXCHANGE_RATE_TO_USD, description or "", format_date(start_date),
                    frequency, format_date(end_date) if end_date else None,
                ),
            )
        return self.get_by_id(template_id)

    def update(self, template_id: str, **updates) -> Optional[RecurringTemplate]:
        """Partial update limited to UPDATABLE_FIELDS; always refreshes updated_at."""
        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        assignments = []
        params: list = []
        for field in UPDATABLE_FIELDS:
            if field not in updates:
                continue
            value = updates[field]
            if field == "end_date":
                value = format_date(value) if value else None
            elif field == "is_active":
                value = 1 if value else 0
            elif field == "description":
                value = value or ""
            assignments.append(f"{field} = ?")
            params.append(value)
        assignments.append("updated_at = ?")
        params.append(now_timestamp())
        params.append(template_id)

        with store_errors("update template"), self._db.transaction() as conn:
            conn.execute(
                f"UPDATE recurring_templates SET {', '.join(assignments)} WHERE id = ?",
                params,
            )
        return self.get_by_id(template_id)

    def set_active(self, template_id: str, is_active: bool):
        with store_errors("set template active"), self._db.transaction() as conn:
            conn.execute(
                "UPDATE recurring_templates SET is_active = ?, updated_at = ? WHERE id = ?",
                (1 if is_active else 0, now_timestamp(), template_id),
            )

    def delete(self, template_id: str):
        with store_errors("delete template"), self._db.transaction() as conn:
            conn.execute("DELETE FROM recurring_templates WHERE id = ?", (template_id,))
