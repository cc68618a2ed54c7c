from datetime import date
from typing import Optional
from database.db_manager import DatabaseManager, new_id, store_errors
from models.goal import Goal
from utils.constants import UNCATEGORIZED
from utils.date_helpers import format_date, parse_date

UPDATABLE_FIELDS = ("target_amount", "timeframe", "start_date", "end_date", "is_active")


class GoalDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Goal:
        return Goal(
            id=row["id"],
            user_id=row["user_id"],
            category_id=row["category_id"],
            type=row["type"],
            target_amount=row["target_amount"],
            currency=row["currency"],
            timeframe=row["timeframe"],
            start_date=parse_date(row["start_date"]) if row["start_date"] else None,
            end_date=parse_date(row["end_date"]) if row["end_date"] else None,
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
            category_name=row["category_name"] or UNCATEGORIZED,
        )

    def _select(self) -> str:
        return """
            SELECT g.*,
                   c.name AS category_name
            FROM goals g
            LEFT JOIN categories c ON g.category_id = c.id
        """

    def get_all(self, user_id: str, active_only: bool = True) -> list[Goal]:
        sql = self._select() + " WHERE g.user_id = ?"
        if active_only:
            sql += " AND g.is_active = 1"
        sql += " ORDER BY g.created_at DESC, g.rowid DESC"
        with store_errors("list goals"):
            rows = self._db.get_connection().execute(sql, (user_id,)).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, goal_id: str, user_id: str | None = None) -> Optional[Goal]:
        sql = self._select() + " WHERE g.id = ?"
        params: list = [goal_id]
        if user_id is not None:
            sql += " AND g.user_id = ?"
            params.append(user_id)
        with store_errors("get goal"):
            row = self._db.get_connection().execute(sql, params).fetchone()
        return self._row_to_model(row) if row else None

    def create(
        self,
        user_id: str,
        category_id: str,
        type_: str,
        target_amount: float,
        currency: str,
        timeframe: str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Goal:
        goal_id = new_id()
        with store_errors("create goal"), self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO goals
                   (id, user_id, category_id, type, target_amount, currency,
                    timeframe, start_date, end_date)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    goal_id, user_id, category_id, type_, target_amount, currency, timeframe,
                    format_date(start_date) if start_date else None,
                    format_date(end_date) if end_date else None,
                ),
            )
        return self.get_by_id(goal_id)

    def update(self, goal_id: str, **updates) -> Optional[Goal]:
        unknown = set(updates) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        if not updates:
            return self.get_by_id(goal_id)

        assignments = []
        params: list = []
        for field in UPDATABLE_FIELDS:
            if field not in updates:
                continue
            value = updates[field]
            if field in ("start_date", "end_date"):
                value = format_date(value) if value else None
            elif field == "is_active":
                value = 1 if value else 0
            assignments.append(f"{field} = ?")
            params.append(value)
        params.append(goal_id)

        with store_errors("update goal"), self._db.transaction() as conn:
            conn.execute(f"UPDATE goals SET {', '.join(assignments)} WHERE id = ?", params)
        return self.get_by_id(goal_id)

    def delete(self, goal_id: str):
        with store_errors("delete goal"), self._db.transaction() as conn:
            conn.execute("DELETE FROM goals WHERE id = ?", (goal_id,))
