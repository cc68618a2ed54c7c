from typing import Optional
from database.db_manager import DatabaseManager, new_id, store_errors
from models.category import Category
from utils.constants import DEFAULT_CATEGORIES


class CategoryDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> Category:
        return Category(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            transaction_type=row["transaction_type"],
            icon=row["icon"],
            color=row["color"],
            is_custom=bool(row["is_custom"]),
            created_at=row["created_at"],
        )

    def get_for_user(self, user_id: str, transaction_type: str | None = None) -> list[Category]:
        sql = "SELECT * FROM categories WHERE user_id = ?"
        params: list = [user_id]
        if transaction_type:
            sql += " AND transaction_type = ?"
            params.append(transaction_type)
        sql += " ORDER BY is_custom, name"
        with store_errors("list categories"):
            rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._row_to_model(r) for r in rows]

    def get_by_id(self, category_id: str) -> Optional[Category]:
        with store_errors("get category"):
            row = self._db.get_connection().execute(
                "SELECT * FROM categories WHERE id = ?", (category_id,)
            ).fetchone()
        return self._row_to_model(row) if row else None

    def create(
        self,
        user_id: str,
        name: str,
        transaction_type: str,
        icon: str = "",
        color: str = "#666666",
        is_custom: bool = True,
    ) -> Category:
        category_id = new_id()
        with store_errors("create category"), self._db.transaction() as conn:
            conn.execute(
                """INSERT INTO categories
                   (id, user_id, name, icon, color, is_custom, transaction_type)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (category_id, user_id, name, icon, color, 1 if is_custom else 0, transaction_type),
            )
        return self.get_by_id(category_id)

    def seed_defaults(self, user_id: str) -> int:
        """Insert the built-in categories for a user. Returns the number added."""
        added = 0
        with store_errors("seed categories"), self._db.transaction() as conn:
            for cat in DEFAULT_CATEGORIES:
                cursor = conn.execute(
                    """INSERT OR IGNORE INTO categories
                       (id, user_id, name, icon, color, is_custom, transaction_type)
                       VALUES (?, ?, ?, ?, ?, 0, ?)""",
                    (new_id(), user_id, cat["name"], cat["icon"], cat["color"], cat["transaction_type"]),
                )
                added += cursor.rowcount
        return added

    def update(self, category_id: str, name: str, icon: str, color: str) -> Optional[Category]:
        with store_errors("update category"), self._db.transaction() as conn:
            conn.execute(
                "UPDATE categories SET name = ?, icon = ?, color = ? WHERE id = ?",
                (name, icon, color, category_id),
            )
        return self.get_by_id(category_id)

    def is_in_use(self, category_id: str) -> bool:
        """True if any transaction, recurring template or goal points at the category."""
        with store_errors("check category usage"):
            row = self._db.get_connection().execute(
                """SELECT EXISTS(SELECT 1 FROM transactions WHERE category_id = ?)
                       OR EXISTS(SELECT 1 FROM recurring_templates WHERE category_id = ?)
                       OR EXISTS(SELECT 1 FROM goals WHERE category_id = ?) AS used""",
                (category_id, category_id, category_id),
            ).fetchone()
        return bool(row["used"])

    def delete(self, category_id: str):
        with store_errors("delete category"), self._db.transaction() as conn:
            conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))
