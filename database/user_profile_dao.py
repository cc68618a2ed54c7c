from typing import Optional
from database.db_manager import DatabaseManager, store_errors
from models.user_profile import UserProfile
from utils.constants import DEFAULT_CURRENCY
from utils.date_helpers import now_timestamp


class UserProfileDAO:
    def __init__(self, db: DatabaseManager):
        self._db = db

    def _row_to_model(self, row) -> UserProfile:
        return UserProfile(
            id=row["id"],
            default_currency=row["default_currency"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        with store_errors("get user profile"):
            row = self._db.get_connection().execute(
                "SELECT * FROM user_profiles WHERE id = ?", (user_id,)
            ).fetchone()
        return self._row_to_model(row) if row else None

    def create(self, user_id: str, default_currency: str = DEFAULT_CURRENCY) -> UserProfile:
        with store_errors("create user profile"), self._db.transaction() as conn:
            conn.execute(
                "INSERT INTO user_profiles (id, default_currency) VALUES (?, ?)",
                (user_id, default_currency),
            )
        return self.get_by_id(user_id)

    def update(self, user_id: str, default_currency: str) -> Optional[UserProfile]:
        with store_errors("update user profile"), self._db.transaction() as conn:
            conn.execute(
                "UPDATE user_profiles SET default_currency = ?, updated_at = ? WHERE id = ?",
                (default_currency, now_timestamp(), user_id),
            )
        return self.get_by_id(user_id)
