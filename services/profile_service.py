from database.user_profile_dao import UserProfileDAO
from models.user_profile import UserProfile
from utils.constants import DEFAULT_CURRENCY


def _normalize_currency(code: str) -> str:
    code = (code or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError(f"Invalid currency code: {code!r}")
    return code


class ProfileService:
    def __init__(self, profile_dao: UserProfileDAO):
        self._dao = profile_dao

    def get(self, user_id: str) -> UserProfile | None:
        return self._dao.get_by_id(user_id)

    def create(self, user_id: str, default_currency: str = DEFAULT_CURRENCY) -> UserProfile:
        if self._dao.get_by_id(user_id):
            raise ValueError(f"Profile for {user_id} already exists.")
        return self._dao.create(user_id, _normalize_currency(default_currency))

    def ensure(self, user_id: str) -> UserProfile:
        """Return the user's profile, creating one with the default currency if missing."""
        return self._dao.get_by_id(user_id) or self._dao.create(user_id, DEFAULT_CURRENCY)

    def set_default_currency(self, user_id: str, currency: str) -> UserProfile:
        if self._dao.get_by_id(user_id) is None:
            raise ValueError(f"Profile for {user_id} not found.")
        return self._dao.update(user_id, _normalize_currency(currency))
