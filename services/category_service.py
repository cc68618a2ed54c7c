from database.category_dao import CategoryDAO
from models.category import Category
from utils.constants import TRANSACTION_TYPES


class CategoryService:
    def __init__(self, category_dao: CategoryDAO):
        self._dao = category_dao

    def get_for_user(self, user_id: str, transaction_type: str | None = None) -> list[Category]:
        return self._dao.get_for_user(user_id, transaction_type)

    def ensure_defaults(self, user_id: str) -> int:
        """Seed the built-in categories the first time a user is seen."""
        if self._dao.get_for_user(user_id):
            return 0
        return self._dao.seed_defaults(user_id)

    def create(self, user_id: str, name: str, transaction_type: str, icon: str = "", color: str = "#666666") -> Category:
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be empty.")
        if transaction_type not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid type: {transaction_type}")
        existing = [c.name.lower() for c in self._dao.get_for_user(user_id, transaction_type)]
        if name.lower() in existing:
            raise ValueError(f"A category named '{name}' already exists.")
        return self._dao.create(user_id, name, transaction_type, icon, color)

    def update(
        self,
        category_id: str,
        name: str | None = None,
        icon: str | None = None,
        color: str | None = None,
    ) -> Category:
        cat = self._dao.get_by_id(category_id)
        if cat is None:
            raise ValueError(f"Category {category_id} not found.")
        name = cat.name if name is None else name.strip()
        if not name:
            raise ValueError("Category name cannot be empty.")
        siblings = [c for c in self._dao.get_for_user(cat.user_id, cat.transaction_type) if c.id != category_id]
        if any(c.name.lower() == name.lower() for c in siblings):
            raise ValueError(f"A category named '{name}' already exists.")
        return self._dao.update(
            category_id,
            name,
            cat.icon if icon is None else icon,
            cat.color if color is None else color,
        )

    def delete(self, category_id: str):
        cat = self._dao.get_by_id(category_id)
        if cat is None:
            return
        if not cat.is_custom:
            raise ValueError("Default categories cannot be deleted.")
        if self._dao.is_in_use(category_id):
            raise ValueError(f"Category '{cat.name}' is still in use.")
        self._dao.delete(category_id)
