import logging
import os
import sys

# Ensure project root is on sys.path when run directly
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from database.db_manager import DatabaseManager
from database.template_dao import TemplateDAO
from database.transaction_dao import TransactionDAO
from database.category_dao import CategoryDAO
from database.user_profile_dao import UserProfileDAO

from services.category_service import CategoryService
from services.materializer import Materializer, MaterializeResult
from services.profile_service import ProfileService

from utils.app_config import get_db_folder, get_log_level, get_user_id
from utils.date_helpers import today
from utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def run(user_id: str, db: DatabaseManager) -> MaterializeResult:
    """Materialize today's recurring transactions for one user against db."""
    ProfileService(UserProfileDAO(db)).ensure(user_id)
    CategoryService(CategoryDAO(db)).ensure_defaults(user_id)
    materializer = Materializer(TemplateDAO(db), TransactionDAO(db), clock=today)
    result = materializer.materialize_all(user_id)

    if result.created_count > 0:
        logger.info("Created %d recurring transactions", result.created_count)
    for error in result.errors:
        logger.warning("Recurring error: %s", error)
    return result


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv

    # ── Bootstrap: config before anything touches the DB ─────────────────────
    setup_logging(get_log_level())
    user_id = argv[0] if argv else get_user_id()
    if not user_id:
        logger.error("No user id given and none configured in ~/.recurring_ledger/config.json")
        return 2

    # ── Database ─────────────────────────────────────────────────────────────
    db = DatabaseManager.open(db_folder=get_db_folder())
    try:
        result = run(user_id, db)
    finally:
        db.close()
    return 1 if result.errors else 0


if __name__ == "__main__":
    sys.exit(main())
