import logging
from datetime import date
from typing import Callable
from database.goal_dao import GoalDAO
from database.transaction_dao import TransactionDAO
from models.goal import Goal, GoalProgress
from utils.constants import DEFAULT_CURRENCY, GOAL_TIMEFRAME_FILTERS, GOAL_TIMEFRAMES, TRANSACTION_TYPES
from utils.date_helpers import date_range_for_filter, parse_date, to_date, today

logger = logging.getLogger(__name__)


def _as_date(value: date | str | None, label: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        parsed = parse_date(value)
        if parsed is None:
            raise ValueError(f"Invalid {label}. Use YYYY-MM-DD.")
        return parsed
    return to_date(value)


class GoalService:
    def __init__(
        self,
        goal_dao: GoalDAO,
        tx_dao: TransactionDAO,
        clock: Callable[[], date] = today,
    ):
        self._goal_dao = goal_dao
        self._tx_dao = tx_dao
        self._clock = clock

    def get_all(self, user_id: str, active_only: bool = True) -> list[Goal]:
        return self._goal_dao.get_all(user_id, active_only)

    def create(
        self,
        user_id: str,
        category_id: str,
        type_: str,
        target_amount: float,
        currency: str = DEFAULT_CURRENCY,
        timeframe: str | None = None,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> Goal:
        start = _as_date(start_date, "start date")
        end = _as_date(end_date, "end date")
        self._validate(type_, target_amount, timeframe, start, end)
        return self._goal_dao.create(
            user_id, category_id, type_, target_amount,
            currency or DEFAULT_CURRENCY, timeframe, start, end,
        )

    def update(self, goal_id: str, **updates) -> Goal:
        """Change target_amount, timeframe, start_date, end_date or is_active."""
        current = self._goal_dao.get_by_id(goal_id)
        if current is None:
            raise ValueError(f"Goal {goal_id} not found.")
        for field in ("start_date", "end_date"):
            if field in updates:
                updates[field] = _as_date(updates[field], field.replace("_", " "))
        self._validate(
            current.type,
            updates.get("target_amount", current.target_amount),
            updates.get("timeframe", current.timeframe),
            updates.get("start_date", current.start_date),
            updates.get("end_date", current.end_date),
        )
        return self._goal_dao.update(goal_id, **updates)

    def delete(self, goal_id: str):
        self._goal_dao.delete(goal_id)

    def window(self, goal: Goal, reference: date | None = None) -> tuple[date, date]:
        """Dates whose transactions count toward the goal.

        An explicit start/end pair wins; otherwise the current day, week
        (from Sunday), month or year up to the reference date. Goals without
        a timeframe use the current month.
        """
        if goal.start_date and goal.end_date:
            return goal.start_date, goal.end_date
        time_filter = GOAL_TIMEFRAME_FILTERS.get(goal.timeframe, "month")
        return date_range_for_filter(time_filter, reference or self._clock())

    def calculate_progress(self, goal_id: str, user_id: str) -> GoalProgress | None:
        """Sum of the user's matching transactions against the goal's target.

        Returns None when the user has no such goal.
        """
        goal = self._goal_dao.get_by_id(goal_id, user_id)
        if goal is None:
            logger.warning("Goal %s not found for user %s", goal_id, user_id)
            return None
        start, end = self.window(goal)
        current = self._tx_dao.sum_amount(user_id, goal.category_id, goal.type, start, end)
        return GoalProgress(current=current, target=goal.target_amount)

    def _validate(self, type_, target_amount, timeframe, start_date, end_date):
        if type_ not in TRANSACTION_TYPES:
            raise ValueError(f"Invalid type: {type_}")
        if target_amount is None or target_amount <= 0:
            raise ValueError("Target amount must be positive.")
        if timeframe is not None and timeframe not in GOAL_TIMEFRAMES:
            raise ValueError(f"Invalid timeframe: {timeframe}")
        if start_date and end_date and end_date < start_date:
            raise ValueError("End date cannot be before start date.")
