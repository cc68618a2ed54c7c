from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class Goal:
    id: str
    user_id: str
    category_id: str
    type: str               # 'expense' | 'income'
    target_amount: float
    currency: str
    timeframe: Optional[str] = None     # 'daily' | 'weekly' | 'monthly' | 'yearly'
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True
    created_at: str = ""
    category_name: str = ""


@dataclass
class GoalProgress:
    current: float
    target: float

    @property
    def percentage(self) -> float:
        """Share of the target reached, in percent, capped at 100."""
        if self.target <= 0:
            return 0.0
        return min(self.current / self.target * 100, 100.0)
