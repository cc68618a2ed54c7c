from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class RecurringTemplate:
    id: str
    user_id: str
    category_id: str
    type: str               # 'expense' | 'income'
    amount: float
    currency: str
    start_date: date
    frequency: str          # 'daily' | 'weekly' | 'biweekly' | 'monthly' | 'quarterly' | 'annually'
    description: str = ""
    end_date: Optional[date] = None   # inclusive; None = open-ended
    is_active: bool = True
    exchange_rate_to_usd: float = 1.0
    created_at: str = ""
    updated_at: str = ""
    category_name: str = ""
