from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class Transaction:
    id: Optional[str]       # None until the store assigns one
    user_id: str
    category_id: str
    type: str               # 'expense' | 'income'
    amount: float
    currency: str
    description: str
    date: date
    recurring_template_id: Optional[str] = None
    exchange_rate_to_usd: float = 1.0
    created_at: str = ""
    updated_at: str = ""
    category_name: str = ""
