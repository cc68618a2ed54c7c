from dataclasses import dataclass


@dataclass
class Category:
    id: str
    user_id: str
    name: str
    transaction_type: str   # 'expense' | 'income'
    icon: str = ""
    color: str = "#666666"
    is_custom: bool = False
    created_at: str = ""
