DB_FILE = "ledger.db"

DATE_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"  # matches SQLite datetime('now')

DEFAULT_CURRENCY = "USD"
EXCHANGE_RATE_TO_USD = 1.0  # no conversion; every row is stored at par
DEFAULT_FETCH_LIMIT = 20
UNCATEGORIZED = "Uncategorized"

TRANSACTION_TYPES = ["expense", "income"]
FREQUENCIES = ["daily", "weekly", "biweekly", "monthly", "quarterly", "annually"]

# Fixed-length cadences, in days
DAY_INTERVALS = {
    "daily": 1,
    "weekly": 7,
    "biweekly": 14,
}

# Calendar cadences, in months
MONTH_INTERVALS = {
    "monthly": 1,
    "quarterly": 3,
    "annually": 12,
}

DEFAULT_CATEGORIES = [
    {"name": "Housing",        "icon": "🏠", "color": "#F44336", "transaction_type": "expense"},
    {"name": "Food",           "icon": "🍽️", "color": "#FF9800", "transaction_type": "expense"},
    {"name": "Transportation", "icon": "🚗", "color": "#2196F3", "transaction_type": "expense"},
    {"name": "Miscellaneous",  "icon": "🛍️", "color": "#9C27B0", "transaction_type": "expense"},
    {"name": "Income",         "icon": "💼", "color": "#4CAF50", "transaction_type": "income"},
    {"name": "Bonus",          "icon": "🎁", "color": "#8BC34A", "transaction_type": "income"},
    {"name": "Other",          "icon": "📈", "color": "#009688", "transaction_type": "income"},
]

GOAL_TIMEFRAMES = ["daily", "weekly", "monthly", "yearly"]
# Goal timeframe -> date_range_for_filter window
GOAL_TIMEFRAME_FILTERS = {"daily": "day", "weekly": "week", "monthly": "month", "yearly": "year"}
