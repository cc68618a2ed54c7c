from datetime import date, datetime, timedelta, timezone
import calendar
from utils.constants import DATE_FORMAT, TIMESTAMP_FORMAT


def today() -> date:
    return date.today()


def now_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


def to_date(value: date | datetime) -> date:
    """Drop the time-of-day part so comparisons are on calendar dates only."""
    if isinstance(value, datetime):
        return value.date()
    return value


def parse_date(date_str: str) -> date | None:
    """Parse a date string in YYYY-MM-DD format, returning None on failure."""
    if not date_str:
        return None
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue
    return None


def format_date(d: date) -> str:
    return to_date(d).strftime(DATE_FORMAT)


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)


def add_months(d: date, n: int, anchor_day: int | None = None) -> date:
    """Add n months to date d, clamping day to month end.

    anchor_day overrides d.day as the wanted day-of-month, so a series that
    started on the 31st returns to the 31st after passing through February.
    """
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, anchor_day or d.day)
    return date(year, month, day)


def date_range_for_filter(time_filter: str, reference: date | None = None) -> tuple[date, date]:
    """Return (start, end) for a 'day' | 'week' | 'month' | 'year' window ending at reference.

    Weeks start on Sunday. Unknown filters fall back to the current month.
    """
    end = to_date(reference or today())
    if time_filter == "day":
        start = end
    elif time_filter == "week":
        # date.weekday(): Mon=0..Sun=6; shift so Sunday is day 0
        start = end - timedelta(days=(end.weekday() + 1) % 7)
    elif time_filter == "year":
        start = end.replace(month=1, day=1)
    else:
        start = end.replace(day=1)
    return start, end
