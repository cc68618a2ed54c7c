"""Occurrence dates for recurring templates.

A template's series starts at ``start_date`` and repeats every step of its
frequency. Calendar steps (monthly, quarterly, annually) keep the start
date's day-of-month and clamp it to shorter months, so a series started on
Jan 31 runs Feb 28, Mar 31, Apr 30, ...

Nothing here reads the system clock; "today" is always passed in.
"""
from datetime import date, datetime, timedelta
from typing import Iterator
from models.recurring_template import RecurringTemplate
from utils.constants import DAY_INTERVALS, MONTH_INTERVALS, TRANSACTION_TYPES
from utils.date_helpers import add_months, to_date
from utils.exceptions import InvalidTemplate


def advance(d: date, frequency: str, anchor_day: int | None = None) -> date:
    """Return the next occurrence strictly after d.

    anchor_day is the series' wanted day-of-month for calendar steps
    (defaults to d.day).
    """
    if frequency in DAY_INTERVALS:
        return d + timedelta(days=DAY_INTERVALS[frequency])
    if frequency in MONTH_INTERVALS:
        return add_months(d, MONTH_INTERVALS[frequency], anchor_day)
    raise InvalidTemplate(f"Unknown frequency: {frequency!r}")


def check_template(template: RecurringTemplate):
    """Raise InvalidTemplate if the template cannot be materialized."""
    if template.frequency not in DAY_INTERVALS and template.frequency not in MONTH_INTERVALS:
        raise InvalidTemplate(
            f"unknown frequency {template.frequency!r}", template.id
        )
    if template.type not in TRANSACTION_TYPES:
        raise InvalidTemplate(
            f"unknown type {template.type!r}", template.id
        )
    if template.amount is None or template.amount <= 0:
        raise InvalidTemplate(
            f"non-positive amount {template.amount}", template.id
        )
    if not isinstance(template.start_date, date):
        raise InvalidTemplate("missing start date", template.id)
    if template.end_date and to_date(template.end_date) < to_date(template.start_date):
        raise InvalidTemplate(
            f"end date {template.end_date} is before start date {template.start_date}",
            template.id,
        )


def in_window(template: RecurringTemplate, d: date) -> bool:
    if d < to_date(template.start_date):
        return False
    if template.end_date and d > to_date(template.end_date):
        return False
    return True


def _walk(template: RecurringTemplate, current: date, target: date) -> date:
    """Advance from current (an occurrence) to the first occurrence >= target."""
    anchor_day = to_date(template.start_date).day
    while current < target:
        current = advance(current, template.frequency, anchor_day)
    return current


def is_due(template: RecurringTemplate, today: date | datetime) -> bool:
    """True iff today is inside the template's window and is one of its occurrence dates."""
    today = to_date(today)
    if not in_window(template, today):
        return False
    return _walk(template, to_date(template.start_date), today) == today


def occurrences(template: RecurringTemplate, start: date, end: date) -> Iterator[date]:
    """Yield every occurrence in [start, end], clipped to the template's own window."""
    start, end = to_date(start), to_date(end)
    if template.end_date:
        end = min(end, to_date(template.end_date))
    anchor_day = to_date(template.start_date).day
    current = _walk(template, to_date(template.start_date), start)
    while current <= end:
        yield current
        current = advance(current, template.frequency, anchor_day)


def next_occurrence(template: RecurringTemplate, after: date) -> date | None:
    """First occurrence strictly after `after`, or None once the template has ended."""
    after = to_date(after)
    candidate = _walk(template, to_date(template.start_date), after + timedelta(days=1))
    if template.end_date and candidate > to_date(template.end_date):
        return None
    return candidate


class OccurrenceScheduler:
    """is_due/next_occurrence with a per-template resume point.

    Walking from start_date on every call is linear in elapsed occurrences.
    The scheduler remembers the last occurrence it reached for each template
    and resumes from there while "today" keeps moving forward. The entry is
    keyed on (start_date, frequency) so an edited template starts over.
    """

    def __init__(self):
        self._cache: dict[str, tuple[date, str, date]] = {}

    def _first_on_or_after(self, template: RecurringTemplate, target: date) -> date:
        start = to_date(template.start_date)
        current = start
        cached = self._cache.get(template.id)
        if cached:
            cached_start, cached_frequency, cached_occurrence = cached
            if (
                cached_start == start
                and cached_frequency == template.frequency
                and cached_occurrence <= target
            ):
                current = cached_occurrence
        current = _walk(template, current, target)
        self._cache[template.id] = (start, template.frequency, current)
        return current

    def is_due(self, template: RecurringTemplate, today: date | datetime) -> bool:
        today = to_date(today)
        if not in_window(template, today):
            return False
        return self._first_on_or_after(template, today) == today

    def next_occurrence(self, template: RecurringTemplate, after: date) -> date | None:
        after = to_date(after)
        candidate = self._first_on_or_after(template, after + timedelta(days=1))
        if template.end_date and candidate > to_date(template.end_date):
            return None
        return candidate

    def forget(self, template_id: str):
        self._cache.pop(template_id, None)

    def clear(self):
        self._cache.clear()
