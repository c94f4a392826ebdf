"""Turn a weekly template into the calendar dates it should occur on.

Expansion never leaves the template's effective window, so a range that only
partially overlaps the window is clamped, and one that misses it entirely
yields nothing.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable, Iterator, Protocol

from app.models.schedule_template import DayOfWeek, RecurrenceType


class RecurringSlot(Protocol):
    day_of_week: DayOfWeek
    recurrence_type: RecurrenceType
    effective_from: date
    effective_to: date | None


def clamp_range(slot: RecurringSlot, range_start: date, range_end: date) -> tuple[date, date] | None:
    start = max(range_start, slot.effective_from)
    end = range_end if slot.effective_to is None else min(range_end, slot.effective_to)
    if start > end:
        return None
    return start, end


def first_matching_date(day: DayOfWeek, on_or_after: date) -> date:
    offset = (DayOfWeek(day).weekday - on_or_after.weekday()) % 7
    return on_or_after + timedelta(days=offset)


def parse_exception_dates(values: Iterable[str | date] | None) -> set[date]:
    parsed: set[date] = set()
    for value in values or ():
        parsed.add(value if isinstance(value, date) else date.fromisoformat(value))
    return parsed


def iter_occurrence_dates(
    slot: RecurringSlot,
    range_start: date,
    range_end: date,
    exception_dates: Iterable[str | date] | None = None,
) -> Iterator[date]:
    clamped = clamp_range(slot, range_start, range_end)
    if clamped is None:
        return
    start, end = clamped

    recurrence = RecurrenceType(slot.recurrence_type)
    step_days = 14 if recurrence == RecurrenceType.biweekly else 7
    # Biweekly parity is anchored on the window start, not on the requested range.
    anchor = first_matching_date(slot.day_of_week, slot.effective_from)
    current = first_matching_date(slot.day_of_week, max(start, anchor))
    if recurrence == RecurrenceType.biweekly and (current - anchor).days % 14:
        current += timedelta(days=7)

    skipped = parse_exception_dates(exception_dates) if recurrence == RecurrenceType.custom else set()
    while current <= end:
        if current not in skipped:
            yield current
        current += timedelta(days=step_days)


def expand(
    slot: RecurringSlot,
    range_start: date,
    range_end: date,
    exception_dates: Iterable[str | date] | None = None,
) -> list[date]:
    """Dates in `[range_start, range_end]` on which `slot` should have an occurrence.

    `custom` cadence behaves like `weekly` minus `exception_dates`; when none are
    passed, the slot's own `exception_dates` attribute is used if it has one.
    """
    if exception_dates is None:
        exception_dates = getattr(slot, "exception_dates", None)
    return list(iter_occurrence_dates(slot, range_start, range_end, exception_dates))
