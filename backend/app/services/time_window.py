from __future__ import annotations

from dataclasses import dataclass
import re

from app.models.schedule_template import DayOfWeek

TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_time_to_minutes(value: str) -> int:
    match = TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError("Time must be in HH:MM 24-hour format")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    """Canonical zero-padded form, so "9:05" is stored as "09:05"."""
    return minutes_to_hhmm(parse_time_to_minutes(value))


@dataclass(frozen=True)
class TimeWindow:
    """A `[start, end)` slot on one weekday, in minutes since midnight."""

    day: DayOfWeek
    start_minute: int
    end_minute: int

    def __post_init__(self) -> None:
        if not 0 <= self.start_minute < self.end_minute <= 24 * 60:
            raise ValueError("end time must be after start time")

    @classmethod
    def from_strings(cls, day: DayOfWeek | str, start_time: str, end_time: str) -> TimeWindow:
        return cls(DayOfWeek(day), parse_time_to_minutes(start_time), parse_time_to_minutes(end_time))

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def start_time(self) -> str:
        return minutes_to_hhmm(self.start_minute)

    @property
    def end_time(self) -> str:
        return minutes_to_hhmm(self.end_minute)

    def overlaps(self, other: TimeWindow) -> bool:
        return overlaps(self, other)


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    # Strict comparison: a slot ending at 10:30 leaves 10:30 free for the next one.
    return a.day == b.day and a.start_minute < b.end_minute and b.start_minute < a.end_minute
