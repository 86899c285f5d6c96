"""
Domain models for slot search and route planning.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from enum import Enum
from typing import Dict, List, Optional

import pendulum
from pendulum import Date, DateTime

from .exceptions import ValidationError

WEEKDAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` string into a time object."""
    try:
        hour_str, minute_str = value.strip().split(":")
        return time(hour=int(hour_str), minute=int(minute_str))
    except (AttributeError, ValueError) as exc:
        raise ValidationError(f"Invalid time of day '{value}', expected HH:MM") from exc


@dataclass(frozen=True)
class TimeInterval:
    """
    Represents an immutable half-open time interval [start, end).

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValidationError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        """Check if this interval overlaps with another."""
        return self.start < other.end and self.end > other.start

    def intersect(self, other: "TimeInterval") -> "TimeInterval | None":
        """
        Calculate the intersection of two intervals.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        return TimeInterval(start=max(self.start, other.start), end=min(self.end, other.end))

    def clip(self, window: "TimeInterval") -> "TimeInterval | None":
        """
        Restrict this interval to the part lying inside ``window``.

        Intervals ending at or before the window start, or starting at or after
        the window end, are dropped (None).
        """
        if self.end <= window.start or self.start >= window.end:
            return None
        return TimeInterval(start=max(self.start, window.start), end=min(self.end, window.end))

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class CalendarEvent:
    """
    A busy calendar entry.

    All-day events carry no interval and never block a slot search.
    """
    label: str
    interval: Optional[TimeInterval] = None
    location: Optional[str] = None

    @property
    def is_timed(self) -> bool:
        return self.interval is not None


@dataclass(frozen=True)
class ServiceRequest:
    """Duration and set-up/clean-up buffers of a requested service, in minutes."""
    duration_minutes: int
    buffer_before_minutes: int = 0
    buffer_after_minutes: int = 0

    def __post_init__(self):
        for name in ("duration_minutes", "buffer_before_minutes", "buffer_after_minutes"):
            if getattr(self, name) < 0:
                raise ValidationError(f"{name} must not be negative, got {getattr(self, name)}")

    def total_minutes(self, travel_minutes: int) -> int:
        """Minutes needed for travel, both buffers and the service itself."""
        return travel_minutes + self.buffer_before_minutes + self.duration_minutes + self.buffer_after_minutes


@dataclass(frozen=True)
class DayHours:
    """Working window for one weekday."""
    enabled: bool
    start: time
    end: time

    @classmethod
    def from_strings(cls, enabled: bool, start: str, end: str) -> "DayHours":
        return cls(enabled=enabled, start=parse_clock(start), end=parse_clock(end))

    def window_for(self, day: Date, timezone: str) -> TimeInterval:
        """
        Get the working window for a specific date.

        Raises:
            ValidationError: If the configured end is not after the start
        """
        if self.end <= self.start:
            raise ValidationError(
                f"Working hours end {self.end:%H:%M} must be after start {self.start:%H:%M}"
            )
        start = pendulum.datetime(day.year, day.month, day.day, self.start.hour, self.start.minute, tz=timezone)
        end = pendulum.datetime(day.year, day.month, day.day, self.end.hour, self.end.minute, tz=timezone)
        return TimeInterval(start=start, end=end)


@dataclass
class WorkingHours:
    """
    Weekly working-hour policy.

    Keys are weekdays with 0=Monday and 6=Sunday. Missing days are disabled.
    """
    days: Dict[int, DayHours] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "WorkingHours":
        weekday = DayHours(enabled=True, start=time(9, 0), end=time(17, 0))
        weekend = DayHours(enabled=False, start=time(9, 0), end=time(13, 0))
        return cls(days={day: weekday if day < 5 else weekend for day in range(7)})

    def for_weekday(self, weekday: int) -> DayHours:
        hours = self.days.get(weekday)
        if hours is None:
            return DayHours(enabled=False, start=time(9, 0), end=time(17, 0))
        return hours

    def is_working_day(self, day: Date) -> bool:
        """Check if a given date falls on an enabled weekday."""
        return self.for_weekday(day.weekday()).enabled


@dataclass(frozen=True)
class TravelEstimate:
    """Travel time and distance for one leg."""
    duration_minutes: int
    distance_km: float
    is_estimated: bool = False

    @classmethod
    def zero(cls) -> "TravelEstimate":
        return cls(duration_minutes=0, distance_km=0.0, is_estimated=False)


@dataclass(frozen=True)
class SlotCandidate:
    """
    A feasible appointment window including travel and buffers.

    travel_start <= buffer_before_start <= appointment_start <= appointment_end <= slot_end
    """
    travel_start: DateTime
    buffer_before_start: DateTime
    appointment_start: DateTime
    appointment_end: DateTime
    slot_end: DateTime

    def total_minutes(self) -> int:
        return int((self.slot_end - self.travel_start).total_seconds() / 60)

    def overlaps(self, interval: TimeInterval) -> bool:
        """Check if the span [travel_start, slot_end) overlaps ``interval``."""
        return self.travel_start < interval.end and self.slot_end > interval.start

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD.MM.YYYY | HH:MM - HH:MM (leave HH:MM)
        """
        start = self.appointment_start
        weekday = WEEKDAY_NAMES[start.weekday()].capitalize()
        return (
            f"{weekday}, {start.format('DD.MM.YYYY')} | "
            f"{start.format('HH:mm')} - {self.appointment_end.format('HH:mm')} "
            f"(leave {self.travel_start.format('HH:mm')})"
        )


@dataclass(frozen=True)
class DatedSlot:
    """A slot candidate found on a given date, with the travel it assumes."""
    date: Date
    candidate: SlotCandidate
    travel: TravelEstimate
    origin: str


class SearchOutcome(str, Enum):
    NOT_AVAILABLE_ON_DAY = "not_available_on_day"
    NO_SLOTS_FOUND = "no_slots_found"
    TOO_FAR = "too_far"


@dataclass
class SlotSearchResult:
    """Ranked slots, or the reason why there are none."""
    slots: List[DatedSlot] = field(default_factory=list)
    reason: Optional[SearchOutcome] = None
    travel: Optional[TravelEstimate] = None

    @property
    def available(self) -> bool:
        return bool(self.slots)


@dataclass(frozen=True)
class StopRequest:
    """A location to visit and how long the work there takes."""
    location: str
    duration_minutes: int
    label: Optional[str] = None

    def __post_init__(self):
        if self.duration_minutes < 0:
            raise ValidationError(
                f"Stop duration must not be negative, got {self.duration_minutes} for {self.location}"
            )


@dataclass(frozen=True)
class RouteStop:
    location: str
    duration_minutes: int
    arrival_time: DateTime
    departure_time: DateTime
    travel_minutes_from_previous: int
    travel_km_from_previous: float
    label: Optional[str] = None


@dataclass
class Route:
    origin_location: str
    stops: List[RouteStop]
    total_travel_minutes: int
    total_distance_km: float
    return_travel_minutes: int = 0
    return_distance_km: float = 0.0


@dataclass
class DayPlan:
    """A timed route for one work day."""
    route: Route
    original_travel_minutes: int
    savings_minutes: int
    finish_time: DateTime
    is_estimated: bool
    iterations: int = 0
