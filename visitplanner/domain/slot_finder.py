"""
Core business logic for finding appointment slots on a single day.

Pure domain logic without any external dependencies (no API calls, no
database, no I/O). Travel time is passed in already resolved.
"""

import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from pendulum import Date, DateTime

from .exceptions import ValidationError
from .models import DayHours, ServiceRequest, SlotCandidate, TimeInterval
from .timeline import ROUNDING_MINUTES, candidate_from_cursor

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 30


class SlotFinder:
    """
    Finds feasible appointment windows within one day's working hours.

    Algorithm (first slot):
    1. Clip busy intervals to the working window and sort them
    2. Walk the gaps between them from the start of the day
    3. In the first gap large enough for travel + buffers + service, place the
       appointment, round it up to the quarter hour and re-check the gap
    4. Fall through to the next gap when rounding pushed the slot past it

    ``find_all_slots`` instead steps a cursor through the day and keeps every
    candidate that fits, which is what paging through "more options" uses.
    """

    def __init__(
        self,
        timezone: str = "Europe/Amsterdam",
        step_minutes: int = DEFAULT_STEP_MINUTES,
        rounding_minutes: int = ROUNDING_MINUTES,
    ):
        if step_minutes <= 0:
            raise ValidationError(f"step_minutes must be positive, got {step_minutes}")
        self.timezone = timezone
        self.step_minutes = step_minutes
        self.rounding_minutes = rounding_minutes

    def find_first_slot(
        self,
        busy_intervals: Iterable[TimeInterval],
        travel_minutes: int,
        service: ServiceRequest,
        day: Date,
        day_hours: DayHours,
    ) -> Optional[SlotCandidate]:
        """
        Find the earliest feasible slot on ``day``.

        Args:
            busy_intervals: Busy periods in any order; may extend past the day
            travel_minutes: Travel time to the destination
            service: Service duration and buffers
            day: The date to search
            day_hours: Working window for that date's weekday

        Returns:
            The first SlotCandidate, or None when no gap admits one

        Raises:
            ValidationError: On negative travel or an empty working window
        """
        window = self._prepare(travel_minutes, day, day_hours)
        total_needed = service.total_minutes(travel_minutes)
        busy = self._clip_and_sort(busy_intervals, window)

        for cursor, boundary in self._gaps(window, busy):
            available = (boundary - cursor).total_seconds() / 60
            if available < total_needed:
                continue

            candidate = candidate_from_cursor(cursor, travel_minutes, service, self.rounding_minutes)
            if candidate.slot_end <= boundary:
                return candidate

            logger.debug(
                "Rounded slot %s ends after gap boundary %s, trying next gap",
                candidate.appointment_start,
                boundary,
            )

        return None

    def find_all_slots(
        self,
        busy_intervals: Iterable[TimeInterval],
        travel_minutes: int,
        service: ServiceRequest,
        day: Date,
        day_hours: DayHours,
        max_slots: int,
        skip_count: int = 0,
    ) -> List[SlotCandidate]:
        """
        Find every feasible slot on ``day``, skipping the first ``skip_count``
        and returning at most ``max_slots`` after that.
        """
        if max_slots < 0:
            raise ValidationError(f"max_slots must not be negative, got {max_slots}")
        if skip_count < 0:
            raise ValidationError(f"skip_count must not be negative, got {skip_count}")

        window = self._prepare(travel_minutes, day, day_hours)
        busy = self._clip_and_sort(busy_intervals, window)

        found: List[SlotCandidate] = []
        skipped = 0
        cursor = window.start

        while cursor < window.end and len(found) < max_slots:
            candidate = candidate_from_cursor(cursor, travel_minutes, service, self.rounding_minutes)

            # Later cursors only produce later slots
            if candidate.slot_end > window.end:
                break

            conflict = next((interval for interval in busy if candidate.overlaps(interval)), None)
            next_cursor = cursor.add(minutes=self.step_minutes)

            if conflict is None:
                if skipped < skip_count:
                    skipped += 1
                else:
                    found.append(candidate)
            elif conflict.end > next_cursor:
                next_cursor = conflict.end

            cursor = next_cursor

        return found

    def _prepare(self, travel_minutes: int, day: Date, day_hours: DayHours) -> TimeInterval:
        if travel_minutes < 0:
            raise ValidationError(f"travel_minutes must not be negative, got {travel_minutes}")
        return day_hours.window_for(day, self.timezone)

    @staticmethod
    def _clip_and_sort(busy_intervals: Iterable[TimeInterval], window: TimeInterval) -> List[TimeInterval]:
        """Clip busy intervals to the window, dropping those wholly outside it."""
        clipped = [c for c in (interval.clip(window) for interval in busy_intervals) if c is not None]
        return sorted(clipped, key=lambda interval: interval.start)

    @staticmethod
    def _gaps(window: TimeInterval, busy: List[TimeInterval]) -> Iterator[Tuple[DateTime, DateTime]]:
        """
        Yield (cursor, boundary) pairs for the free gaps of the day.

        Overlapping busy intervals never move the cursor backwards.
        """
        cursor = window.start
        for interval in busy:
            if interval.start > cursor:
                yield cursor, interval.start
            cursor = max(cursor, interval.end)
        if window.end > cursor:
            yield cursor, window.end
