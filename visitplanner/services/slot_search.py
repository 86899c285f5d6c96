"""
Application service for searching appointment slots across several days.

The service coordinates the calendar, working-hours and distance
collaborators and delegates the per-day search to the domain-level
``SlotFinder``. Collaborators are plain protocols so tests can pass stubs.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Protocol, Tuple

import pendulum
from pendulum import Date, DateTime

from ..domain.exceptions import ValidationError
from ..domain.models import (
    CalendarEvent,
    DatedSlot,
    DayHours,
    SearchOutcome,
    ServiceRequest,
    SlotCandidate,
    SlotSearchResult,
    TimeInterval,
    TravelEstimate,
)
from ..domain.slot_finder import SlotFinder

logger = logging.getLogger(__name__)


class CalendarClientProtocol(Protocol):
    """Protocol describing the calendar behaviour needed by the service."""

    def get_busy_intervals(self, resource_id: str, start: DateTime, end: DateTime) -> List[CalendarEvent]:
        """Return events overlapping [start, end)."""


class WorkingHoursProtocol(Protocol):
    def get_working_hours(self, resource_id: str, weekday: int) -> DayHours:
        """Return the working window for a weekday (0=Monday)."""


class EstimateProtocol(Protocol):
    def estimate(self, origin: str, destination: str) -> TravelEstimate:
        """Return travel time and distance for one leg."""


class SlotSearchService:
    """
    Orchestrates busy-time retrieval, travel lookup and slot calculation
    over a window of days.
    """

    def __init__(
        self,
        calendar_client: CalendarClientProtocol,
        working_hours: WorkingHoursProtocol,
        distance_provider: EstimateProtocol,
        slot_finder: SlotFinder,
        default_origin: str = "",
    ) -> None:
        self._calendar_client = calendar_client
        self._working_hours = working_hours
        self._distance_provider = distance_provider
        self._slot_finder = slot_finder
        self._default_origin = default_origin

    def search(
        self,
        *,
        resource_id: str,
        service: ServiceRequest,
        destination: str,
        start_date: Date,
        origin: Optional[str] = None,
        window_days: int = 14,
        max_candidates: int = 5,
        all_slots: bool = False,
        max_slots_per_day: int = 3,
        skip_count: int = 0,
        max_travel_minutes: Optional[int] = None,
    ) -> SlotSearchResult:
        """
        Find up to ``max_candidates`` slots starting on ``start_date``.

        Args:
            resource_id: Whose calendar and working hours to use
            service: Service duration and buffers
            destination: Where the appointment takes place
            start_date: First day to search
            origin: Departure location; defaults to the configured base
            window_days: Number of days to search (1 = single-day search)
            max_candidates: Maximum number of slots returned
            all_slots: Collect every slot per day instead of the first one
            max_slots_per_day: Per-day cap when ``all_slots`` is set
            skip_count: Number of leading slots to skip (paging)
            max_travel_minutes: Refuse destinations further away than this

        Returns:
            SlotSearchResult ordered by date and time, or carrying the reason
            there are no slots
        """
        self._validate(window_days, max_candidates, max_slots_per_day, skip_count)

        base_origin = origin or self._default_origin
        travel_by_origin: Dict[str, TravelEstimate] = {
            base_origin: self._distance_provider.estimate(base_origin, destination)
        }
        base_travel = travel_by_origin[base_origin]

        if max_travel_minutes is not None and base_travel.duration_minutes > max_travel_minutes:
            logger.info(
                "Destination %r is %d minutes away (limit %d)",
                destination, base_travel.duration_minutes, max_travel_minutes,
            )
            return SlotSearchResult(reason=SearchOutcome.TOO_FAR, travel=base_travel)

        wanted = skip_count + max_candidates
        collected: List[DatedSlot] = []

        for offset in range(window_days):
            day = start_date.add(days=offset)
            day_hours = self._working_hours.get_working_hours(resource_id, day.weekday())

            if not day_hours.enabled:
                logger.debug("Skipping %s: not a working day", day)
                if window_days == 1:
                    return SlotSearchResult(reason=SearchOutcome.NOT_AVAILABLE_ON_DAY, travel=base_travel)
                continue

            events = self.fetch_day_events(resource_id, day)
            limit = min(max_slots_per_day, wanted - len(collected)) if all_slots else 1
            # All-day events do not block time
            busy = [event.interval for event in events if event.interval is not None]

            for day_origin, blocked in self._origin_segments(events, base_origin, day):
                if day_origin not in travel_by_origin:
                    travel_by_origin[day_origin] = self._distance_provider.estimate(day_origin, destination)
                travel = travel_by_origin[day_origin]

                candidates = self._search_day(
                    busy=busy + blocked,
                    travel=travel,
                    service=service,
                    day=day,
                    day_hours=day_hours,
                    all_slots=all_slots,
                    limit=limit,
                )
                collected.extend(
                    DatedSlot(date=day, candidate=candidate, travel=travel, origin=day_origin)
                    for candidate in candidates
                )
                limit -= len(candidates)
                if limit <= 0:
                    break

            if len(collected) >= wanted:
                break

        collected.sort(key=lambda slot: slot.candidate.appointment_start)
        page = collected[skip_count:skip_count + max_candidates]

        if not page:
            return SlotSearchResult(reason=SearchOutcome.NO_SLOTS_FOUND, travel=base_travel)

        logger.debug("Found %d slot(s) for %r", len(page), destination)
        return SlotSearchResult(slots=page, travel=base_travel)

    def fetch_day_events(self, resource_id: str, day: Date) -> List[CalendarEvent]:
        """Fetch the calendar events of one civil day."""
        timezone = self._slot_finder.timezone
        start = pendulum.datetime(day.year, day.month, day.day, tz=timezone)
        return self._calendar_client.get_busy_intervals(resource_id, start, start.add(days=1))

    def _search_day(
        self,
        *,
        busy: List[TimeInterval],
        travel: TravelEstimate,
        service: ServiceRequest,
        day: Date,
        day_hours: DayHours,
        all_slots: bool,
        limit: int,
    ) -> List[SlotCandidate]:
        if all_slots:
            return self._slot_finder.find_all_slots(
                busy, travel.duration_minutes, service, day, day_hours, max_slots=limit
            )

        candidate = self._slot_finder.find_first_slot(busy, travel.duration_minutes, service, day, day_hours)
        return [candidate] if candidate is not None else []

    def _origin_segments(
        self, events: List[CalendarEvent], base_origin: str, day: Date
    ) -> List[Tuple[str, List[TimeInterval]]]:
        """
        Split the day by where the resource leaves from.

        Before the first located event ends, travel starts at ``base_origin``;
        after each located event ends, it starts at that event's location.
        Each segment comes with the intervals that keep its slots inside it:
        everything before the segment opens and everything from the end of
        the next located event on.
        """
        located = sorted(
            (event for event in events if event.interval is not None and event.location),
            key=lambda event: event.interval.end,
        )
        day_start = pendulum.datetime(day.year, day.month, day.day, tz=self._slot_finder.timezone)
        day_end = day_start.add(days=1)

        origins = [base_origin] + [event.location for event in located]
        opens = [day_start] + [event.interval.end for event in located]
        closes = [event.interval.end for event in located] + [day_end]

        segments: List[Tuple[str, List[TimeInterval]]] = []
        for origin, opened, closed in zip(origins, opens, closes):
            blocked = []
            if opened > day_start:
                blocked.append(TimeInterval(start=day_start, end=opened))
            if closed < day_end:
                blocked.append(TimeInterval(start=closed, end=day_end))
            segments.append((origin, blocked))
        return segments

    @staticmethod
    def _validate(window_days: int, max_candidates: int, max_slots_per_day: int, skip_count: int) -> None:
        if window_days < 1:
            raise ValidationError(f"window_days must be at least 1, got {window_days}")
        if max_candidates < 1:
            raise ValidationError(f"max_candidates must be at least 1, got {max_candidates}")
        if max_slots_per_day < 1:
            raise ValidationError(f"max_slots_per_day must be at least 1, got {max_slots_per_day}")
        if skip_count < 0:
            raise ValidationError(f"skip_count must not be negative, got {skip_count}")
