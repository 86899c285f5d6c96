"""
Calendar collaborator backed by a JSON file of events.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import Date, DateTime

from ..domain.exceptions import CalendarError
from ..domain.models import CalendarEvent, TimeInterval

logger = logging.getLogger(__name__)


class FileCalendarClient:
    """
    Loads busy events from a JSON file.

    The file holds a list of events:
    [
        {
            "resourceId": "default",
            "title": "Tuning",
            "start": "2024-11-25T10:00:00",
            "end": "2024-11-25T11:00:00",
            "location": "Breda"
        }
    ]

    Events whose ``start`` is a plain date are all-day events. Events without
    ``resourceId`` belong to every resource. A missing file means no events.
    """

    def __init__(self, data_file: Optional[Path] = None, timezone: str = "Europe/Amsterdam"):
        self.data_file = data_file
        self.timezone = timezone
        self.events = self._load_events()

    def _load_events(self) -> List[Dict[str, Any]]:
        if self.data_file is None or not self.data_file.exists():
            return []

        try:
            with open(self.data_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise CalendarError(f"Could not read calendar file {self.data_file}: {exc}") from exc

        if not isinstance(data, list):
            raise CalendarError("Calendar file must contain a list of events.")
        return data

    def get_busy_intervals(self, resource_id: str, start: DateTime, end: DateTime) -> List[CalendarEvent]:
        """
        Return events of ``resource_id`` overlapping [start, end).

        Args:
            resource_id: Calendar owner
            start: Start of the time window
            end: End of the time window

        Returns:
            CalendarEvent list; all-day events carry no interval
        """
        events: List[CalendarEvent] = []

        for raw in self.events:
            owner = raw.get("resourceId")
            if owner is not None and owner != resource_id:
                continue

            try:
                event = self._parse_event(raw)
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping unparseable calendar event %r: %s", raw.get("title"), exc)
                continue

            if event.interval is None:
                day = pendulum.parse(raw["start"], tz=self.timezone).date()
                day_start = pendulum.datetime(day.year, day.month, day.day, tz=self.timezone)
                if day_start < end and day_start.add(days=1) > start:
                    events.append(event)
            elif event.interval.start < end and event.interval.end > start:
                events.append(event)

        return events

    def _parse_event(self, raw: Dict[str, Any]) -> CalendarEvent:
        label = raw.get("title") or raw.get("summary") or "Busy"
        location = raw.get("location") or None
        parsed_start = pendulum.parse(raw["start"], tz=self.timezone, exact=True)

        if not isinstance(parsed_start, DateTime):
            if isinstance(parsed_start, Date):
                return CalendarEvent(label=label, interval=None, location=location)
            raise ValueError(f"start {raw['start']!r} is neither a date nor a date and time")

        parsed_end = pendulum.parse(raw["end"], tz=self.timezone, exact=True)
        if not isinstance(parsed_end, DateTime):
            raise ValueError(f"end {raw['end']!r} of a timed event must be a date and time")
        return CalendarEvent(
            label=label,
            interval=TimeInterval(start=parsed_start, end=parsed_end),
            location=location,
        )
