"""
Tests for the JSON file calendar.
"""

import json

import pendulum
import pytest

from visitplanner.adapters.file_calendar import FileCalendarClient
from visitplanner.domain.exceptions import CalendarError

TZ = "Europe/Amsterdam"
DAY_START = pendulum.parse("2024-11-25 00:00", tz=TZ)
DAY_END = pendulum.parse("2024-11-26 00:00", tz=TZ)

EVENTS = [
    {"resourceId": "piano-1", "title": "Tuning", "start": "2024-11-25T10:00:00",
     "end": "2024-11-25T11:00:00", "location": "Breda"},
    {"resourceId": "piano-2", "title": "Other tech", "start": "2024-11-25T12:00:00",
     "end": "2024-11-25T13:00:00"},
    {"title": "Team meeting", "start": "2024-11-25T16:00:00", "end": "2024-11-25T17:00:00"},
    {"resourceId": "piano-1", "title": "Holiday", "start": "2024-11-25", "end": "2024-11-26"},
    {"resourceId": "piano-1", "title": "Next day holiday", "start": "2024-11-26", "end": "2024-11-27"},
    {"resourceId": "piano-1", "title": "Tomorrow", "start": "2024-11-26T10:00:00",
     "end": "2024-11-26T11:00:00"},
    {"resourceId": "piano-1", "title": "Broken", "start": "not a date", "end": "2024-11-25T11:00:00"},
    {"resourceId": "piano-1", "title": "No end", "start": "2024-11-25T08:00:00"},
]


def write_events(tmp_path, data):
    path = tmp_path / "calendar.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_returns_events_of_resource_on_day(tmp_path):
    client = FileCalendarClient(write_events(tmp_path, EVENTS), timezone=TZ)

    events = client.get_busy_intervals("piano-1", DAY_START, DAY_END)

    labels = [event.label for event in events]
    assert labels == ["Tuning", "Team meeting", "Holiday"]
    tuning = events[0]
    assert tuning.location == "Breda"
    assert tuning.interval.start == pendulum.parse("2024-11-25 10:00", tz=TZ)
    assert tuning.is_timed
    assert not events[2].is_timed


def test_time_only_values_are_skipped(tmp_path):
    """Events without a date part cannot be placed and are ignored."""
    data = [
        {"resourceId": "piano-1", "title": "Clock only", "start": "10:00", "end": "11:00"},
        {"resourceId": "piano-1", "title": "Clock end", "start": "2024-11-25T10:00:00", "end": "11:00"},
        {"resourceId": "piano-1", "title": "Date end", "start": "2024-11-25T10:00:00", "end": "2024-11-26"},
        {"resourceId": "piano-1", "title": "Valid", "start": "2024-11-25T14:00:00",
         "end": "2024-11-25T15:00:00"},
    ]
    client = FileCalendarClient(write_events(tmp_path, data), timezone=TZ)

    events = client.get_busy_intervals("piano-1", DAY_START, DAY_END)

    assert [event.label for event in events] == ["Valid"]


def test_missing_file_means_no_events(tmp_path):
    client = FileCalendarClient(tmp_path / "absent.json", timezone=TZ)

    assert client.get_busy_intervals("piano-1", DAY_START, DAY_END) == []


def test_invalid_json_raises(tmp_path):
    path = tmp_path / "calendar.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CalendarError):
        FileCalendarClient(path, timezone=TZ)


def test_non_list_raises(tmp_path):
    with pytest.raises(CalendarError, match="list of events"):
        FileCalendarClient(write_events(tmp_path, {"events": []}), timezone=TZ)
