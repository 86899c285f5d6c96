"""
Quarter-hour rounding and slot timeline construction.

Every code path that places an appointment goes through ``build_timeline`` so
the travel and buffer boundaries are always derived from the rounded start.
"""

from pendulum import DateTime

from .exceptions import ValidationError
from .models import ServiceRequest, SlotCandidate

ROUNDING_MINUTES = 15


def round_up(moment: DateTime, granularity: int = ROUNDING_MINUTES) -> DateTime:
    """
    Round a moment up to the next ``granularity``-minute boundary.

    Moments already on a boundary (with zero seconds) are returned unchanged.
    """
    if granularity <= 0 or 60 % granularity != 0:
        raise ValidationError(f"Rounding granularity must divide 60, got {granularity}")

    floored = moment.set(minute=moment.minute - moment.minute % granularity, second=0, microsecond=0)
    if floored < moment:
        floored = floored.add(minutes=granularity)
    return floored


def build_timeline(
    appointment_start: DateTime,
    travel_minutes: int,
    buffer_before_minutes: int,
    service_minutes: int,
    buffer_after_minutes: int,
) -> SlotCandidate:
    """Derive the full slot chain around an appointment start."""
    buffer_before_start = appointment_start.subtract(minutes=buffer_before_minutes)
    travel_start = buffer_before_start.subtract(minutes=travel_minutes)
    appointment_end = appointment_start.add(minutes=service_minutes)
    slot_end = appointment_end.add(minutes=buffer_after_minutes)

    return SlotCandidate(
        travel_start=travel_start,
        buffer_before_start=buffer_before_start,
        appointment_start=appointment_start,
        appointment_end=appointment_end,
        slot_end=slot_end,
    )


def candidate_from_cursor(
    cursor: DateTime,
    travel_minutes: int,
    service: ServiceRequest,
    granularity: int = ROUNDING_MINUTES,
) -> SlotCandidate:
    """Place the earliest rounded appointment reachable when leaving at ``cursor``."""
    earliest = cursor.add(minutes=travel_minutes + service.buffer_before_minutes)
    return build_timeline(
        round_up(earliest, granularity),
        travel_minutes,
        service.buffer_before_minutes,
        service.duration_minutes,
        service.buffer_after_minutes,
    )
