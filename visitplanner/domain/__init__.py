"""
Domain layer - Pure business logic without external dependencies.
"""

from .models import (
    CalendarEvent,
    DayHours,
    ServiceRequest,
    SlotCandidate,
    TimeInterval,
    TravelEstimate,
    WorkingHours,
)
from .route_optimizer import OptimizedTour, RouteOptimizer
from .slot_finder import SlotFinder
from .timeline import build_timeline, round_up

__all__ = [
    "CalendarEvent",
    "DayHours",
    "ServiceRequest",
    "SlotCandidate",
    "TimeInterval",
    "TravelEstimate",
    "WorkingHours",
    "OptimizedTour",
    "RouteOptimizer",
    "SlotFinder",
    "build_timeline",
    "round_up",
]
