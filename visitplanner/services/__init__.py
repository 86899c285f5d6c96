"""
Application services for slot search and day planning.
"""

from .day_route_planner import DayRoutePlanner
from .slot_search import SlotSearchService

__all__ = ["DayRoutePlanner", "SlotSearchService"]
