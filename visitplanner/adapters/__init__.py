"""
Adapters layer - Calendar, distance and catalog collaborators.
"""

from .catalog import ConfigServiceCatalog, ConfigWorkingHoursProvider
from .distance import DistanceProvider, EstimatedDistanceProvider, build_distance_provider
from .file_calendar import FileCalendarClient
from .google_distance import GoogleDistanceProvider

__all__ = [
    "ConfigServiceCatalog",
    "ConfigWorkingHoursProvider",
    "DistanceProvider",
    "EstimatedDistanceProvider",
    "build_distance_provider",
    "FileCalendarClient",
    "GoogleDistanceProvider",
]
