"""
Domain-specific exception hierarchy for the visit planner.
"""


class PlannerError(Exception):
    """Base class for all application-level errors."""


class ValidationError(PlannerError, ValueError):
    """Raised when caller input or configuration is invalid."""


class CalendarError(PlannerError):
    """Raised when calendar data cannot be fetched or parsed."""


class DistanceLookupError(PlannerError):
    """Raised when a travel estimate cannot be obtained from the mapping service."""


class UnknownServiceError(PlannerError, KeyError):
    """Raised when a service identifier is not defined."""
