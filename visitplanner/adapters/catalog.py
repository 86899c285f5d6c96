"""
Working-hours and service-definition collaborators backed by the app config.
"""

from typing import List

from ..config import AppConfig, ServiceDefinition
from ..domain.exceptions import UnknownServiceError
from ..domain.models import DayHours, ServiceRequest, WorkingHours


class ConfigWorkingHoursProvider:
    """Serves the configured weekly hours for every resource."""

    def __init__(self, working_hours: WorkingHours):
        self.working_hours = working_hours

    @classmethod
    def from_config(cls, config: AppConfig) -> "ConfigWorkingHoursProvider":
        return cls(config.get_working_hours())

    def get_working_hours(self, resource_id: str, weekday: int) -> DayHours:
        return self.working_hours.for_weekday(weekday)


class ConfigServiceCatalog:
    """Looks up service durations and buffers by service id."""

    def __init__(self, config: AppConfig):
        self._config = config

    def list_services(self) -> List[ServiceDefinition]:
        return list(self._config.services)

    def get_service(self, service_id: str) -> ServiceRequest:
        """
        Raises:
            UnknownServiceError: If no service with this id is configured
        """
        definition = self._config.find_service(service_id)
        if definition is None:
            known = ", ".join(service.id for service in self._config.services) or "none"
            raise UnknownServiceError(f"Unknown service '{service_id}' (configured: {known})")
        return definition.to_request()
