"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.exceptions import ValidationError
from .domain.models import WEEKDAY_NAMES, DayHours, ServiceRequest, WorkingHours, parse_clock


class DayHoursConfig(BaseModel):
    """Working window for one weekday."""
    enabled: bool = True
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        """Validate HH:MM format and range."""
        try:
            parsed = parse_clock(value)
        except ValidationError as exc:
            raise ValueError(str(exc)) from exc
        return parsed.strftime("%H:%M")

    @model_validator(mode="after")
    def validate_order(self) -> "DayHoursConfig":
        """Ensure an enabled window opens before it closes."""
        if self.enabled and parse_clock(self.end) <= parse_clock(self.start):
            raise ValueError(f"end ({self.end}) must be later than start ({self.start})")
        return self

    def to_domain(self) -> DayHours:
        return DayHours.from_strings(self.enabled, self.start, self.end)


def _default_working_hours() -> Dict[str, DayHoursConfig]:
    hours = {}
    for index, name in enumerate(WEEKDAY_NAMES):
        if index < 5:
            hours[name] = DayHoursConfig(enabled=True, start="09:00", end="17:00")
        else:
            hours[name] = DayHoursConfig(enabled=False, start="09:00", end="13:00")
    return hours


class SearchConfig(BaseModel):
    """Defaults for slot searches."""
    window_days: int = Field(default=14, ge=1)
    max_candidates: int = Field(default=5, ge=1)
    max_slots_per_day: int = Field(default=3, ge=1)
    slot_step_minutes: int = Field(default=30, ge=1)
    max_travel_minutes: Optional[int] = Field(default=None, ge=0)


class DistanceConfig(BaseModel):
    """Travel-time lookup settings."""
    provider: Literal["estimate", "google"] = "estimate"
    api_key: Optional[str] = None
    timeout_seconds: float = Field(default=10.0, gt=0)
    max_parallel_requests: int = Field(default=4, ge=1)
    default_minutes: int = Field(default=45, ge=0)
    default_km: float = Field(default=50.0, ge=0)
    known_travel_minutes: Dict[str, int] = Field(default_factory=dict)

    @field_validator("known_travel_minutes")
    @classmethod
    def normalize_keywords(cls, value: Dict[str, int]) -> Dict[str, int]:
        """Lower-case keywords and reject negative minutes."""
        normalized: Dict[str, int] = {}
        for keyword, minutes in value.items():
            if minutes < 0:
                raise ValueError(f"Travel minutes for '{keyword}' must not be negative")
            normalized[keyword.strip().lower()] = minutes
        return normalized


class RoutingConfig(BaseModel):
    """Route optimization settings."""
    max_iterations: int = Field(default=100, ge=1)
    return_to_origin: bool = True


class ServiceDefinition(BaseModel):
    """A bookable service."""
    id: str
    name: str = ""
    duration_minutes: int = Field(ge=0)
    buffer_before_minutes: int = Field(default=0, ge=0)
    buffer_after_minutes: int = Field(default=0, ge=0)

    def display_name(self) -> str:
        return self.name or self.id

    def to_request(self) -> ServiceRequest:
        return ServiceRequest(
            duration_minutes=self.duration_minutes,
            buffer_before_minutes=self.buffer_before_minutes,
            buffer_after_minutes=self.buffer_after_minutes,
        )


class AppConfig(BaseModel):
    """Application configuration."""
    timezone: str = "Europe/Amsterdam"
    origin: str = ""
    resource_id: str = "default"
    working_hours: Dict[str, DayHoursConfig] = Field(default_factory=_default_working_hours)
    search: SearchConfig = Field(default_factory=SearchConfig)
    distance: DistanceConfig = Field(default_factory=DistanceConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    services: List[ServiceDefinition] = Field(default_factory=list)

    @field_validator("working_hours", mode="before")
    @classmethod
    def expand_working_hours(cls, value: Any) -> Any:
        """
        Accept either a per-weekday mapping or the compact form
        ``{start, end, days: [...]}`` and return a per-weekday mapping.

        Days may be given by name ("monday") or index (0=Monday).
        """
        if not isinstance(value, dict):
            return value

        if "days" in value:
            days = {cls._weekday_name(day) for day in value["days"]}
            start = value.get("start", "09:00")
            end = value.get("end", "17:00")
            return {
                name: {"enabled": name in days, "start": start, "end": end}
                for name in WEEKDAY_NAMES
            }

        expanded = {}
        for key, hours in value.items():
            expanded[cls._weekday_name(key)] = hours
        return expanded

    @staticmethod
    def _weekday_name(day: Any) -> str:
        if isinstance(day, int) or (isinstance(day, str) and day.strip().isdigit()):
            index = int(day)
            if index not in range(7):
                raise ValueError(f"Weekday index must be between 0 and 6, got {index}")
            return WEEKDAY_NAMES[index]
        name = str(day).strip().lower()
        if name not in WEEKDAY_NAMES:
            raise ValueError(f"Unknown weekday: '{day}'")
        return name

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: List[ServiceDefinition]) -> List[ServiceDefinition]:
        """Ensure service ids are unique."""
        seen: set[str] = set()
        for service in value:
            key = service.id.lower()
            if key in seen:
                raise ValueError(f"Duplicate service id detected: {service.id}")
            seen.add(key)
        return value

    def get_working_hours(self) -> WorkingHours:
        """Build the weekly working-hour policy."""
        days = {
            WEEKDAY_NAMES.index(name): hours.to_domain()
            for name, hours in self.working_hours.items()
        }
        return WorkingHours(days=days)

    def find_service(self, service_id: str) -> ServiceDefinition | None:
        """Find a service by its id (case-insensitive)."""
        for service in self.services:
            if service.id.lower() == service_id.lower():
                return service
        return None

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        return cls(**data)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    config_path = Path.cwd() / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of visitplanner/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
