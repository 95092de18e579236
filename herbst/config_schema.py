"""
Dashboard configuration schema.

One current schema plus a pure normalization step that turns a loosely-shaped
payload (possibly from an older backend) into the canonical structure.

Schema history (every field after v1 is optional or defaulted):
    v1  title, theme, themeVars, ui.background, ui.font, services
    v2  weather, docker
    v3  system, sections, ui.clock, docker.agentsConfigured
"""

import math
import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from herbst.errors import ConfigValidationError

SCHEMA_VERSION = 3

_THEME_VAR_NAME = re.compile(r"^[A-Za-z0-9_-]+$")

# Sections older servers may omit entirely, or send as JSON null.
_OPTIONAL_SECTIONS = ("ui", "weather", "docker", "system", "services", "sections", "themeVars", "theme_vars")


class WireModel(BaseModel):
    """Base for everything that travels as camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )


# ── Services ──────────────────────────────────────────

class Service(WireModel):
    name: str
    url: str
    icon: Optional[str] = None
    online_badge: bool = False


class ServiceSection(WireModel):
    title: str = ""
    services: List[Service] = Field(default_factory=list)

    @field_validator("services")
    @classmethod
    def check_unique_names(cls, services: List[Service]) -> List[Service]:
        seen = set()
        for service in services:
            if service.name in seen:
                raise ValueError(f"duplicate service name {service.name!r} in section")
            seen.add(service.name)
        return services


# ── UI ────────────────────────────────────────────────

class BackgroundConfig(WireModel):
    image: Optional[str] = None
    blur: float = Field(default=0.0, ge=0)


class ClockConfig(WireModel):
    time_format: Literal["24h", "12h"] = "24h"
    date_format: Literal["short", "numeric"] = "short"


class UIConfig(WireModel):
    background: Optional[BackgroundConfig] = None
    font: Optional[str] = None
    clock: Optional[ClockConfig] = None


# ── Feature sections ──────────────────────────────────

class WeatherConfig(WireModel):
    enabled: bool = False
    api_key: str = ""
    location: Optional[str] = None  # city "London,GB", zip "10115,DE", or empty for lat/lon
    lat: float = 0.0
    lon: float = 0.0
    units: Literal["metric", "imperial", "standard"] = "metric"

    @field_validator("units", mode="before")
    @classmethod
    def empty_units_means_metric(cls, value: Any) -> Any:
        return value or "metric"

    def has_valid_location(self) -> bool:
        """True when a location name is set or lat/lon are finite and in range."""
        if self.location and self.location.strip():
            return True
        if not (math.isfinite(self.lat) and math.isfinite(self.lon)):
            return False
        return -90.0 <= self.lat <= 90.0 and -180.0 <= self.lon <= 180.0


class DockerConfig(WireModel):
    enabled: bool = False
    socket_path: str = ""
    agents_configured: bool = False


class SystemConfig(WireModel):
    enabled: bool = False
    disk_path: str = "/"


# ── Live data shapes ──────────────────────────────────

class WeatherData(WireModel):
    """Current weather reading. Superseded wholesale by the next update."""
    temp: float
    feels_like: float = 0.0
    humidity: float = Field(default=0.0, ge=0, le=100)
    description: str = ""
    icon: str = ""
    city: str = ""


class DockerContainer(WireModel):
    id: str
    name: str = ""
    image: str = ""
    state: str = ""
    status: str = ""
    created: datetime  # unix seconds on the wire


class SystemStats(WireModel):
    cpu_percent: float = 0.0
    memory_used: int = 0
    memory_total: int = 0
    memory_percent: float = 0.0
    disk_used: int = 0
    disk_total: int = 0
    disk_percent: float = 0.0
    uptime_seconds: int = 0


# ── Root ──────────────────────────────────────────────

class HerbstConfig(WireModel):
    """Canonical configuration. Built once per session, immutable thereafter."""
    title: str
    theme: str
    ui: UIConfig = Field(default_factory=UIConfig)
    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    docker: DockerConfig = Field(default_factory=DockerConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)
    services: List[Service] = Field(default_factory=list)  # legacy flat list
    sections: List[ServiceSection] = Field(default_factory=list)
    theme_vars: Dict[str, str] = Field(default_factory=dict)

    @field_validator("theme_vars")
    @classmethod
    def check_theme_var_names(cls, theme_vars: Dict[str, str]) -> Dict[str, str]:
        for key in theme_vars:
            if not _THEME_VAR_NAME.match(key):
                raise ValueError(f"invalid theme variable name {key!r}")
        return theme_vars


# ── Normalization & validation ────────────────────────

def normalize(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a copy of ``raw`` with optional sections that are null dropped, so
    model defaults apply. Does not mutate the input.
    """
    normalized = dict(raw)
    for key in _OPTIONAL_SECTIONS:
        if key in normalized and normalized[key] is None:
            del normalized[key]
    return normalized


def _error_path(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


def validate(raw: Any) -> HerbstConfig:
    """
    Validate a raw payload into a HerbstConfig.

    Raises:
        ConfigValidationError: on missing/mistyped required fields; ``path``
            names the first offending field (e.g. ``services.0.url``).
    """
    if not isinstance(raw, dict):
        raise ConfigValidationError(
            f"expected a JSON object, got {type(raw).__name__}"
        )
    try:
        return HerbstConfig.model_validate(normalize(raw))
    except ValidationError as e:
        first = e.errors()[0]
        raise ConfigValidationError(first["msg"], path=_error_path(first["loc"])) from e


def default_config() -> HerbstConfig:
    """Minimal safe configuration: everything disabled, no services."""
    return HerbstConfig(title="herbst", theme="default")
