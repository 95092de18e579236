"""
Error taxonomy for the dashboard core.
"""


class HerbstError(Exception):
    """Base class for all dashboard core errors."""


class ConfigFetchError(HerbstError):
    """Configuration could not be fetched (network / transport / HTTP status)."""


class ConfigValidationError(HerbstError):
    """Configuration payload violates the schema."""

    def __init__(self, message: str, path: str = ""):
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class ChannelError(HerbstError):
    """Push-stream transport failure."""


class WeatherConfigError(HerbstError):
    """Weather is enabled but neither a location nor valid coordinates are set."""


class ThemeError(HerbstError):
    """Invalid theme variable name."""
