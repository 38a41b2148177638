"""Public API for shared shiftbook configuration."""

from .loader import load_settings
from .models import (
    DEFAULT_CONFIG_PATH,
    ComponentsSettings,
    LoggingSettings,
    ShiftbookSettings,
    resolve_component_settings,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ComponentsSettings",
    "LoggingSettings",
    "ShiftbookSettings",
    "load_settings",
    "resolve_component_settings",
]
