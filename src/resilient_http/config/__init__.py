"""Configuration management utilities."""

from .settings import Settings, configure_from_settings, get_settings, options_from_settings

__all__ = [
    "Settings",
    "get_settings",
    "options_from_settings",
    "configure_from_settings",
]
