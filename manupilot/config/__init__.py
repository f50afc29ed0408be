"""Configuration module for the ManuPilot sourcing API."""

from .settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
