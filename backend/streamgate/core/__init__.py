"""Core module for configuration and utilities."""

from streamgate.core.config import ConfigError, Settings, settings
from streamgate.core.database import Base, get_db

__all__ = [
    "ConfigError",
    "Settings",
    "settings",
    "Base",
    "get_db",
]
