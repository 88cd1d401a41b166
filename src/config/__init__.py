"""Configuration module for the allocation engine."""

from .database import DatabaseSettings, get_database_settings
from .settings import AllocationSettings, get_settings

__all__ = [
    "DatabaseSettings",
    "get_database_settings",
    "AllocationSettings",
    "get_settings",
]
