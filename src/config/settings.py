"""Application settings using Pydantic Settings.

Centralized configuration for the allocation engine: capacity ceilings,
name and comment length limits and logging options.

All values can be overridden with ALLOCATION_-prefixed environment variables,
e.g. ALLOCATION_MAX_ACTIVE_PROJECTS_PER_MANAGER=3.
"""

import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class AllocationSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="ALLOCATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application info
    name: str = Field(default="Allocation Engine", description="Application name")
    environment: str = Field(default="development", description="Environment name")

    # Capacity ceilings
    max_active_projects_per_manager: int = Field(
        default=5,
        ge=1,
        description="Non-terminal projects a project manager may carry at once"
    )
    max_active_projects_per_team: int = Field(
        default=1,
        ge=1,
        description="Non-terminal projects a team may staff at once"
    )

    # Naming limits
    project_name_max_length: int = Field(default=100, ge=8, description="Max project name length")
    task_name_max_length: int = Field(default=100, ge=8, description="Max task name length")
    team_name_max_length: int = Field(default=100, ge=8, description="Max team name length")
    comment_max_length: int = Field(default=500, ge=1, description="Max comment length")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


@lru_cache
def get_settings() -> AllocationSettings:
    """
    Get cached application settings instance.

    Returns:
        AllocationSettings: Cached settings loaded from environment.
    """
    return AllocationSettings()
