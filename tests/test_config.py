"""Tests for settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from config.database import DatabaseSettings, get_database_settings
from config.settings import AllocationSettings, get_settings


class TestAllocationSettings:
    """Tests for AllocationSettings."""

    def test_defaults(self):
        settings = AllocationSettings(_env_file=None)
        assert settings.max_active_projects_per_manager == 5
        assert settings.max_active_projects_per_team == 1
        assert settings.project_name_max_length == 100

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("ALLOCATION_MAX_ACTIVE_PROJECTS_PER_MANAGER", "3")
        assert get_settings().max_active_projects_per_manager == 3

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_log_level_normalized(self):
        assert AllocationSettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            AllocationSettings(log_level="loud")

    def test_ceiling_must_be_positive(self):
        with pytest.raises(ValidationError):
            AllocationSettings(max_active_projects_per_team=0)


class TestDatabaseSettings:
    """Tests for DatabaseSettings."""

    def test_sqlite_url(self, tmp_path):
        settings = DatabaseSettings(driver="sqlite", sqlite_path=tmp_path / "a.db")
        assert settings.is_sqlite
        assert settings.url == f"sqlite:///{(tmp_path / 'a.db').absolute()}"
        assert settings.get_connect_args()["check_same_thread"] is False

    def test_postgres_url(self):
        settings = DatabaseSettings(
            driver="postgresql+psycopg2", user="app", password="pw", host="db", name="alloc"
        )
        assert settings.is_postgres
        assert settings.url == "postgresql+psycopg2://app:pw@db:5432/alloc"
        assert settings.get_connect_args() == {"connect_timeout": 30}

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DB_POOL_SIZE", "4")
        assert get_database_settings().pool_size == 4

    def test_in_memory_sqlite(self):
        assert DatabaseSettings(driver="sqlite", sqlite_path=":memory:").url == "sqlite://"

    def test_full_url_override(self, monkeypatch):
        monkeypatch.setenv("DB_URL", "postgresql+psycopg2://a@h:5433/x")
        settings = DatabaseSettings()
        assert settings.url == "postgresql+psycopg2://a@h:5433/x"
        assert settings.is_postgres
        assert not settings.is_sqlite
