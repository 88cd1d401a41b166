"""Database configuration using Pydantic Settings.

The allocation engine talks to PostgreSQL in production (row locks for the
capacity checks) and to SQLite for development and tests.

Environment variables use the DB_ prefix:
    DB_URL=postgresql+psycopg2://alloc:secret@db:5432/allocation
or the individual parts:
    DB_DRIVER=postgresql+psycopg2
    DB_HOST=db
    DB_NAME=allocation
    DB_USER=alloc
    DB_PASSWORD=secret
"""

from functools import lru_cache
from typing import Optional
from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

SQLITE_MEMORY = ":memory:"


class DatabaseSettings(BaseSettings):
    """
    Connection settings for the allocation store.

    `url_override` wins over every other field when set.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    url_override: Optional[str] = Field(
        default=None,
        validation_alias="DB_URL",
        description="Full SQLAlchemy URL; bypasses driver/host/name settings"
    )
    driver: str = Field(default="sqlite", description="sqlite or postgresql+psycopg2")

    # Server databases
    host: str = Field(default="localhost")
    port: int = Field(default=5432)
    name: str = Field(default="allocation")
    user: str = Field(default="")
    password: str = Field(default="")

    # SQLite file, or ":memory:"
    sqlite_path: Path = Field(default=Path("data/allocation.db"))

    # Pool (ignored for SQLite, which uses NullPool)
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, description="Seconds to wait for a connection")
    pool_recycle: int = Field(default=1800, ge=60, description="Seconds before a connection is replaced")
    pool_pre_ping: bool = Field(default=True)

    echo_sql: bool = Field(default=False, description="Log every SQL statement")
    query_timeout: int = Field(default=30, ge=1, description="Connect/lock wait timeout in seconds")

    @property
    def dialect(self) -> str:
        return (self.url_override or self.driver).split(":", 1)[0].lower()

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        return self.dialect.startswith("sqlite")

    @computed_field
    @property
    def is_postgres(self) -> bool:
        return self.dialect.startswith("postgres")

    @computed_field
    @property
    def url(self) -> str:
        """SQLAlchemy URL for the sync engine."""
        if self.url_override:
            return self.url_override

        if self.is_sqlite:
            if str(self.sqlite_path) == SQLITE_MEMORY:
                return "sqlite://"
            self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{self.sqlite_path.absolute()}"

        credentials = self.user
        if credentials and self.password:
            credentials += f":{self.password}"
        if credentials:
            credentials += "@"
        return f"{self.driver}://{credentials}{self.host}:{self.port}/{self.name}"

    def get_connect_args(self) -> dict:
        """DBAPI connect() arguments for the configured backend."""
        if self.is_sqlite:
            # Sessions are handed between request threads
            return {"check_same_thread": False, "timeout": self.query_timeout}
        return {"connect_timeout": self.query_timeout}


@lru_cache
def get_database_settings() -> DatabaseSettings:
    """Cached settings read from the environment."""
    return DatabaseSettings()
