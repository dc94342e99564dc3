"""Configuration models."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("feedhub", description="Database name")
    user: str = Field("feedhub", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")
    dsn: Optional[str] = Field(None, description="Full connection string, overrides the fields above")


class StoreConfig(BaseModel):
    """Indexed store backend selection."""

    backend: Literal["memory", "postgres"] = Field("postgres", description="Key-value backend (memory is process-local)")


class ClientConfig(BaseModel):
    """Feed client settings."""

    timeout: float = Field(10.0, description="Request timeout in seconds", gt=0)
    user_agent: str = Field("Feedhub/0.1 (RSS Reader)", description="User-Agent header")


class SchedulerConfig(BaseModel):
    """Background ingestion settings."""

    interval_minutes: float = Field(30.0, description="Minutes between passes", gt=0)
    feed_delay_seconds: float = Field(1.0, description="Pause between feeds in a pass", ge=0)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = Field("INFO", description="Root log level")


class ConfigModel(BaseModel):
    """Main configuration model."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class FeedSourceConfig(BaseModel):
    """Seed feed entry from feeds.yaml."""

    url: str = Field(..., description="RSS/Atom feed URL")
    name: Optional[str] = Field(None, description="Label shown in listings")
