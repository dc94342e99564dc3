"""Configuration management for Feedhub."""

from .loader import Config, load_config, load_feed_sources, save_config, save_feed_sources
from .models import (
    ClientConfig,
    ConfigModel,
    FeedSourceConfig,
    LoggingConfig,
    PostgresConfig,
    SchedulerConfig,
    StoreConfig,
)

__all__ = [
    "ClientConfig",
    "Config",
    "ConfigModel",
    "FeedSourceConfig",
    "LoggingConfig",
    "PostgresConfig",
    "SchedulerConfig",
    "StoreConfig",
    "load_config",
    "load_feed_sources",
    "save_config",
    "save_feed_sources",
]
