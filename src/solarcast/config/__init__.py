"""Configuration for SolarCast."""

from __future__ import annotations

from .config import (
    Config,
    CrawlerConfig,
    FieldRecipeConfig,
    ForecastConfig,
    MonitoringConfig,
    ServiceConfig,
    StorageConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "Config",
    "CrawlerConfig",
    "FieldRecipeConfig",
    "ForecastConfig",
    "MonitoringConfig",
    "ServiceConfig",
    "StorageConfig",
    "find_config_file",
    "load_config",
]
