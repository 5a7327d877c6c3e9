"""
Configuration management for SolarCast using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from solarcast.extractor.date_window import DEFAULT_YEAR_TEMPLATE
from solarcast.extractor.fields import FieldKind, FieldRecipe, MarkerTable, default_marker_table
from solarcast.extractor.markers import MarkerPair, SpanPolicy

log = logging.getLogger(__name__)

DEFAULT_URL_TEMPLATE = "http://www.vorhersage-plz-bereich.solar-wetter.com/html/{region}.html"
MIN_REGION_LENGTH = 3


class ForecastConfig(BaseModel):
    """What to fetch and how to scale it."""

    region: Optional[str] = Field(default=None, description="Postcode area of the forecast page, e.g. '841'.")
    power_kw: float = Field(default=0.0, ge=0, description="Installed power of the home system in kWp.")
    url_template: str = Field(default=DEFAULT_URL_TEMPLATE, description="Forecast page URL with a {region} slot.")
    state_prefix: str = Field(default="forecast", description="Prefix of every persisted state id.")

    @field_validator("region", mode="before")
    @classmethod
    def normalize_region(cls, v: object) -> Optional[str]:
        # postcodes are often written as bare numbers in YAML
        if v is None or v == 0:
            return None
        return str(v).strip() or None

    @field_validator("url_template")
    @classmethod
    def validate_url_template(cls, v: str) -> str:
        if "{region}" not in v:
            raise ValueError("url_template must contain a '{region}' placeholder")
        return v

    def has_valid_region(self) -> bool:
        return self.region is not None and len(self.region) >= MIN_REGION_LENGTH

    def build_url(self) -> str:
        return self.url_template.format(region=self.region)


class CrawlerConfig(BaseModel):
    """HTTP retrieval settings."""

    timeout: float = Field(default=30.0, gt=0, description="HTTP request timeout in seconds.")
    max_retries: int = Field(default=3, ge=0, description="Maximum retry attempts for failed requests.")
    user_agent: str = Field(default="SolarCast/0.1", description="User-Agent string for HTTP requests.")


class StorageConfig(BaseModel):
    """Configuration for the SQLite state store."""

    db_path: Path = Field(
        default_factory=lambda: Path.home() / ".solarcast" / "states.db",
        description="SQLite database file path",
    )

    @field_validator("db_path", mode="before")
    @classmethod
    def ensure_db_directory(cls, v: str | Path) -> Path:
        path = Path(v).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        return path


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics output."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    metrics_file: str | None = Field(default=None, description="Prometheus textfile written after each run.")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("log_file", "metrics_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


class ServiceConfig(BaseModel):
    """Lifecycle of a single run."""

    run_timeout_seconds: float = Field(default=60.0, gt=0, description="Watchdog limit for a whole run.")
    halt_on_failure: bool = Field(default=False, description="Fail the run when any field could not be extracted.")


class FieldRecipeConfig(BaseModel):
    """One entry of the marker table as written in the config file."""

    name: str
    kind: FieldKind = FieldKind.DECIMAL
    start: Optional[str] = None
    end: Optional[str] = None
    policy: SpanPolicy = SpanPolicy.FIRST_FIRST
    year_template: str = DEFAULT_YEAR_TEMPLATE

    @model_validator(mode="after")
    def check_anchors(self) -> FieldRecipeConfig:
        if self.kind is FieldKind.DECIMAL and not (self.start and self.end):
            raise ValueError(f"decimal field '{self.name}' needs non-empty 'start' and 'end' anchors")
        return self

    def to_recipe(self) -> FieldRecipe:
        if self.kind is FieldKind.DATE:
            return FieldRecipe(name=self.name, kind=self.kind, year_template=self.year_template)
        assert self.start is not None and self.end is not None
        return FieldRecipe(name=self.name, kind=self.kind, marker=MarkerPair(self.start, self.end, self.policy))


class Config(BaseSettings):
    project_name: str = "SolarCast"
    forecast: ForecastConfig = Field(default_factory=ForecastConfig)
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    markers: List[FieldRecipeConfig] = Field(
        default_factory=list, description="Overrides for the built-in marker table, matched by field name."
    )

    model_config = SettingsConfigDict(env_prefix="SOLARCAST_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls()
        return cls(**yaml_data)

    def marker_table(self) -> MarkerTable:
        table = default_marker_table()
        if not self.markers:
            return table
        return table.replace([entry.to_recipe() for entry in self.markers])


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in ("solarcast.yaml", "solarcast.yml", "config.yaml", "config.yml"):
        path = current_dir / name
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Load the config file at ``path``, a discovered one, or the defaults."""
    path = path or find_config_file()
    if path is None:
        log.debug("No config file found. Using default settings.")
        return Config()
    return Config.from_yaml(path)
