"""Logging and metrics for SolarCast."""

from __future__ import annotations

from .logging import configure_logging
from .metrics import METRICS, write_metrics

__all__ = ["METRICS", "configure_logging", "write_metrics"]
