"""
Defines and manages Prometheus metrics for SolarCast.

A run is a short-lived job, so metrics are not served over HTTP. They are
written once at the end of a run in the textfile collector format.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict

import structlog
from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import write_to_textfile

logger = structlog.get_logger(__name__)


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "fields_total": Counter(
            "solarcast_fields_total",
            "Field extractions by field and outcome",
            ["field", "outcome"],
        ),
        "extraction_duration_seconds": Histogram(
            "solarcast_extraction_duration_seconds",
            "Time taken to extract all fields from one document",
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5],
        ),
        "fetch_latency_seconds": Histogram(
            "solarcast_fetch_latency_seconds",
            "Time taken to fetch the forecast page including retries",
            buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
        ),
        "http_responses_total": Counter(
            "solarcast_http_responses_total",
            "Total number of HTTP responses by status class",
            ["status_class"],
        ),
        "runs_total": Counter(
            "solarcast_runs_total",
            "Forecast runs by outcome",
            ["outcome"],
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def write_metrics(path: Path) -> None:
    """Write every registered metric to ``path`` for a textfile collector."""
    path.parent.mkdir(parents=True, exist_ok=True)
    write_to_textfile(str(path), _PROM_REGISTRY)
    logger.debug("Metrics written", path=str(path))
