"""
One forecast run: fetch the page, extract the fields, persist the states.
"""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Optional
from uuid import uuid4

import structlog
from structlog.contextvars import bind_contextvars, unbind_contextvars

from solarcast.config import Config
from solarcast.crawler.http_client import HttpClient
from solarcast.errors import ConfigurationError, ExtractionFailedError, FetchError, RunTimeoutError
from solarcast.extractor.models import PipelineOutput
from solarcast.observability.metrics import METRICS
from solarcast.pipeline import ExtractionPipeline
from solarcast.storage import StateStore

logger = structlog.get_logger(__name__)

REGION_STATE = "Region"


class ForecastService:
    """Runs the extraction pipeline against the configured region's page.

    Every run is bounded by ``service.run_timeout_seconds``. Whether failed
    fields abort the run is decided by ``service.halt_on_failure``; the
    pipeline itself always reports every field.
    """

    def __init__(self, config: Config, pipeline: Optional[ExtractionPipeline] = None) -> None:
        self.config = config
        self.pipeline = pipeline or ExtractionPipeline(config.marker_table())
        self.logger = logger.bind(component="ForecastService")

    def _state_id(self, name: str) -> str:
        return f"{self.config.forecast.state_prefix}.{name}"

    def _check_region(self) -> str:
        forecast = self.config.forecast
        if not forecast.has_valid_region():
            self.logger.warning("No region selected, stopping", region=forecast.region)
            raise ConfigurationError(
                "No postcode region configured. Set forecast.region (at least 3 characters) "
                "in the config file or SOLARCAST_FORECAST__REGION."
            )
        assert forecast.region is not None
        return forecast.region

    async def run(self, reference_date: Optional[date] = None) -> PipelineOutput:
        """Execute one run under the watchdog timeout.

        Args:
            reference_date: Date whose year anchors the forecast date; today if omitted.

        Raises:
            ConfigurationError: No usable region is configured.
            FetchError: The page could not be retrieved.
            ExtractionFailedError: ``halt_on_failure`` is set and a field failed.
            RunTimeoutError: The run exceeded ``run_timeout_seconds``.
        """
        timeout = self.config.service.run_timeout_seconds
        bind_contextvars(run_id=uuid4().hex[:12])
        try:
            async with asyncio.timeout(timeout):
                output = await self._run_once(reference_date or date.today())
        except TimeoutError as e:
            self.logger.error("Force terminating run", timeout=timeout)
            self._count_run("timeout")
            raise RunTimeoutError(f"Run did not finish within {timeout}s") from e
        except ConfigurationError:
            self._count_run("config_error")
            raise
        except ExtractionFailedError:
            self._count_run("extraction_failed")
            raise
        except FetchError:
            self._count_run("fetch_failed")
            raise
        finally:
            unbind_contextvars("run_id")

        self._count_run("ok" if output.ok else "partial")
        return output

    async def _run_once(self, reference_date: date) -> PipelineOutput:
        region = self._check_region()
        forecast = self.config.forecast
        url = forecast.build_url()
        self.logger.info("Starting forecast run", region=region, power_kw=forecast.power_kw, url=url)

        async with StateStore(self.config.storage) as store:
            await store.set_state(self._state_id(REGION_STATE), region)

            async with HttpClient(self.config.crawler) as client:
                response = await client.fetch(url)
            if not response.ok:
                self.logger.error("Could not read forecast page", url=url, status=response.status)
                raise FetchError(url, response.status)

            output = self.pipeline.run(response.text(), forecast.power_kw, reference_date)
            await store.set_states(output.to_states(forecast.state_prefix))

        for failure in output.failures:
            self.logger.error(
                "Field could not be extracted",
                field=failure.field_name,
                error_kind=failure.error_kind.value if failure.error_kind else None,
                detail=failure.detail,
            )
        self.logger.info("States written", fields=len(output.results), failed=len(output.failures))

        if output.failures and self.config.service.halt_on_failure:
            raise ExtractionFailedError([failure.field_name for failure in output.failures])
        return output

    def _count_run(self, outcome: str) -> None:
        if "runs_total" in METRICS:
            METRICS["runs_total"].labels(outcome=outcome).inc()
