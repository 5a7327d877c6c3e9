"""
Integration tests for a complete forecast run with mocked HTTP.
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from aioresponses import aioresponses

from solarcast.config import StorageConfig
from solarcast.crawler.http_client import HttpClient
from solarcast.errors import ConfigurationError, ExtractionFailedError, FetchError, RunTimeoutError
from solarcast.extractor import ErrorKind
from solarcast.observability.metrics import METRICS
from solarcast.service import ForecastService
from solarcast.storage import StateStore
from tests.helpers.metric_delta import metric_delta


async def stored_states(db_path) -> dict:
    async with StateStore(StorageConfig(db_path=db_path)) as store:
        return await store.as_dict()


@pytest.mark.integration
class TestForecastService:
    """End-to-end runs: fetch, extract, persist."""

    @pytest.mark.asyncio
    async def test_full_run_persists_states(self, config, forecast_page, forecast_url, reference_date, db_path):
        service = ForecastService(config())

        with aioresponses() as m:
            m.get(forecast_url, status=200, body=forecast_page.encode("latin-1"))
            with metric_delta(METRICS["runs_total"].labels(outcome="ok"), 1):
                output = await service.run(reference_date)

        assert output.ok
        assert await stored_states(db_path) == {
            "forecast.Region": "841",
            "forecast.clearSky": 2.46,
            "forecast.realSky_min": 1.23,
            "forecast.realSky_max": 1.87,
            "forecast.forecastDate": "15.03.2024",
            "forecast.home.clearSky": 2.46 * 10.0,
            "forecast.home.realSky_min": 1.23 * 10.0,
            "forecast.home.realSky_max": 1.87 * 10.0,
        }

    @pytest.mark.asyncio
    async def test_partial_page_continues(self, config, page_factory, forecast_url, reference_date, db_path):
        """A missing label fails one field; the others are still persisted."""
        service = ForecastService(config())

        with aioresponses() as m:
            m.get(forecast_url, status=200, body=page_factory(include_real_sky=False))
            with metric_delta(METRICS["runs_total"].labels(outcome="partial"), 1):
                output = await service.run(reference_date)

        assert not output.ok
        assert output.results["realSky_min"].error_kind is ErrorKind.MARKER_NOT_FOUND

        states = await stored_states(db_path)
        assert states["forecast.realSky_min"] is None
        assert states["forecast.home.realSky_min"] is None
        assert states["forecast.clearSky"] == 2.46
        assert states["forecast.forecastDate"] == "15.03.2024"

    @pytest.mark.asyncio
    async def test_halt_on_failure_raises_after_persisting(
        self, config, page_factory, forecast_url, reference_date, db_path
    ):
        service = ForecastService(config(halt_on_failure=True))

        with aioresponses() as m:
            m.get(forecast_url, status=200, body=page_factory(include_real_sky=False))
            with pytest.raises(ExtractionFailedError) as exc_info:
                await service.run(reference_date)

        assert exc_info.value.failed_fields == ["realSky_min"]
        assert (await stored_states(db_path))["forecast.clearSky"] == 2.46

    @pytest.mark.asyncio
    async def test_missing_region(self, config, db_path):
        service = ForecastService(config(region=None))

        with metric_delta(METRICS["runs_total"].labels(outcome="config_error"), 1):
            with pytest.raises(ConfigurationError):
                await service.run()

        assert not db_path.exists()

    @pytest.mark.asyncio
    async def test_short_region(self, config):
        with pytest.raises(ConfigurationError):
            await ForecastService(config(region="84")).run()

    @pytest.mark.asyncio
    async def test_fetch_failure_only_persists_region(self, config, forecast_url, reference_date, db_path):
        service = ForecastService(config())

        with aioresponses() as m:
            m.get(forecast_url, status=404)
            with pytest.raises(FetchError) as exc_info:
                await service.run(reference_date)

        assert exc_info.value.status == 404
        assert await stored_states(db_path) == {"forecast.Region": "841"}

    @pytest.mark.asyncio
    async def test_watchdog_timeout(self, config, reference_date):
        async def slow_fetch(self, url, **kwargs):
            await asyncio.sleep(5)

        service = ForecastService(config(run_timeout_seconds=0.05))

        with patch.object(HttpClient, "fetch", slow_fetch):
            with metric_delta(METRICS["runs_total"].labels(outcome="timeout"), 1):
                with pytest.raises(RunTimeoutError):
                    await service.run(reference_date)

    @pytest.mark.asyncio
    async def test_repeated_runs_overwrite(self, config, page_factory, forecast_url, reference_date, db_path):
        with aioresponses() as m:
            m.get(forecast_url, status=200, body=page_factory())
            m.get(forecast_url, status=200, body=page_factory(clear_sky="3,05", forecast_date="16.03.2024"))
            await ForecastService(config()).run(reference_date)
            await ForecastService(config()).run(reference_date)

        states = await stored_states(db_path)
        assert states["forecast.clearSky"] == 3.05
        assert states["forecast.home.clearSky"] == 3.05 * 10.0
        assert states["forecast.forecastDate"] == "16.03.2024"
