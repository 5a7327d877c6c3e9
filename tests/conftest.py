"""
Shared fixtures for the SolarCast test suite.
"""

from datetime import date
from pathlib import Path
from typing import Callable, Optional

import pytest

from solarcast.config import Config, ForecastConfig, StorageConfig

FORECAST_URL = "http://www.vorhersage-plz-bereich.solar-wetter.com/html/841.html"
REFERENCE_DATE = date(2024, 3, 14)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


def build_forecast_page(
    clear_sky: str = "2,46",
    real_sky_min: str = "1,23",
    real_sky_max: str = "1,87",
    forecast_date: str = "15.03.2024",
    include_real_sky: bool = True,
    include_date: bool = True,
) -> str:
    """Render a page laid out like the solar-wetter.com forecast tables."""
    date_row = (
        f"<tr height=17><td class=xl2925883>Prognose vom</td><td class=xl3025883>{forecast_date}</td></tr>\n"
        if include_date
        else ""
    )
    real_sky_label = "real sky:</td>" if include_real_sky else "sky (real):</td>"
    return (
        "<html><head><meta http-equiv=Content-Type content='text/html; charset=windows-1252'></head>\n"
        "<body><table border=0 cellpadding=0 cellspacing=0>\n"
        f"{date_row}"
        "<tr height=17 style='height:12.75pt'>"
        "<td height=17 class=xl1525883 style='height:12.75pt'>clear sky:</td>"
        f"<td class=xl2625883>{clear_sky}</td>"
        "<td class=xl2425883>kWh/kWp</td></tr>\n"
        "<tr height=17 style='height:12.75pt'>"
        f"<td height=17 class=xl1525883 style='height:12.75pt'>{real_sky_label}"
        f"<td class=xl2625883>{real_sky_min}</td>"
        "<td class=xl2725883>-</td>"
        f"<td class=xl2625883>{real_sky_max}</td>"
        "<td class=xl2425883>kWh/kWp</td></tr>\n"
        "</table></body></html>\n"
    )


@pytest.fixture
def forecast_page() -> str:
    """A complete forecast page for 15.03.2024."""
    return build_forecast_page()


@pytest.fixture
def page_factory() -> Callable[..., str]:
    return build_forecast_page


@pytest.fixture
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "states.db"


@pytest.fixture
def config(db_path: Path) -> Callable[..., Config]:
    """Factory for a test config pointing at a temporary database."""

    def _make(region: Optional[str] = "841", power_kw: float = 10.0, **service: object) -> Config:
        settings = Config(
            forecast=ForecastConfig(region=region, power_kw=power_kw),
            storage=StorageConfig(db_path=db_path),
        )
        settings.crawler.max_retries = 0
        settings.crawler.timeout = 5.0
        for key, value in service.items():
            setattr(settings.service, key, value)
        return settings

    return _make


@pytest.fixture
def forecast_url() -> str:
    return FORECAST_URL
