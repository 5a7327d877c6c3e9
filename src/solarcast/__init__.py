"""
SolarCast - regional solar irradiance forecast scraper.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .pipeline import ExtractionPipeline
from .service import ForecastService

__all__ = ["__version__", "Config", "ExtractionPipeline", "ForecastService"]
