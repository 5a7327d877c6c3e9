"""Retrieval of the forecast page."""

from __future__ import annotations

from .http_client import CrawlerResponse, HttpClient

__all__ = ["CrawlerResponse", "HttpClient"]
