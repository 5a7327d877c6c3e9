"""
HTTP client for the forecast page with retries and observability.
"""

from __future__ import annotations

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional
from urllib.parse import urlparse

import aiohttp
import structlog

from solarcast.config.config import CrawlerConfig
from solarcast.observability.metrics import METRICS

logger = structlog.get_logger(__name__)

RETRY_STATUSES = frozenset({429, 502, 503, 504})
# solar-wetter.com serves windows-1252 without declaring a charset
FALLBACK_ENCODING = "latin-1"


class _RawResponse(NamedTuple):
    status: int
    headers: Dict[str, str]
    body: bytes
    final_url: str


@dataclass
class CrawlerResponse:
    """Response from HTTP crawling with timing and attempt information."""

    status: int
    headers: Dict[str, str]
    body: bytes
    start_ts: float
    end_ts: float
    attempts: int
    url: str
    final_url: str

    @property
    def ok(self) -> bool:
        return self.status == 200

    @property
    def encoding(self) -> str:
        content_type = self.headers.get("Content-Type") or self.headers.get("content-type") or ""
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip("\"'")
        return FALLBACK_ENCODING

    def text(self) -> str:
        try:
            return self.body.decode(self.encoding, errors="replace")
        except LookupError:
            return self.body.decode(FALLBACK_ENCODING, errors="replace")


class HttpClient:
    """Fetches single pages with bounded retries and exponential backoff."""

    def __init__(self, config: CrawlerConfig):
        self.config = config
        self.session: Optional[aiohttp.ClientSession] = None
        self._is_initialized = False

    async def initialize(self) -> None:
        """Initialize the HTTP client session."""
        if self.session is None:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout, headers={"User-Agent": self.config.user_agent})
            self._is_initialized = True
            logger.debug("HTTP client session initialized", user_agent=self.config.user_agent)

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        if self.session:
            await self.session.close()
            self.session = None
        self._is_initialized = False

    async def __aenter__(self) -> "HttpClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _perform_request(self, url: str, timeout: float) -> _RawResponse:
        """Perform the actual HTTP request and read the whole body."""
        if not self._is_initialized:
            raise RuntimeError("HTTP client not initialized")

        try:
            async with asyncio.timeout(timeout):
                assert self.session is not None
                async with self.session.get(url) as response:
                    body = await response.read()
                    return _RawResponse(response.status, dict(response.headers), body, str(response.url))
        except asyncio.TimeoutError:
            raise asyncio.TimeoutError(f"Request timed out after {timeout}s")

    def _should_retry(self, status: int, attempt: int, max_retries: int) -> bool:
        """Retry on server errors and rate limiting while attempts remain."""
        if attempt > max_retries:
            return False
        return status in RETRY_STATUSES

    def _calculate_backoff_delay(self, attempt: int) -> float:
        """Calculate exponential backoff delay with jitter."""
        base_delay = 2 ** (attempt - 1)  # 1s, 2s, 4s
        jitter = random.uniform(0.8, 1.2)
        return base_delay * jitter

    def _record_response(self, status: int, start_time: float, end_time: float) -> None:
        if "http_responses_total" in METRICS:
            METRICS["http_responses_total"].labels(status_class=f"{status // 100}xx").inc()
        if "fetch_latency_seconds" in METRICS:
            METRICS["fetch_latency_seconds"].observe(end_time - start_time)

    async def fetch(
        self, url: str, *, timeout: Optional[float] = None, max_retries: Optional[int] = None
    ) -> CrawlerResponse:
        """
        Fetch URL with retries.

        Args:
            url: URL to fetch
            timeout: Per-request timeout in seconds (None = use config default)
            max_retries: Maximum retry attempts (None = use config default)

        Returns:
            CrawlerResponse; status 0 if no response was received at all
        """
        if not self._is_initialized:
            raise RuntimeError("HTTP client not initialized. Call initialize() first.")

        start_time = time.time()
        parsed_url = urlparse(url)
        if not parsed_url.scheme or not parsed_url.netloc:
            logger.warning("Malformed URL", url=url)
            return CrawlerResponse(
                status=0,
                headers={},
                body=b"",
                start_ts=start_time,
                end_ts=time.time(),
                attempts=0,
                url=url,
                final_url=url,
            )

        if timeout is None:
            timeout = self.config.timeout
        if max_retries is None:
            max_retries = self.config.max_retries

        attempt = 0
        last_status = 0
        while attempt < max_retries + 1:
            attempt += 1
            try:
                response = await self._perform_request(url, timeout)

                if self._should_retry(response.status, attempt, max_retries):
                    logger.info("Retrying request", url=url, status=response.status, attempt=attempt)
                    last_status = response.status
                    await asyncio.sleep(self._calculate_backoff_delay(attempt))
                    continue

                end_time = time.time()
                self._record_response(response.status, start_time, end_time)
                logger.debug(
                    "Fetched page", url=url, status=response.status, bytes=len(response.body), attempts=attempt
                )
                return CrawlerResponse(
                    status=response.status,
                    headers=response.headers,
                    body=response.body,
                    start_ts=start_time,
                    end_ts=end_time,
                    attempts=attempt,
                    url=url,
                    final_url=response.final_url,
                )

            except asyncio.TimeoutError as e:
                logger.warning("Request timed out", url=url, attempt=attempt, timeout=timeout, error=str(e))
                last_status = 0
            except aiohttp.ClientError as e:
                logger.warning("Request failed", url=url, attempt=attempt, error=str(e))
                last_status = 0

            if attempt < max_retries + 1:
                await asyncio.sleep(self._calculate_backoff_delay(attempt))

        end_time = time.time()
        self._record_response(last_status, start_time, end_time)
        logger.error("All attempts failed", url=url, attempts=attempt, status=last_status)
        return CrawlerResponse(
            status=last_status,
            headers={},
            body=b"",
            start_ts=start_time,
            end_ts=end_time,
            attempts=attempt,
            url=url,
            final_url=url,
        )
