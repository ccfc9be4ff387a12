"""
Base client for external data source clients.

Provides: lazily created aiohttp session, bounded retry with exponential
backoff, structured logging, and a single error type for upstream failures.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Literal

import aiohttp
from pydantic import BaseModel

from trial_extractor.constants import DEFAULT_MAX_RETRIES, DEFAULT_TIMEOUT

logger = logging.getLogger("trial_extractor.data_sources")


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RetryConfig(BaseModel):
    """Retry behaviour for failed requests."""

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    backoff_factor: float = 2.0
    retryable_status_codes: set[int] = {429, 500, 502, 503, 504}

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.backoff_factor**attempt), self.max_delay)


class ClientConfig(BaseModel):
    """Top-level client config."""

    retry: RetryConfig = RetryConfig()
    timeout_seconds: float = DEFAULT_TIMEOUT


# ---------------------------------------------------------------------------
# Request context (for structured logging)
# ---------------------------------------------------------------------------


class RequestContext(BaseModel):
    """Metadata attached to every outgoing request for logging."""

    source: str  # e.g. "pubmed"
    method: str  # e.g. "search"
    params: dict[str, Any] = {}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DataSourceError(Exception):
    """Upstream fetch failure: non-success status, timeout or network error."""

    def __init__(self, source: str, message: str, status_code: int | None = None):
        self.source = source
        self.status_code = status_code
        super().__init__(f"[{source}] {message}")


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class BaseClient(ABC):
    """
    Abstract base for HTTP API clients.

    Subclasses implement `_source_name` and their own typed methods that
    call `_rest_get()` (JSON) or `_rest_get_text()` (XML / plain text).
    """

    def __init__(self, config: ClientConfig | None = None):
        self.config = config or ClientConfig()
        self._session: aiohttp.ClientSession | None = None

    @property
    @abstractmethod
    def _source_name(self) -> str:
        """Identifier for this data source, e.g. 'pubmed'."""
        ...

    # -- Session management --------------------------------------------------

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    # -- Core request with retry ---------------------------------------------

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        response_format: Literal["json", "text"] = "json",
        context: RequestContext | None = None,
    ) -> Any:
        """
        Make an HTTP request with bounded retry.

        Retryable statuses, timeouts and connection errors are retried up to
        `config.retry.max_retries` times with exponential backoff; any other
        status >= 400 fails immediately. Raises DataSourceError when the
        request cannot be completed.
        """
        ctx = context or RequestContext(source=self._source_name, method="unknown")
        retry = self.config.retry

        last_error: DataSourceError | None = None
        start = time.monotonic()

        for attempt in range(retry.max_retries + 1):
            try:
                session = await self._get_session()

                logger.info(
                    "Request [%s.%s] attempt=%d url=%s",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    url,
                )

                async with session.request(method, url, params=params) as resp:
                    if resp.status in retry.retryable_status_codes:
                        body = await resp.text()
                        logger.warning(
                            "Retryable %d from %s.%s: %s",
                            resp.status,
                            ctx.source,
                            ctx.method,
                            body[:200],
                        )
                        last_error = DataSourceError(
                            ctx.source,
                            f"HTTP {resp.status}: {body[:200]}",
                            status_code=resp.status,
                        )
                    elif resp.status >= 400:
                        body = await resp.text()
                        raise DataSourceError(
                            ctx.source,
                            f"HTTP {resp.status}: {body[:500]}",
                            status_code=resp.status,
                        )
                    else:
                        if response_format == "json":
                            data = await resp.json(content_type=None)
                        else:
                            data = await resp.text()

                        logger.info(
                            "Success [%s.%s] elapsed=%.2fs",
                            ctx.source,
                            ctx.method,
                            time.monotonic() - start,
                        )
                        return data

            except asyncio.TimeoutError:
                elapsed = time.monotonic() - start
                last_error = DataSourceError(
                    ctx.source, f"Timeout after {elapsed:.1f}s"
                )
                logger.warning(
                    "Timeout [%s.%s] attempt=%d elapsed=%.1fs",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    elapsed,
                )

            except ValueError as e:
                # json.JSONDecodeError from a body that is not JSON
                raise DataSourceError(ctx.source, f"Invalid JSON response: {e}")

            except aiohttp.ClientError as e:
                last_error = DataSourceError(ctx.source, f"Connection error: {e}")
                logger.warning(
                    "Connection error [%s.%s] attempt=%d: %s",
                    ctx.source,
                    ctx.method,
                    attempt + 1,
                    e,
                )

            # Exponential backoff before next attempt
            if attempt < retry.max_retries:
                await asyncio.sleep(retry.delay_for(attempt))

        logger.error(
            "All retries exhausted [%s.%s] after %.1fs: %s",
            ctx.source,
            ctx.method,
            time.monotonic() - start,
            last_error,
        )
        raise last_error or DataSourceError(ctx.source, "Request failed")

    # -- Convenience methods for subclasses ----------------------------------

    async def _rest_get(
        self,
        url: str,
        params: dict[str, Any],
        *,
        context: RequestContext | None = None,
    ) -> dict[str, Any]:
        """GET a JSON document."""
        data = await self._request(
            "GET", url, params=params, response_format="json", context=context
        )
        if not isinstance(data, dict):
            ctx = context or RequestContext(source=self._source_name, method="unknown")
            raise DataSourceError(ctx.source, "Expected a JSON object in response")
        return data

    async def _rest_get_text(
        self,
        url: str,
        params: dict[str, Any],
        *,
        context: RequestContext | None = None,
    ) -> str:
        """GET a text (XML) document."""
        return await self._request(
            "GET", url, params=params, response_format="text", context=context
        )
