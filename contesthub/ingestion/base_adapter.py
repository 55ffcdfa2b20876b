"""
Base adapter interface and shared functionality for source adapters.

Each source adapter must implement _fetch_raw() which returns the list of
raw, source-native contest records. The base class provides:
- Per-adapter HTTP client with bounded timeout and retries
- Optional client-side rate limiting
- Translation of transport and payload errors into SourceFetchError
- Logging of each run

A failed fetch always raises. Returning [] means the upstream genuinely
had zero relevant contests this cycle.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from contesthub.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig
from contesthub.ingestion.schemas import Source

logger = logging.getLogger(__name__)


class SourceFetchError(Exception):
    """An adapter could not produce records for this cycle."""

    def __init__(self, source: Source, message: str):
        super().__init__(f"{source.value}: {message}")
        self.source = source


class SourceConfigurationError(SourceFetchError):
    """Required credentials or settings for a source are missing."""

    pass


@dataclass
class RateLimiter:
    """
    Simple token bucket rate limiter.

    Allows `rate` requests per minute with burst capacity.
    """

    rate: int  # requests per minute
    _tokens: float = field(init=False)
    _last_update: float = field(init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.rate)
        self._last_update = time.monotonic()

    async def acquire(self) -> None:
        """Wait until a token is available, then consume it."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_update
            self._last_update = now

            self._tokens = min(
                float(self.rate),
                self._tokens + elapsed * (self.rate / 60.0),
            )

            if self._tokens < 1:
                wait_time = (1 - self._tokens) * 60.0 / self.rate
                logger.debug(f"Rate limited, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)
                self._tokens = 0
            else:
                self._tokens -= 1


@dataclass
class AdapterResult:
    """
    Outcome of one adapter run.

    Exactly one of two states: ok with a (possibly empty) record list, or
    failed with an error message. Lets callers tell "zero contests" apart
    from "fetch failed" while both contribute zero records.
    """

    source: Source
    records: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None
    elapsed_seconds: float = 0.0

    @classmethod
    def success(
        cls, source: Source, records: list[dict[str, Any]], elapsed_seconds: float = 0.0
    ) -> "AdapterResult":
        return cls(source=source, records=records, elapsed_seconds=elapsed_seconds)

    @classmethod
    def failure(
        cls, source: Source, error: str, elapsed_seconds: float = 0.0
    ) -> "AdapterResult":
        return cls(source=source, error=error, elapsed_seconds=elapsed_seconds)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def outcome(self) -> str:
        """ok, empty or error; used as a metrics label and in health output."""
        if not self.ok:
            return "error"
        return "ok" if self.records else "empty"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.value,
            "status": self.outcome,
            "records": len(self.records),
            "error": self.error,
            "elapsedSeconds": round(self.elapsed_seconds, 3),
        }


class BaseSourceAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses must implement:
        - source: Source enum value
        - _fetch_raw(client): Return raw records using the provided HTTPClient

    The base class handles:
        - HTTP client lifecycle, timeout and retry policy
        - Error translation (HTTPClientError, malformed payloads)
        - Logging
    """

    # Per-source default; adapters with slower upstreams override.
    default_timeout: float = 10.0

    def __init__(
        self,
        timeout: float | None = None,
        retry_config: RetryConfig | None = None,
        rate_limit: int | None = None,
    ):
        """
        Initialize adapter.

        Args:
            timeout: Per-request timeout in seconds
            retry_config: HTTP retry behavior (defaults to one retry)
            rate_limit: Optional maximum requests per minute
        """
        self.timeout = timeout if timeout is not None else self.default_timeout
        self.retry_config = retry_config or RetryConfig()
        self._rate_limiter = RateLimiter(rate=rate_limit) if rate_limit else None

    @property
    @abstractmethod
    def source(self) -> Source:
        """Return the source this adapter handles."""
        ...

    @property
    def name(self) -> str:
        """Human-readable adapter name."""
        return f"{self.source.value}_adapter"

    def _client_headers(self) -> dict[str, str] | None:
        """Headers sent with every request. Override for auth."""
        return None

    @abstractmethod
    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        """
        Fetch raw records from the upstream.

        Subclasses apply their own relevance filtering here and let
        HTTPClientError, KeyError, TypeError and ValueError propagate.
        """
        ...

    async def _throttle(self) -> None:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()

    async def fetch(self) -> list[dict[str, Any]]:
        """
        Fetch raw records from the source.

        Returns:
            List of raw records (possibly empty)

        Raises:
            SourceFetchError: On any transport or payload failure
        """
        started = time.monotonic()
        logger.info(f"Starting fetch for {self.name}")

        try:
            async with HTTPClient(
                retry_config=self.retry_config,
                timeout=self.timeout,
                headers=self._client_headers(),
            ) as client:
                records = await self._fetch_raw(client)
        except SourceFetchError:
            raise
        except HTTPClientError as e:
            raise SourceFetchError(self.source, str(e)) from e
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SourceFetchError(
                self.source, f"malformed payload: {type(e).__name__}: {e}"
            ) from e

        if not isinstance(records, list):
            raise SourceFetchError(
                self.source, f"expected a list of records, got {type(records).__name__}"
            )

        logger.info(
            f"{self.name} completed: records={len(records)}, "
            f"elapsed={time.monotonic() - started:.2f}s"
        )
        return records

