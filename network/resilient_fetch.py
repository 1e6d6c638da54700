"""
Retrying wrapper around ``httpx.AsyncClient`` for an uncooperative remote site.

Only transport failures (connect errors, timeouts, dropped connections) are
retried. Any HTTP response, 4xx and 5xx included, is handed back unchanged:
the caller decides whether an error page is usable.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from core.user_agent_rotator import IdentityStrategy, RandomUserAgentPool

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0


@dataclass
class FetchMetrics:
    """Counters for tracking retrieval behaviour"""

    total_requests: int = 0
    successful_requests: int = 0
    transport_failures: int = 0
    retries: int = 0
    exhausted: int = 0

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests


class ResilientFetcher:
    """
    Issue requests with linear backoff and per-attempt identity rotation.

    Attempt ``n`` that fails at the transport level is followed by a sleep of
    ``retry_delay * n`` seconds. After ``max_retries`` retries the last
    transport error is re-raised, so the underlying client is called at most
    ``max_retries + 1`` times per ``fetch``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        identity: Optional[IdentityStrategy] = None,
        host: Optional[str] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.client = client
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.identity = identity or RandomUserAgentPool()
        self.host = host
        self._sleep = sleep
        self.metrics = FetchMetrics()
        self.logger = logging.getLogger(__name__)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the retry that follows failed attempt ``attempt`` (1-based)."""
        return self.retry_delay * attempt

    def _build_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = dict(headers or {})
        merged["User-Agent"] = self.identity.choose()
        if self.host:
            merged["Host"] = self.host
        return merged

    async def fetch(self, url: str, method: str = "GET", **options: Any) -> httpx.Response:
        """Perform one logical request; ``options`` go to ``AsyncClient.request``."""
        base_headers = options.pop("headers", None)
        attempt = 0

        while True:
            attempt += 1
            self.metrics.total_requests += 1
            headers = self._build_headers(base_headers)
            try:
                response = await self.client.request(method, url, headers=headers, **options)
            except httpx.TransportError as exc:
                self.metrics.transport_failures += 1
                if attempt > self.max_retries:
                    self.metrics.exhausted += 1
                    self.logger.error(
                        "Giving up on %s %s after %s attempts: %s",
                        method,
                        url,
                        attempt,
                        exc,
                    )
                    raise

                wait_time = self.backoff_delay(attempt)
                self.metrics.retries += 1
                self.logger.warning(
                    "Transport error for %s (attempt %s/%s): %s; retrying in %.2fs",
                    url,
                    attempt,
                    self.max_retries + 1,
                    exc,
                    wait_time,
                )
                await self._sleep(wait_time)
                continue

            self.metrics.successful_requests += 1
            self.logger.debug(
                "Fetched %s -> HTTP %s on attempt %s", url, response.status_code, attempt
            )
            return response
