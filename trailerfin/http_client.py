"""Rate limited HTTP clients used to reach the trailer sources."""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, TypeVar

import httpx

from trailerfin.errors import (
    RequestFailedError,
    ResponseError,
    ServerError,
    UnsupportedOperationError,
    ValidationError,
    parse_other_body,
    parse_validation_body,
)

logger = logging.getLogger(__name__)

SECOND = 1.0
MINUTE = 60.0
HOUR = 3600.0

IMDB_BASE_URL = "https://www.imdb.com"

_UNITS = {
    "second": SECOND,
    "sec": SECOND,
    "minute": MINUTE,
    "min": MINUTE,
    "hour": HOUR,
}
_AMOUNT_RE = re.compile(r"\+?\d+")
_U32_MAX = 2**32 - 1
_UNPROCESSABLE_ENTITY = 422

_Body = TypeVar("_Body")


@dataclass(frozen=True)
class Quota:
    """Allow ``amount`` requests per ``period`` seconds, with bursts up to ``amount``."""

    amount: int
    period: float

    @property
    def replenish_interval(self) -> float:
        """Seconds needed to regain one request slot."""
        return self.period / self.amount


def parse_quota(text: str) -> Quota:
    """Parse a rate such as ``30/minute`` or ``50/second``."""
    parts = text.strip().split("/")
    if len(parts) != 2:
        raise ValueError("Rate limit must be in format 'N/second', 'N/minute', etc.")
    amount_text, unit = parts
    if not _AMOUNT_RE.fullmatch(amount_text):
        raise ValueError(f"invalid rate amount: {amount_text!r}")
    amount = int(amount_text)
    if amount > _U32_MAX:
        raise ValueError(f"rate amount too large: {amount_text!r}")
    if amount == 0:
        raise ValueError("Rate must be > 0")
    try:
        period = _UNITS[unit]
    except KeyError:
        raise ValueError(f"Invalid rate unit: {unit}") from None
    return Quota(amount=amount, period=period)


class RateLimiter:
    """Token bucket limiter: callers of :meth:`acquire` wait for a free slot."""

    def __init__(self, quota: Quota) -> None:
        self.quota = quota
        self._tokens = float(quota.amount)
        self._updated = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self, now: float) -> None:
        gained = (now - self._updated) / self.quota.replenish_interval
        self._tokens = min(float(self.quota.amount), self._tokens + gained)
        self._updated = now

    async def acquire(self) -> None:
        """Wait until a request may be made, then claim its slot."""
        async with self._lock:
            while True:
                self._refill(time.monotonic())
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                await asyncio.sleep((1.0 - self._tokens) * self.quota.replenish_interval)


class RateLimitedClient:
    """An HTTP client that sends a fixed user agent and honours a rate limit."""

    def __init__(
        self,
        user_agent: str,
        rate_limit: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.limiter = RateLimiter(parse_quota(rate_limit))
        self._client = httpx.AsyncClient(
            headers={"User-Agent": user_agent},
            follow_redirects=True,
            transport=transport,
        )

    async def _send(self, url: str, params: Optional[Mapping[str, Any]] = None) -> httpx.Response:
        await self.limiter.acquire()
        try:
            return await self._client.get(url, params=params)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RequestFailedError() from exc

    @staticmethod
    def _decode_error_body(response: httpx.Response, parse: Callable[[Any], _Body]) -> _Body:
        try:
            return parse(json.loads(response.content))
        except ValueError as exc:
            raise ResponseError() from exc

    async def execute(self, url: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """GET ``url`` with query ``params`` and return the decoded JSON body."""
        response = await self._send(url, params)
        if response.is_success:
            try:
                return json.loads(response.content)
            except ValueError as exc:
                raise ResponseError() from exc
        if response.status_code == _UNPROCESSABLE_ENTITY:
            raise ValidationError(self._decode_error_body(response, parse_validation_body))
        raise ServerError(
            response.status_code, self._decode_error_body(response, parse_other_body)
        )

    async def execute_raw(self, url: str) -> httpx.Response:
        """GET ``url`` and return the response whatever its status."""
        return await self._send(url)

    async def aclose(self) -> None:
        """Release the underlying connections."""
        await self._client.aclose()

    async def __aenter__(self) -> "RateLimitedClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class ImdbRequestClient:
    """Fetches IMDB pages relative to a base URL."""

    def __init__(self, executor: RateLimitedClient, base_url: str = IMDB_BASE_URL) -> None:
        self.executor = executor
        self.base_url = base_url

    async def get_raw(self, path: str) -> httpx.Response:
        """Fetch ``path`` below the base URL."""
        return await self.executor.execute_raw(f"{self.base_url}{path}")

    async def execute(self, path: str) -> Any:
        """Always fails: IMDB pages are HTML, not a JSON API."""
        raise UnsupportedOperationError("ImdbClient does not support generic execute() calls")