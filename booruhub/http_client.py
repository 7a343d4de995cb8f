"""
HTTP fetch client shared by every source adapter.

Wraps a `requests.Session`, maps HTTP status codes onto the error types in
`booruhub.errors` and keeps a single process-wide rate-limit cooldown. The
blocking calls are exposed as coroutines through `asyncio.to_thread`, so a
fan-out across sources suspends on each request instead of blocking the loop.
"""

import asyncio
import logging
import math
import threading
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse

import requests

from .config import settings
from .errors import (
    DecodingError,
    HTTPStatusError,
    InvalidURLError,
    NotFoundError,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
    UnknownError,
)

logger = logging.getLogger(__name__)

def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Parse a Retry-After header given either as delta-seconds or as an HTTP date."""
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        # "inf", "nan" and overflowing literals like 1e400 are not a usable delay
        if not math.isfinite(seconds):
            return None
        return max(0.0, seconds)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())

def validate_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidURLError(url)
    return url

class BooruHTTPClient:
    """
    GET-only client with booru headers and typed failures.

    The cooldown timestamp is written after a 429 and read before every data
    request. Fan-out branches run in worker threads, so all access to it goes
    through `_lock`.
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.user_agent = user_agent or settings.USER_AGENT
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.user_agent})
        self._clock = clock
        self._lock = threading.Lock()
        self._rate_limited_until: Optional[float] = None

    def remaining_cooldown(self) -> Optional[float]:
        """Seconds left on the current cooldown, or None when requests are allowed."""
        with self._lock:
            if self._rate_limited_until is None:
                return None
            remaining = self._rate_limited_until - self._clock()
            if remaining <= 0:
                self._rate_limited_until = None
                return None
            return remaining

    def _record_rate_limit(self, retry_after: Optional[float]):
        if retry_after is None:
            return
        with self._lock:
            until = self._clock() + retry_after
            if self._rate_limited_until is None or until > self._rate_limited_until:
                self._rate_limited_until = until
        logger.warning(f"Rate limited, cooling down for {retry_after:.0f}s")

    def reset_cooldown(self):
        with self._lock:
            self._rate_limited_until = None

    def _send(self, url: str, params: Optional[Dict[str, Any]], accept: str) -> requests.Response:
        validate_url(url)
        logger.debug(f"GET {url} params={params}")
        try:
            return self.session.get(
                url,
                params=params,
                headers={"Accept": accept, "User-Agent": self.user_agent},
                timeout=self.timeout,
            )
        except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema) as e:
            raise InvalidURLError(url) from e
        except requests.RequestException as e:
            # DNS, TLS and timeouts all land here
            raise UnknownError(e) from e

    def _check_status(self, response: requests.Response, record_cooldown: bool = True):
        status = response.status_code
        if 200 <= status < 300:
            return
        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            if record_cooldown:
                self._record_rate_limit(retry_after)
            raise RateLimitedError(retry_after)
        if status == 401:
            raise UnauthorizedError()
        if status == 404:
            raise NotFoundError()
        if 500 <= status < 600:
            raise ServerError(status)
        raise HTTPStatusError(status)

    def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Blocking GET of a JSON document."""
        remaining = self.remaining_cooldown()
        if remaining is not None:
            raise RateLimitedError(remaining)

        response = self._send(url, params, "application/json")
        self._check_status(response)
        try:
            return response.json()
        except ValueError as e:
            raise DecodingError(e) from e

    def get_bytes(self, url: str) -> bytes:
        """Blocking GET of raw image bytes. Image hosts do not share the API cooldown."""
        response = self._send(url, None, "image/*")
        self._check_status(response, record_cooldown=False)
        return response.content

    async def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await asyncio.to_thread(self.get_json, url, params)

    async def fetch_bytes(self, url: str) -> bytes:
        return await asyncio.to_thread(self.get_bytes, url)

# Global instance
http_client = BooruHTTPClient()
