"""
Bounded-timeout HTTP helper shared by every outbound call.

All provider, OCR and LLM traffic goes through ``HttpFetcher`` so each call
carries an explicit timeout and failures surface as ``FetchError`` /
``FetchTimeoutError`` instead of raw transport exceptions.
"""
import asyncio
import time
from typing import Any, Optional

import httpx

from suppscore.errors import FetchError, FetchTimeoutError


BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


def elapsed_ms(started: float) -> int:
    """Milliseconds since a ``time.monotonic()`` reading."""
    return int((time.monotonic() - started) * 1000)


class HttpFetcher:
    """
    Thin wrapper around ``httpx.AsyncClient`` with per-call timeouts.

    A client can be injected (tests pass one built on ``httpx.MockTransport``);
    otherwise a short-lived client is opened for each call.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.client = client

    async def request(
        self,
        method: str,
        url: str,
        timeout: float,
        **kwargs: Any
    ) -> httpx.Response:
        """
        Perform one HTTP request bounded by ``timeout`` seconds.

        Raises:
            FetchTimeoutError: the call did not finish in time
            FetchError: connection or protocol failure
        """
        try:
            return await asyncio.wait_for(
                self._send(method, url, timeout, **kwargs),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise FetchTimeoutError(f"{method} {url} timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise FetchError(f"{method} {url} failed: {e}") from e

    async def get(self, url: str, timeout: float, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, timeout, **kwargs)

    async def post(self, url: str, timeout: float, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, timeout, **kwargs)

    async def _send(self, method: str, url: str, timeout: float, **kwargs: Any) -> httpx.Response:
        if self.client is not None:
            return await self.client.request(method, url, timeout=timeout, **kwargs)
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            return await client.request(method, url, **kwargs)
