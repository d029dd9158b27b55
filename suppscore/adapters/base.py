"""
Base class for scraping provider adapters.

Each adapter wraps one third-party scraping API and turns a target URL into
page content. Adapters never raise for provider failures: every outcome is a
``ProviderResult`` that the provider chain records as a ChainStep.
"""
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import httpx

from suppscore.errors import FetchError, FetchTimeoutError
from suppscore.models.product import ChainStep, StepStatus
from suppscore.utils.http import HttpFetcher, elapsed_ms
from suppscore.utils.logger import LayerLogger


@dataclass
class ProviderResult:
    """Outcome of a single provider call."""
    provider: str
    content: Optional[str]
    http_code: Optional[int]
    elapsed_ms: int
    hint: Optional[str] = None
    attempt: int = 1

    @property
    def status(self) -> StepStatus:
        if self.content:
            return StepStatus.OK
        if self.hint or (self.http_code is not None and not 200 <= self.http_code < 300):
            return StepStatus.ERROR
        return StepStatus.EMPTY

    def to_step(self) -> ChainStep:
        return ChainStep(
            provider=self.provider,
            attempt=self.attempt,
            status=self.status,
            elapsed_ms=self.elapsed_ms,
            http_code=self.http_code,
            hint=self.hint,
        )


class ProviderAdapter(ABC):
    """
    One scraping backend in the provider chain.

    Subclasses define the request and how content is read from the response.
    ``retry_status_codes`` lists HTTP codes that earn one retry with the
    stealth proxy mode.
    """

    name: str = "provider"
    default_timeout: float = 30.0
    retry_status_codes: frozenset = frozenset()
    # Providers that are bypassed when the caller forces Scrapfly
    skipped_when_forcing_scrapfly: bool = False

    def __init__(
        self,
        api_key: Optional[str],
        fetcher: Optional[HttpFetcher] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key
        self.fetcher = fetcher or HttpFetcher()
        self.timeout = timeout if timeout is not None else self.default_timeout
        self.logger = LayerLogger(f"provider.{self.name}")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch(self, url: str, proxy_mode: str = "auto", attempt: int = 1) -> ProviderResult:
        """
        Call the provider once for ``url``.

        Returns:
            ProviderResult with content on success, a hint on failure
        """
        started = time.monotonic()
        try:
            response = await self._request(url, proxy_mode)
        except FetchTimeoutError:
            return self._finish(url, None, None, started, attempt, hint="timeout")
        except FetchError as e:
            self.logger.log_error(str(e), error_type="network_error", url=url)
            return self._finish(url, None, None, started, attempt, hint="network_error")

        if not 200 <= response.status_code < 300:
            return self._finish(
                url, None, response.status_code, started, attempt,
                hint=f"http_{response.status_code}",
            )

        try:
            content = self._read_content(response)
        except ValueError as e:
            self.logger.log_error(
                f"Unreadable response body: {e}", error_type="invalid_response", url=url
            )
            return self._finish(
                url, None, response.status_code, started, attempt, hint="invalid_response"
            )

        return self._finish(url, content or None, response.status_code, started, attempt)

    def _finish(
        self,
        url: str,
        content: Optional[str],
        http_code: Optional[int],
        started: float,
        attempt: int,
        hint: Optional[str] = None,
    ) -> ProviderResult:
        result = ProviderResult(
            provider=self.name,
            content=content,
            http_code=http_code,
            elapsed_ms=elapsed_ms(started),
            hint=hint,
            attempt=attempt,
        )
        self.logger.log_provider_attempt(
            provider=self.name,
            attempt=attempt,
            status=result.status.value,
            http_code=http_code,
            elapsed_ms=result.elapsed_ms,
            url=url,
            hint=hint,
            content_length=len(content) if content else 0,
        )
        return result

    @abstractmethod
    async def _request(self, url: str, proxy_mode: str) -> httpx.Response:
        """Send the provider request."""

    @abstractmethod
    def _read_content(self, response: httpx.Response) -> Optional[str]:
        """Pull page content out of a 2xx response. Raise ValueError if unreadable."""
