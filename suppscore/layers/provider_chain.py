"""
Provider Chain - obtains page content from the first scraping backend that
returns something usable.

Adapters run strictly in order. Each attempt becomes one ChainStep; blocked
content is discarded and the chain escalates to the next adapter.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from suppscore.adapters.base import ProviderAdapter, ProviderResult
from suppscore.adapters.firecrawl import FirecrawlCrawlAdapter, FirecrawlExtractAdapter
from suppscore.adapters.scraperapi import ScraperAPIAdapter
from suppscore.adapters.scrapfly import ScrapflyAdapter
from suppscore.config import config
from suppscore.layers.block_detection import detect_block
from suppscore.models.product import ChainStep, StepStatus
from suppscore.utils.http import HttpFetcher
from suppscore.utils.logger import LayerLogger
from suppscore.utils.retry import RetryPolicy, exponential_backoff, run_with_retry


STEALTH_PROXY = "stealth"


@dataclass
class ChainOutcome:
    """Everything the provider chain learned about one URL."""
    html: Optional[str] = None
    source: Optional[str] = None
    steps: List[ChainStep] = field(default_factory=list)
    tried: List[str] = field(default_factory=list)
    status_codes: List[int] = field(default_factory=list)
    provider_statuses: Dict[str, str] = field(default_factory=dict)
    blocked_signatures: List[str] = field(default_factory=list)

    @property
    def html_returned(self) -> bool:
        return bool(self.html)


def default_adapters(fetcher: Optional[HttpFetcher] = None) -> List[ProviderAdapter]:
    """Adapters in priority order, keyed from the environment."""
    return [
        FirecrawlExtractAdapter(config.FIRECRAWL_API_KEY, fetcher=fetcher),
        FirecrawlCrawlAdapter(config.FIRECRAWL_API_KEY, fetcher=fetcher),
        ScrapflyAdapter(config.SCRAPFLY_API_KEY, fetcher=fetcher),
        ScraperAPIAdapter(config.SCRAPERAPI_KEY, fetcher=fetcher),
    ]


class ProviderChain:
    """
    Ordered list of scraping strategies.

    Key behaviors:
    - Adapters without an API key are skipped
    - Firecrawl gets one retry with the stealth proxy on HTTP 429/400
    - Challenge pages count as failures and trigger escalation
    """

    def __init__(
        self,
        adapters: Optional[List[ProviderAdapter]] = None,
        retry_backoff: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.adapters = adapters if adapters is not None else default_adapters()
        self.retry_backoff = retry_backoff
        self.sleep = sleep
        self.logger = LayerLogger("provider_chain")

    async def run(
        self,
        url: str,
        proxy_mode: str = "auto",
        force_scrapfly: bool = False,
    ) -> ChainOutcome:
        """
        Try each adapter until one returns unblocked content.

        Args:
            url: product page URL
            proxy_mode: proxy mode for the first attempt of each adapter
            force_scrapfly: skip the Firecrawl strategies

        Returns:
            ChainOutcome; ``html`` is None when every adapter failed
        """
        outcome = ChainOutcome()
        self.logger.log_action("provider_chain", "started", url=url, proxy_mode=proxy_mode,
                               force_scrapfly=force_scrapfly)

        for adapter in self.adapters:
            if force_scrapfly and adapter.skipped_when_forcing_scrapfly:
                outcome.provider_statuses[adapter.name] = "not_attempted"
                self.logger.log_decision("skip_provider", "force_scrapfly", url=url, provider=adapter.name)
                continue
            if not adapter.is_configured():
                outcome.provider_statuses[adapter.name] = "not_configured"
                self.logger.log_decision("skip_provider", "missing_api_key", url=url, provider=adapter.name)
                continue

            outcome.tried.append(adapter.name)
            attempts = await self._run_adapter(adapter, url, proxy_mode)

            for result in attempts[:-1]:
                self._record(outcome, result)

            final = attempts[-1]
            if final.content:
                verdict = detect_block(final.content)
                if verdict.blocked:
                    final.hint = f"blocked:{verdict.signature}"
                    self._record(outcome, final, status=StepStatus.ERROR)
                    outcome.provider_statuses[adapter.name] = "blocked"
                    outcome.blocked_signatures.append(verdict.signature)
                    self.logger.log_fallback(
                        from_source=adapter.name,
                        to_source="next_provider",
                        reason="blocked_page",
                        url=url,
                        signature=verdict.signature,
                    )
                    continue

                self._record(outcome, final)
                outcome.provider_statuses[adapter.name] = "success"
                outcome.html = final.content
                outcome.source = adapter.name
                self.logger.log_action(
                    "provider_chain", "completed", url=url, source=adapter.name,
                    tried=outcome.tried, content_length=len(final.content),
                )
                return outcome

            self._record(outcome, final)
            outcome.provider_statuses[adapter.name] = (
                "empty" if final.status == StepStatus.EMPTY else "failed"
            )
            self.logger.log_fallback(
                from_source=adapter.name,
                to_source="next_provider",
                reason=final.hint or "empty_content",
                url=url,
                http_code=final.http_code,
            )

        self.logger.log_error(
            "All providers failed", error_type="no_content", url=url,
            tried=outcome.tried, status_codes=outcome.status_codes,
        )
        return outcome

    async def _run_adapter(
        self,
        adapter: ProviderAdapter,
        url: str,
        proxy_mode: str,
    ) -> List[ProviderResult]:
        attempts: List[ProviderResult] = []

        async def attempt_once(attempt: int) -> ProviderResult:
            mode = proxy_mode if attempt == 1 else STEALTH_PROXY
            result = await adapter.fetch(url, proxy_mode=mode, attempt=attempt)
            attempts.append(result)
            return result

        policy = RetryPolicy(
            max_attempts=2 if adapter.retry_status_codes else 1,
            retry_on_result=lambda r: not r.content and r.http_code in adapter.retry_status_codes,
            delay=exponential_backoff(self.retry_backoff),
        )

        def on_retry(attempt: int, result: ProviderResult) -> None:
            self.logger.log_fallback(
                from_source=f"{adapter.name}:{proxy_mode}",
                to_source=f"{adapter.name}:{STEALTH_PROXY}",
                reason=f"http_{result.http_code}",
                url=url,
                attempt=attempt,
            )

        await run_with_retry(attempt_once, policy, sleep=self.sleep, on_retry=on_retry)
        return attempts

    @staticmethod
    def _record(
        outcome: ChainOutcome,
        result: ProviderResult,
        status: Optional[StepStatus] = None,
    ) -> None:
        step = result.to_step()
        if status is not None:
            step.status = status
        outcome.steps.append(step)
        if result.http_code is not None:
            outcome.status_codes.append(result.http_code)
