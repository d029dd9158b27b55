"""
Firecrawl adapters: the primary structured extractor and the crawler-mode
secondary. Both accept a proxy mode ("auto" by default, "stealth" on retry).
"""
from typing import Optional

import httpx

from suppscore.adapters.base import ProviderAdapter
from suppscore.config import config


FIRECRAWL_BASE_URL = "https://api.firecrawl.dev/v1"


def _content_from_body(response: httpx.Response) -> Optional[str]:
    # {"data": {"content": "..."}} with markdown/html as alternates
    body = response.json()
    data = body.get("data") if isinstance(body, dict) else None
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict):
        return None
    for key in ("content", "html", "markdown"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


class FirecrawlExtractAdapter(ProviderAdapter):
    """Firecrawl ``/v1/extract``."""

    name = "firecrawl-extract"
    default_timeout = config.FIRECRAWL_EXTRACT_TIMEOUT
    retry_status_codes = frozenset({400, 429})
    skipped_when_forcing_scrapfly = True

    # Firecrawl's own processing budget, inside our network timeout
    INTERNAL_TIMEOUT_MS = 10000

    async def _request(self, url: str, proxy_mode: str) -> httpx.Response:
        return await self.fetcher.post(
            f"{FIRECRAWL_BASE_URL}/extract",
            timeout=self.timeout,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            json={
                "url": url,
                "timeout": self.INTERNAL_TIMEOUT_MS,
                "proxy": proxy_mode,
            },
        )

    def _read_content(self, response: httpx.Response) -> Optional[str]:
        return _content_from_body(response)


class FirecrawlCrawlAdapter(FirecrawlExtractAdapter):
    """Firecrawl ``/v1/crawl`` in markdown mode."""

    name = "firecrawl-crawl"
    default_timeout = config.FIRECRAWL_CRAWL_TIMEOUT

    INTERNAL_TIMEOUT_MS = 20000

    async def _request(self, url: str, proxy_mode: str) -> httpx.Response:
        return await self.fetcher.post(
            f"{FIRECRAWL_BASE_URL}/crawl",
            timeout=self.timeout,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            json={
                "url": url,
                "extractorOptions": {"mode": "markdown"},
                "timeout": self.INTERNAL_TIMEOUT_MS,
                "proxy": proxy_mode,
            },
        )
