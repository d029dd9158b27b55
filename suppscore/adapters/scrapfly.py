"""Scrapfly adapter: JS rendering plus anti-scraping protection bypass."""
from typing import Optional

import httpx

from suppscore.adapters.base import ProviderAdapter
from suppscore.config import config


SCRAPFLY_URL = "https://api.scrapfly.io/scrape"


class ScrapflyAdapter(ProviderAdapter):
    """Scrapfly ``/scrape`` with ``asp`` (anti scraping protection) enabled."""

    name = "scrapfly"
    default_timeout = config.SCRAPFLY_TIMEOUT

    async def _request(self, url: str, proxy_mode: str) -> httpx.Response:
        params = {
            "key": self.api_key,
            "url": url,
            "render_js": "true",
            "asp": "true",
        }
        if proxy_mode == "stealth":
            params["proxy_pool"] = "public_residential_pool"
        return await self.fetcher.get(SCRAPFLY_URL, timeout=self.timeout, params=params)

    def _read_content(self, response: httpx.Response) -> Optional[str]:
        body = response.json()
        result = body.get("result") if isinstance(body, dict) else None
        if isinstance(result, dict) and isinstance(result.get("content"), str):
            return result["content"]
        return None
