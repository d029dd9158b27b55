"""ScraperAPI adapter: premium proxy pool with JS rendering, pinned to US exits."""
from typing import Optional

import httpx

from suppscore.adapters.base import ProviderAdapter
from suppscore.config import config


SCRAPERAPI_URL = "https://api.scraperapi.com"

# Bodies this short are error stubs, not product pages
MIN_BODY_LENGTH = 1000


class ScraperAPIAdapter(ProviderAdapter):
    """ScraperAPI with ``render=true`` and ``premium=true``."""

    name = "scraperapi"
    default_timeout = config.SCRAPERAPI_TIMEOUT

    def __init__(self, *args, country_code: str = "us", **kwargs):
        super().__init__(*args, **kwargs)
        self.country_code = country_code

    async def _request(self, url: str, proxy_mode: str) -> httpx.Response:
        return await self.fetcher.get(
            SCRAPERAPI_URL,
            timeout=self.timeout,
            params={
                "api_key": self.api_key,
                "url": url,
                "render": "true",
                "premium": "true",
                "country_code": self.country_code,
            },
        )

    def _read_content(self, response: httpx.Response) -> Optional[str]:
        body = response.text
        if len(body) <= MIN_BODY_LENGTH:
            return None
        return body
