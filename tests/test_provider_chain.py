import json

import httpx
import pytest

from suppscore.adapters.firecrawl import FirecrawlCrawlAdapter, FirecrawlExtractAdapter
from suppscore.adapters.scraperapi import ScraperAPIAdapter
from suppscore.adapters.scrapfly import ScrapflyAdapter
from suppscore.layers.provider_chain import ProviderChain
from suppscore.models.product import StepStatus


URL = "https://magnum.example/products/quattro-protein"
CHALLENGE = "<html><head><title>Just a moment...</title></head><body>Checking your browser</body></html>"


class Backend:
    """
    Fake scraping backends behind one MockTransport.

    ``routes`` maps a provider name to a list of responses consumed in order
    (the last one repeats). A response is an ``httpx.Response`` or an
    exception class to raise.
    """

    def __init__(self, routes):
        self.routes = {name: list(responses) for name, responses in routes.items()}
        self.requests = []

    @staticmethod
    def provider_for(request):
        host = request.url.host
        if host == "api.firecrawl.dev":
            return "firecrawl-extract" if request.url.path.endswith("/extract") else "firecrawl-crawl"
        if host == "api.scrapfly.io":
            return "scrapfly"
        return "scraperapi"

    def __call__(self, request):
        name = self.provider_for(request)
        self.requests.append((name, request))
        responses = self.routes.get(name) or [httpx.Response(404, text="not found")]
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, type) and issubclass(response, Exception):
            raise response("simulated failure", request=request)
        return response

    def calls_to(self, name):
        return [request for provider, request in self.requests if provider == name]


def firecrawl_ok(content):
    return httpx.Response(200, json={"success": True, "data": {"content": content}})


def scrapfly_ok(content):
    return httpx.Response(200, json={"result": {"content": content, "status_code": 200}})


def build_chain(backend, fetcher_factory, sleeps, firecrawl_key="fc-key", scrapfly_key="sf-key",
                scraperapi_key="sa-key"):
    fetcher = fetcher_factory(backend)
    adapters = [
        FirecrawlExtractAdapter(firecrawl_key, fetcher=fetcher),
        FirecrawlCrawlAdapter(firecrawl_key, fetcher=fetcher),
        ScrapflyAdapter(scrapfly_key, fetcher=fetcher),
        ScraperAPIAdapter(scraperapi_key, fetcher=fetcher),
    ]
    return ProviderChain(adapters=adapters, sleep=sleeps)


@pytest.mark.asyncio
async def test_first_adapter_success(fetcher_factory, sleeps, shopify_page):
    backend = Backend({"firecrawl-extract": [firecrawl_ok(shopify_page)]})
    chain = build_chain(backend, fetcher_factory, sleeps)

    outcome = await chain.run(URL)

    assert outcome.html == shopify_page
    assert outcome.source == "firecrawl-extract"
    assert outcome.tried == ["firecrawl-extract"]
    assert [s.status for s in outcome.steps] == [StepStatus.OK]
    assert outcome.provider_statuses == {"firecrawl-extract": "success"}

    body = json.loads(backend.calls_to("firecrawl-extract")[0].content)
    assert body == {"url": URL, "timeout": 10000, "proxy": "auto"}


@pytest.mark.asyncio
async def test_rate_limited_firecrawl_retries_with_stealth(fetcher_factory, sleeps, shopify_page):
    backend = Backend({
        "firecrawl-extract": [httpx.Response(429, json={"error": "rate limited"}), firecrawl_ok(shopify_page)],
    })
    chain = build_chain(backend, fetcher_factory, sleeps)

    outcome = await chain.run(URL)

    proxies = [json.loads(r.content)["proxy"] for r in backend.calls_to("firecrawl-extract")]
    assert proxies == ["auto", "stealth"]
    assert sleeps.calls == [1.0]
    assert outcome.source == "firecrawl-extract"
    assert [(s.attempt, s.status, s.http_code, s.hint) for s in outcome.steps] == [
        (1, StepStatus.ERROR, 429, "http_429"),
        (2, StepStatus.OK, 200, None),
    ]


@pytest.mark.asyncio
async def test_retry_budget_is_one_then_escalates(fetcher_factory, sleeps, shopify_page):
    backend = Backend({
        "firecrawl-extract": [httpx.Response(400, json={"error": "bad request"})],
        "firecrawl-crawl": [firecrawl_ok(shopify_page)],
    })
    chain = build_chain(backend, fetcher_factory, sleeps)

    outcome = await chain.run(URL)

    assert len(backend.calls_to("firecrawl-extract")) == 2
    assert outcome.tried == ["firecrawl-extract", "firecrawl-crawl"]
    assert outcome.source == "firecrawl-crawl"
    assert outcome.provider_statuses["firecrawl-extract"] == "failed"
    assert outcome.status_codes == [400, 400, 200]

    crawl_body = json.loads(backend.calls_to("firecrawl-crawl")[0].content)
    assert crawl_body["extractorOptions"] == {"mode": "markdown"}


@pytest.mark.asyncio
async def test_unconfigured_adapters_are_skipped(fetcher_factory, sleeps, shopify_page):
    backend = Backend({"scrapfly": [scrapfly_ok(shopify_page)]})
    chain = build_chain(backend, fetcher_factory, sleeps, firecrawl_key=None)

    outcome = await chain.run(URL)

    assert outcome.source == "scrapfly"
    assert outcome.tried == ["scrapfly"]
    assert outcome.provider_statuses["firecrawl-extract"] == "not_configured"
    assert outcome.provider_statuses["firecrawl-crawl"] == "not_configured"
    assert backend.calls_to("firecrawl-extract") == []

    params = backend.calls_to("scrapfly")[0].url.params
    assert params["asp"] == "true"
    assert params["render_js"] == "true"
    assert params["url"] == URL


@pytest.mark.asyncio
async def test_force_scrapfly_bypasses_firecrawl(fetcher_factory, sleeps, shopify_page):
    backend = Backend({
        "firecrawl-extract": [firecrawl_ok(shopify_page)],
        "scrapfly": [scrapfly_ok(shopify_page)],
    })
    chain = build_chain(backend, fetcher_factory, sleeps)

    outcome = await chain.run(URL, force_scrapfly=True)

    assert outcome.source == "scrapfly"
    assert backend.calls_to("firecrawl-extract") == []
    assert outcome.provider_statuses["firecrawl-extract"] == "not_attempted"
    assert outcome.provider_statuses["firecrawl-crawl"] == "not_attempted"


@pytest.mark.asyncio
async def test_challenge_page_escalates(fetcher_factory, sleeps, shopify_page):
    backend = Backend({
        "firecrawl-extract": [firecrawl_ok(CHALLENGE)],
        "firecrawl-crawl": [httpx.Response(404, json={"error": "not found"})],
        "scrapfly": [scrapfly_ok(shopify_page)],
    })
    chain = build_chain(backend, fetcher_factory, sleeps)

    outcome = await chain.run(URL)

    assert outcome.source == "scrapfly"
    assert outcome.html == shopify_page
    assert outcome.blocked_signatures == ["cloudflare_challenge"]
    assert outcome.provider_statuses["firecrawl-extract"] == "blocked"
    first = outcome.steps[0]
    assert first.status == StepStatus.ERROR
    assert first.hint == "blocked:cloudflare_challenge"
    assert first.http_code == 200


@pytest.mark.asyncio
async def test_timeout_is_recorded_without_http_code(fetcher_factory, sleeps, shopify_page):
    backend = Backend({"scrapfly": [httpx.ReadTimeout], "scraperapi": [httpx.Response(200, text=shopify_page)]})
    chain = build_chain(backend, fetcher_factory, sleeps, firecrawl_key=None)

    outcome = await chain.run(URL)

    timeout_step = outcome.steps[0]
    assert timeout_step.provider == "scrapfly"
    assert timeout_step.hint == "timeout"
    assert timeout_step.http_code is None
    assert outcome.source == "scraperapi"
    assert outcome.tried == ["scrapfly", "scraperapi"]


@pytest.mark.asyncio
async def test_short_scraperapi_body_is_empty(fetcher_factory, sleeps):
    backend = Backend({"scraperapi": [httpx.Response(200, text="<html>tiny</html>")]})
    chain = build_chain(backend, fetcher_factory, sleeps, firecrawl_key=None, scrapfly_key=None)

    outcome = await chain.run(URL)

    assert outcome.html is None
    assert outcome.steps[0].status == StepStatus.EMPTY
    assert outcome.provider_statuses["scraperapi"] == "empty"

    params = backend.calls_to("scraperapi")[0].url.params
    assert params["premium"] == "true"
    assert params["country_code"] == "us"


@pytest.mark.asyncio
async def test_every_adapter_failing(fetcher_factory, sleeps):
    backend = Backend({})
    chain = build_chain(backend, fetcher_factory, sleeps)

    outcome = await chain.run(URL)

    assert outcome.html is None
    assert outcome.html_returned is False
    assert outcome.source is None
    assert len(outcome.steps) == 4
    assert outcome.status_codes == [404, 404, 404, 404]
    assert all(step.hint == "http_404" for step in outcome.steps)
    assert sleeps.calls == []
    assert set(outcome.provider_statuses.values()) == {"failed"}
