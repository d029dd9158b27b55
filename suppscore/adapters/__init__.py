"""Adapters package initialization."""
from suppscore.adapters.base import ProviderAdapter, ProviderResult
from suppscore.adapters.firecrawl import FirecrawlCrawlAdapter, FirecrawlExtractAdapter
from suppscore.adapters.scrapfly import ScrapflyAdapter
from suppscore.adapters.scraperapi import ScraperAPIAdapter
from suppscore.adapters.ocr_space import OcrSpaceClient
from suppscore.adapters.openrouter_client import OpenRouterClient
from suppscore.adapters.claude_client import ClaudeClient
from suppscore.adapters.functions_client import FunctionsClient

__all__ = [
    "ProviderAdapter",
    "ProviderResult",
    "FirecrawlExtractAdapter",
    "FirecrawlCrawlAdapter",
    "ScrapflyAdapter",
    "ScraperAPIAdapter",
    "OcrSpaceClient",
    "OpenRouterClient",
    "ClaudeClient",
    "FunctionsClient",
]
