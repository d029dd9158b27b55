"""
Configuration management for the supplement extraction and scoring service.
Handles environment variables, provider keys and pipeline constants.
"""
import os
from typing import Dict, List, Optional
from dotenv import load_dotenv

from suppscore.errors import ConfigurationError

load_dotenv()


def _csv(value: Optional[str]) -> List[str]:
    return [item.strip().lower() for item in (value or "").split(",") if item.strip()]


class Config:
    """Application configuration loaded from environment variables."""

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Scraping providers (each optional - a missing key skips that adapter)
    FIRECRAWL_API_KEY: Optional[str] = os.getenv("FIRECRAWL_API_KEY")
    SCRAPFLY_API_KEY: Optional[str] = os.getenv("SCRAPFLY_API_KEY")
    SCRAPERAPI_KEY: Optional[str] = os.getenv("SCRAPERAPI_KEY")
    OCRSPACE_API_KEY: Optional[str] = os.getenv("OCRSPACE_API_KEY")

    # Scoring LLM
    LLM_PROVIDER: str = os.getenv("LLM_PROVIDER", "openrouter")  # openrouter or anthropic
    OPENROUTER_API_KEY: Optional[str] = os.getenv("OPENROUTER_API_KEY")
    OPENROUTER_MODEL: str = os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")
    OPENROUTER_URL: str = os.getenv(
        "OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions"
    )
    CLAUDE_API_KEY: Optional[str] = os.getenv("CLAUDE_API_KEY")
    CLAUDE_MODEL: str = os.getenv("CLAUDE_MODEL", "claude-3-5-haiku-20241022")

    # Client-side functions transport
    FUNCTIONS_BASE_URL: str = os.getenv("FUNCTIONS_BASE_URL", "http://localhost:8000/api")
    FUNCTIONS_API_KEY: Optional[str] = os.getenv("FUNCTIONS_API_KEY")

    # Domains that are refused before any provider is called
    BLOCKED_DOMAINS: List[str] = _csv(
        os.getenv("BLOCKED_DOMAINS", "amazon.com,walmart.com,target.com")
    )

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")  # json or console

    # Per-call timeouts in seconds
    FIRECRAWL_EXTRACT_TIMEOUT: float = float(os.getenv("FIRECRAWL_EXTRACT_TIMEOUT", "20"))
    FIRECRAWL_CRAWL_TIMEOUT: float = float(os.getenv("FIRECRAWL_CRAWL_TIMEOUT", "25"))
    SCRAPFLY_TIMEOUT: float = float(os.getenv("SCRAPFLY_TIMEOUT", "30"))
    SCRAPERAPI_TIMEOUT: float = float(os.getenv("SCRAPERAPI_TIMEOUT", "60"))
    OCR_SPACE_TIMEOUT: float = float(os.getenv("OCR_SPACE_TIMEOUT", "10"))
    LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "30"))
    EXTRACT_CALL_TIMEOUT: float = float(os.getenv("EXTRACT_CALL_TIMEOUT", "30"))
    SCORE_CALL_TIMEOUT: float = float(os.getenv("SCORE_CALL_TIMEOUT", "45"))

    # Client chain
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", str(24 * 60 * 60)))
    RATE_LIMIT_CAPACITY: int = int(os.getenv("RATE_LIMIT_CAPACITY", "5"))
    RATE_LIMIT_WINDOW_SECONDS: float = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

    @classmethod
    def is_llm_configured(cls) -> bool:
        """Check if the selected scoring backend has a key."""
        if cls.LLM_PROVIDER == "anthropic":
            return bool(cls.CLAUDE_API_KEY)
        return bool(cls.OPENROUTER_API_KEY)

    @classmethod
    def configured_providers(cls) -> List[str]:
        """Return the scraping providers that have API keys."""
        providers = []
        if cls.FIRECRAWL_API_KEY:
            providers.append("firecrawl")
        if cls.SCRAPFLY_API_KEY:
            providers.append("scrapfly")
        if cls.SCRAPERAPI_KEY:
            providers.append("scraperapi")
        return providers

    @classmethod
    def validate(cls) -> Dict[str, List[str]]:
        """
        Inspect the environment without raising.

        Returns:
            Dict with "errors" (fatal for the server) and "warnings".
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not cls.is_llm_configured():
            key = "CLAUDE_API_KEY" if cls.LLM_PROVIDER == "anthropic" else "OPENROUTER_API_KEY"
            errors.append(f"{key} is required for scoring")
        elif cls.LLM_PROVIDER != "anthropic" and not cls.OPENROUTER_API_KEY.startswith("sk-or-"):
            warnings.append("OPENROUTER_API_KEY does not start with 'sk-or-'")

        if not cls.configured_providers():
            errors.append(
                "At least one of FIRECRAWL_API_KEY, SCRAPFLY_API_KEY, SCRAPERAPI_KEY is required"
            )

        if not cls.OCRSPACE_API_KEY:
            warnings.append("OCRSPACE_API_KEY not set - label image OCR fallback disabled")

        if cls.LLM_PROVIDER not in ("openrouter", "anthropic"):
            errors.append(f"Unknown LLM_PROVIDER '{cls.LLM_PROVIDER}'")

        return {"errors": errors, "warnings": warnings}

    @classmethod
    def require_valid(cls) -> None:
        """Raise ConfigurationError when the environment cannot serve requests."""
        result = cls.validate()
        if result["errors"]:
            raise ConfigurationError("; ".join(result["errors"]))


config = Config()
