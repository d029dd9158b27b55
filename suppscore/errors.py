"""
Exception hierarchy for the extraction and scoring pipeline.

Each exception carries an ``error_code`` matching the failure taxonomy exposed
in HTTP responses and client chain metadata.
"""
from typing import Optional


class SuppScoreError(Exception):
    """Base class for all pipeline errors."""

    error_code = "internal_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ConfigurationError(SuppScoreError):
    """Required environment variables are missing or invalid."""

    error_code = "configuration_error"


class FetchError(SuppScoreError):
    """A network call failed before an HTTP response was received."""

    error_code = "network_error"


class FetchTimeoutError(FetchError):
    """A network call exceeded its per-call timeout."""

    error_code = "timeout"


class LLMHTTPError(SuppScoreError):
    """The scoring backend answered with a non-2xx status."""

    error_code = "llm_http_error"

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message or f"LLM backend returned HTTP {status_code}")
        self.status_code = status_code


class LLMNetworkError(SuppScoreError):
    """The scoring backend could not be reached."""

    error_code = "llm_network_error"


class ScoringError(SuppScoreError):
    """The scoring call failed and will not be retried."""

    error_code = "scoring_failed"

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class QuotaExceededError(ScoringError):
    """The scoring backend refused the call for quota reasons (HTTP 429)."""

    error_code = "openrouter_quota"

    def __init__(self, message: str = "Scoring quota exceeded. Please try again later."):
        super().__init__(message, status_code=503)


class RateLimitExceeded(SuppScoreError):
    """The client token bucket is empty."""

    error_code = "rate_limited"

    def __init__(self, message: str = "Rate limit exceeded. Please wait a minute.",
                 retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after
