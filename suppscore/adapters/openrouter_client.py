"""
OpenRouter chat-completions client used by the scoring call.
"""
from dataclasses import dataclass
from typing import Optional

from suppscore.config import config
from suppscore.errors import FetchError, LLMHTTPError, LLMNetworkError
from suppscore.utils.http import HttpFetcher
from suppscore.utils.logger import LayerLogger


@dataclass
class LLMResponse:
    """Raw completion text from a scoring backend."""
    content: str
    model: str


class OpenRouterClient:
    """
    Sends one JSON-mode completion request per call.

    Temperature is fixed at 0. Non-2xx answers raise ``LLMHTTPError`` and
    transport failures raise ``LLMNetworkError``; retry decisions belong to
    the caller.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        fetcher: Optional[HttpFetcher] = None,
        timeout: Optional[float] = None,
        url: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else config.OPENROUTER_API_KEY
        self.model = model or config.OPENROUTER_MODEL
        self.fetcher = fetcher or HttpFetcher()
        self.timeout = timeout if timeout is not None else config.LLM_TIMEOUT
        self.url = url or config.OPENROUTER_URL
        self.logger = LayerLogger("openrouter_client")

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def complete_json(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        try:
            response = await self.fetcher.post(
                self.url,
                timeout=self.timeout,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "temperature": 0,
                    "response_format": {"type": "json_object"},
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_prompt},
                    ],
                },
            )
        except FetchError as e:
            raise LLMNetworkError(str(e)) from e

        if not 200 <= response.status_code < 300:
            raise LLMHTTPError(response.status_code, response.text[:300])

        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"] or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMHTTPError(502, f"Malformed completion body: {e}") from e

        return LLMResponse(content=content, model=body.get("model") or self.model)
