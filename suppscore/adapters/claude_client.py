"""
Claude API client, the alternate scoring backend (``LLM_PROVIDER=anthropic``).

Maps Anthropic SDK failures onto the same ``LLMHTTPError`` /
``LLMNetworkError`` contract as the OpenRouter client so the scoring call's
retry policy applies unchanged. The SDK's own retries are disabled.
"""
from typing import Optional

import anthropic

from suppscore.adapters.openrouter_client import LLMResponse
from suppscore.config import config
from suppscore.errors import LLMHTTPError, LLMNetworkError
from suppscore.utils.logger import LayerLogger


JSON_ONLY_SUFFIX = "\n\nRespond with a single JSON object and nothing else."


class ClaudeClient:
    """
    Claude API client for label scoring.

    Temperature=0 for deterministic output.
    """

    MAX_TOKENS = 800

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
        timeout: Optional[float] = None,
    ):
        self.logger = LayerLogger("claude_client")
        self.model = model or config.CLAUDE_MODEL
        api_key = api_key if api_key is not None else config.CLAUDE_API_KEY

        if client is not None:
            self.client = client
        elif not api_key:
            self.logger.log_error("CLAUDE_API_KEY not found in environment")
            self.client = None
        else:
            self.client = anthropic.AsyncAnthropic(
                api_key=api_key,
                max_retries=0,
                timeout=timeout if timeout is not None else config.LLM_TIMEOUT,
            )
            self.logger.log_action("init", "completed", model=self.model)

    def is_available(self) -> bool:
        """Check if Claude client is properly configured."""
        return self.client is not None

    async def complete_json(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        if self.client is None:
            raise LLMHTTPError(401, "CLAUDE_API_KEY not configured")

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.MAX_TOKENS,
                temperature=0,
                system=system_prompt + JSON_ONLY_SUFFIX,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APIStatusError as e:
            raise LLMHTTPError(e.status_code, str(e)) from e
        except anthropic.APIConnectionError as e:
            raise LLMNetworkError(str(e)) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        self.logger.log_action(
            "complete_json",
            "completed",
            model=self.model,
            tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        return LLMResponse(content=text, model=self.model)
