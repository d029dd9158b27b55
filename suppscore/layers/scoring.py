"""
Scoring Layer - asks an LLM to grade a supplement label.

One fixed system prompt, temperature 0, JSON-object output. Transient
failures (5xx, network) are retried up to three times with a short random
pause; quota refusals (429) are surfaced at once.
"""
import asyncio
import json
import re
import time
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from suppscore.adapters.claude_client import ClaudeClient
from suppscore.adapters.openrouter_client import LLMResponse, OpenRouterClient
from suppscore.config import config
from suppscore.errors import LLMHTTPError, LLMNetworkError, QuotaExceededError, ScoringError
from suppscore.models.product import ChainStep, StepStatus
from suppscore.models.score import ScorePayload
from suppscore.utils.http import elapsed_ms
from suppscore.utils.logger import LayerLogger
from suppscore.utils.retry import RetryPolicy, flat_jitter, run_with_retry


MAX_ATTEMPTS = 3
MAX_JITTER_SECONDS = 0.5
MAX_ITEMS = 3
MAX_FACTS_CHARS = 3000

SYSTEM_PROMPT = """You are SupplementScoreAI, a strict dietary-supplement label analyst.
Grade the product using ONLY the label data provided. Never invent ingredients or doses.

Return ONLY a JSON object with exactly this shape:
{"score": 0-100, "purity": 0-100, "effectiveness": 0-100, "safety": 0-100, "value": 0-100,
 "highlights": ["..."], "concerns": ["..."]}

Rubric:
- purity: absence of fillers, artificial colors, sweeteners and proprietary blends.
- effectiveness: clinically relevant doses of well-studied ingredient forms.
- safety: stimulant load, allergens, interactions, upper intake limits.
- value: label transparency relative to what a buyer is told.
- score: your overall judgement, consistent with the four sub-scores.

Rules:
- Every number is an integer from 0 to 100. When uncertain, use 0.
- "highlights" and "concerns": 1 to 3 short findings each, at most 80 characters.
- If per-ingredient doses are not disclosed, say so in concerns."""


def build_user_prompt(title: str, ingredients: List[str], facts: str, warnings: List[str]) -> str:
    """Label data as a JSON document for the user turn."""
    return json.dumps({
        "title": title,
        "ingredients": ingredients,
        "facts": (facts or "")[:MAX_FACTS_CHARS],
        "warnings": warnings,
    })


_GREEDY_OBJECT = re.compile(r"\{[\s\S]*\}")
_FLAT_OBJECT = re.compile(r"\{[^{}]*\}")


def extract_json(raw: Optional[str]) -> Optional[dict]:
    """
    Parse the first JSON object out of model output.

    Tries the whole string, then the widest ``{...}`` span, then the first
    un-nested ``{...}`` span. Returns None when nothing parses to an object.
    """
    if not raw:
        return None
    attempts = [raw.strip()]
    greedy = _GREEDY_OBJECT.search(raw)
    if greedy:
        attempts.append(greedy.group(0))
    flat = _FLAT_OBJECT.search(raw)
    if flat:
        attempts.append(flat.group(0))

    for candidate in attempts:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _is_transient(error: BaseException) -> bool:
    if isinstance(error, LLMNetworkError):
        return True
    return isinstance(error, LLMHTTPError) and error.status_code >= 500


def default_backend():
    """LLM client selected by ``LLM_PROVIDER``."""
    if config.LLM_PROVIDER == "anthropic":
        return ClaudeClient()
    return OpenRouterClient()


class ScoringService:
    """
    Grades one label per call.

    ``backend`` is any object with ``is_available()`` and an async
    ``complete_json(system_prompt, user_prompt) -> LLMResponse``.
    """

    def __init__(
        self,
        backend=None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.backend = backend or default_backend()
        self.sleep = sleep
        self.max_attempts = max_attempts
        self.logger = LayerLogger("scoring")

    def is_available(self) -> bool:
        return self.backend.is_available()

    @property
    def model(self) -> str:
        return getattr(self.backend, "model", "unknown")

    async def score(
        self,
        title: str,
        ingredients: List[str],
        facts: str,
        warnings: List[str],
    ) -> Tuple[ScorePayload, List[ChainStep]]:
        """
        Score a label.

        Returns:
            (normalized payload, one ChainStep per attempt)

        Raises:
            QuotaExceededError: backend answered 429
            ScoringError: any other failure, after retries for transient ones
        """
        steps: List[ChainStep] = []
        user_prompt = build_user_prompt(title, ingredients, facts, warnings)
        self.logger.log_action(
            "score", "started", title=title[:80], ingredients=len(ingredients),
            facts_length=len(facts or ""), model=self.model,
        )

        async def attempt_once(attempt: int) -> LLMResponse:
            started = time.monotonic()
            try:
                response = await self.backend.complete_json(SYSTEM_PROMPT, user_prompt)
            except LLMHTTPError as e:
                steps.append(ChainStep(provider="score", attempt=attempt, status=StepStatus.ERROR,
                                       elapsed_ms=elapsed_ms(started), http_code=e.status_code,
                                       hint=f"http_{e.status_code}"))
                raise
            except LLMNetworkError:
                steps.append(ChainStep(provider="score", attempt=attempt, status=StepStatus.ERROR,
                                       elapsed_ms=elapsed_ms(started), hint="network_error"))
                raise
            steps.append(ChainStep(provider="score", attempt=attempt, status=StepStatus.OK,
                                   elapsed_ms=elapsed_ms(started), http_code=200))
            return response

        def on_retry(attempt: int, error: Any) -> None:
            self.logger.log_fallback(
                from_source=f"attempt_{attempt}", to_source=f"attempt_{attempt + 1}",
                reason=str(error)[:200],
            )

        policy = RetryPolicy(
            max_attempts=self.max_attempts,
            retry_on_exception=_is_transient,
            delay=flat_jitter(MAX_JITTER_SECONDS),
        )

        try:
            response = await run_with_retry(attempt_once, policy, sleep=self.sleep, on_retry=on_retry)
        except LLMHTTPError as e:
            self.logger.log_error(str(e), error_type=e.error_code, status_code=e.status_code,
                                  attempts=len(steps))
            if e.status_code == 429:
                raise QuotaExceededError() from e
            raise ScoringError(f"Scoring backend returned HTTP {e.status_code}") from e
        except LLMNetworkError as e:
            self.logger.log_error(str(e), error_type=e.error_code, attempts=len(steps))
            raise ScoringError(f"Scoring backend unreachable: {e}") from e

        data = extract_json(response.content)
        if data is None:
            self.logger.log_error(
                "Model returned no parseable JSON", error_type="invalid_json",
                content_length=len(response.content or ""),
                head=(response.content or "")[:200],
            )
            raise ScoringError("Scoring backend returned invalid JSON", status_code=502)

        payload = ScorePayload.from_raw(data, max_items=MAX_ITEMS)
        self.logger.log_action("score", "completed", score=payload.score, attempts=len(steps),
                               model=response.model)
        return payload, steps
