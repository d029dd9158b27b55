"""
Client Chain Orchestrator - one extract+score round trip for a URL.

cache -> rate limit -> extract -> facts selection -> score -> concern
adjustment -> normalize -> cache store.

Ordinary failures never raise: a failed extract yields the default product
with score 0, a failed score keeps the product. Only an empty token bucket
raises (``RateLimitExceeded``).
"""
import hashlib
import re
import time
from typing import Callable, List, Optional, Tuple

from suppscore.adapters.functions_client import FunctionResponse, FunctionsClient
from suppscore.config import config
from suppscore.errors import RateLimitExceeded
from suppscore.layers.rate_limit import TokenBucket
from suppscore.layers.result_cache import ResultCache
from suppscore.models.chain import (
    DEFAULT_TITLE,
    ChainMeta,
    ChainProduct,
    ChainResult,
    ExtractPayload,
)
from suppscore.models.product import ChainStep, StepStatus
from suppscore.models.score import ScorePayload
from suppscore.parsing.heuristics import MIN_FACTS_TOKENS, looks_like_review, token_score
from suppscore.utils.logger import LayerLogger
from suppscore.utils.text import strip_html_to_text


MAX_SCORING_FACTS = 3000
MAX_CLIENT_ITEMS = 5
DOSAGE_CONCERN = "No per-ingredient dosages disclosed"
DROPPED_CONCERN = re.compile(r"ingredient list|no ingredients", re.I)
DOSAGE_WORDS = re.compile(r"dosage|per-ingredient", re.I)
PROTEIN_TITLE = re.compile(r"protein|whey|isolate|casein", re.I)
PROTEIN_FACTS = re.compile(r"protein.*\d+.*g", re.I)


def product_id(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def select_facts(payload: ExtractPayload) -> Tuple[str, str, int]:
    """
    Pick the text sent to the scorer.

    Priority: supplement facts, page markdown, HTML stripped to text, then a
    synthesized ``Ingredients: ...`` line. Each page-derived source needs
    at least two facts tokens and no review/FAQ text near them.

    Returns:
        (facts capped at 3000 chars, source name, token count)
    """
    sources = (
        ("supplement_facts", lambda: payload.supplement_facts),
        ("markdown", lambda: payload.markdown),
        ("html", lambda: strip_html_to_text(payload.html) if payload.html else None),
    )
    for name, read in sources:
        text = read()
        if not text:
            continue
        tokens = token_score(text)
        if tokens >= MIN_FACTS_TOKENS and not looks_like_review(text):
            return text[:MAX_SCORING_FACTS], name, tokens

    if payload.ingredients:
        return ("Ingredients: " + ", ".join(payload.ingredients))[:MAX_SCORING_FACTS], "ingredients", 0
    return "", "none", 0


def adjust_concerns(concerns: List[str], has_ingredients: bool, numeric_doses_present: bool) -> List[str]:
    """
    Replace "missing ingredient list" concerns with a dosage-disclosure one
    when ingredients were found but carry no numeric doses.
    """
    if not has_ingredients or numeric_doses_present:
        return list(concerns)
    adjusted = [c for c in concerns if not DROPPED_CONCERN.search(c)]
    if not any(DOSAGE_WORDS.search(c) for c in adjusted):
        adjusted.insert(0, DOSAGE_CONCERN)
    return adjusted


def product_type_hint(title: str, facts: str) -> str:
    if PROTEIN_TITLE.search(title or "") or PROTEIN_FACTS.search(facts or ""):
        return "protein"
    return "supplement"


class ClientChainOrchestrator:
    """
    Runs extract then score through a functions client.

    The cache and token bucket are per-instance and injectable.
    """

    def __init__(
        self,
        functions_client: Optional[FunctionsClient] = None,
        cache: Optional[ResultCache] = None,
        bucket: Optional[TokenBucket] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.functions = functions_client or FunctionsClient()
        self.cache = cache if cache is not None else ResultCache(clock=clock)
        self.bucket = bucket if bucket is not None else TokenBucket(clock=clock)
        self._clock = clock
        self.logger = LayerLogger("client_chain")

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def run(self, url: str) -> ChainResult:
        """
        Extract and score ``url``.

        Raises:
            RateLimitExceeded: the token bucket is empty and the URL is not cached
        """
        cached = await self.cache.get(url)
        if cached is not None:
            cached.meta.cached = True
            self.logger.log_decision("serve_cached", "cache hit within ttl", url=url)
            return cached

        if not self.bucket.try_consume():
            raise RateLimitExceeded(retry_after=self.bucket.seconds_until_refill())

        result = ChainResult(
            product=ChainProduct(id=product_id(url)),
            meta=ChainMeta(ts=self._now_ms()),
        )
        self.logger.log_action("chain", "started", url=url, tokens_left=self.bucket.tokens)

        extract = await self._invoke("extract", {"url": url}, config.EXTRACT_CALL_TIMEOUT, result)
        if not extract.ok:
            result.meta.error = extract.error or "extract_failed"
            result.meta.extract = {"error": result.meta.error, "httpCode": extract.status_code}
            self.logger.log_action("chain", "extract_failed", url=url, error=result.meta.error)
            return result

        payload = ExtractPayload.from_response(extract.data)
        facts, facts_source, facts_tokens = select_facts(payload)
        result.product = ChainProduct(
            id=result.product.id,
            title=payload.title or DEFAULT_TITLE,
            ingredients=payload.ingredients,
            facts=facts,
            warnings=payload.warnings,
        )
        result.meta.facts_source = facts_source
        result.meta.facts_tokens = facts_tokens
        result.meta.extract_was_weak = facts_tokens < MIN_FACTS_TOKENS and facts_source != "ingredients"
        result.meta.product_type_hint = product_type_hint(result.product.title, facts)
        result.meta.extract = payload.raw_meta or None
        self.logger.log_decision(
            "select_facts", facts_source, url=url, facts_tokens=facts_tokens,
            facts_length=len(facts), extract_was_weak=result.meta.extract_was_weak,
        )

        score_body = {
            "title": result.product.title,
            "ingredients": result.product.ingredients,
            "facts": facts,
            "warnings": result.product.warnings,
            "_meta": {
                "facts_kind": payload.facts_kind or "ingredients_only",
                "numeric_doses_present": payload.numeric_doses_present,
                "ingredients_source": payload.ingredients_source or "html",
                "product_type_hint": result.meta.product_type_hint,
            },
        }
        scored = await self._invoke("score", score_body, config.SCORE_CALL_TIMEOUT, result)
        if scored.ok:
            self._apply_score(result, scored, payload.numeric_doses_present)
        else:
            result.score = ScorePayload.zero()
            result.meta.score = {"error": scored.error or "score_failed", "httpCode": scored.status_code}
            self.logger.log_action("chain", "score_failed", url=url, error=scored.error)

        await self.cache.set(url, result)
        self.logger.log_action(
            "chain", "completed", url=url, score=result.score.score,
            facts_source=facts_source, steps=len(result.meta.chain),
        )
        return result

    async def _invoke(self, name: str, body: dict, timeout: float, result: ChainResult) -> FunctionResponse:
        started = time.monotonic()
        response = await self.functions.invoke(name, body, timeout=timeout)
        step = ChainStep(
            provider=name,
            status=StepStatus.OK if response.ok else StepStatus.ERROR,
            elapsed_ms=int((time.monotonic() - started) * 1000),
            http_code=response.status_code,
            hint=response.error,
        )
        result.meta.chain.append(step)
        return response

    def _apply_score(self, result: ChainResult, response: FunctionResponse, numeric_doses_present: bool):
        data = response.data if isinstance(response.data, dict) else {}
        payload = ScorePayload.from_raw(data, max_items=100)
        concerns = adjust_concerns(payload.concerns, bool(result.product.ingredients), numeric_doses_present)
        result.score = payload.model_copy(update={
            "highlights": payload.highlights[:MAX_CLIENT_ITEMS],
            "concerns": concerns[:MAX_CLIENT_ITEMS],
        })
        meta = data.get("_meta")
        result.meta.score = meta if isinstance(meta, dict) else None
