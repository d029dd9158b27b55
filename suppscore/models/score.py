"""
Scoring models: the normalized score payload and the scoring request.
"""
import math
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from suppscore.models.product import CamelModel


SCORE_FIELDS = ("score", "purity", "effectiveness", "safety", "value")


def clamp_score(value: Any) -> int:
    """
    Round a number and clamp it to [0, 100].

    Anything that is not a finite number (None, strings, NaN, bools) becomes 0.
    Idempotent: clamp_score(clamp_score(x)) == clamp_score(x).
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return 0
        else:
            return 0
    if not math.isfinite(value):
        return 0
    return int(max(0, min(100, round(value))))


def clean_string_list(value: Any, limit: int) -> List[str]:
    """Keep non-empty strings only, stripped, truncated to ``limit`` items."""
    if not isinstance(value, list):
        return []
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items[:limit]


class ScorePayload(BaseModel):
    """Quality score with its sub-scores and short explanations."""
    score: int = Field(0, ge=0, le=100)
    purity: int = Field(0, ge=0, le=100)
    effectiveness: int = Field(0, ge=0, le=100)
    safety: int = Field(0, ge=0, le=100)
    value: int = Field(0, ge=0, le=100)
    highlights: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, data: Any, max_items: int = 3) -> "ScorePayload":
        """Build a payload from untrusted JSON, defaulting and clamping every field."""
        if not isinstance(data, dict):
            data = {}
        numbers = {name: clamp_score(data.get(name)) for name in SCORE_FIELDS}
        return cls(
            **numbers,
            highlights=clean_string_list(data.get("highlights"), max_items),
            concerns=clean_string_list(data.get("concerns"), max_items),
        )

    @classmethod
    def zero(cls) -> "ScorePayload":
        return cls()


class ScoreRequest(CamelModel):
    """
    Body of the scoring endpoint.

    Accepts the legacy ``supplementFacts: {raw}`` shape and normalizes it
    into ``facts`` once, here.
    """
    title: str
    ingredients: List[str] = Field(default_factory=list)
    facts: str = ""
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_body(cls, body: Any) -> "ScoreRequest":
        """
        Normalize a raw request body.

        Raises:
            ValueError: body is not an object or has no usable title
        """
        if not isinstance(body, dict):
            raise ValueError("Request body must be a JSON object")

        title = body.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("Missing required field: title")

        facts = body.get("facts")
        if not isinstance(facts, str) or not facts.strip():
            legacy = body.get("supplementFacts")
            if isinstance(legacy, dict):
                facts = legacy.get("raw")
            elif isinstance(legacy, str):
                facts = legacy
        facts = facts if isinstance(facts, str) else ""

        ingredients = body.get("ingredients")
        if isinstance(ingredients, str):
            ingredients = [part.strip() for part in ingredients.split(",")]

        return cls(
            title=title.strip(),
            ingredients=clean_string_list(ingredients, limit=500),
            facts=facts.strip(),
            warnings=clean_string_list(body.get("warnings"), limit=50),
        )


class ScoreMeta(CamelModel):
    """Scoring endpoint metadata."""
    model: str
    ts: str
    chain: list = Field(default_factory=list)
    error: Optional[str] = None
