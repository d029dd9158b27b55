"""
Client chain models: the extract-to-score result, its cache entry and the
normalized view of an extraction response.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field

from suppscore.models.product import CamelModel, ChainStep
from suppscore.models.score import ScorePayload
from suppscore.utils.text import split_ingredient_text


DEFAULT_TITLE = "Unknown Product"


class ChainProduct(CamelModel):
    id: str
    title: str = DEFAULT_TITLE
    ingredients: List[str] = Field(default_factory=list)
    facts: str = ""
    warnings: List[str] = Field(default_factory=list)


class ChainMeta(CamelModel):
    chain: List[ChainStep] = Field(default_factory=list)
    facts_source: str = "none"
    facts_tokens: int = 0
    cached: bool = False
    ts: int = 0
    error: Optional[str] = None
    extract: Optional[Dict[str, Any]] = None
    score: Optional[Dict[str, Any]] = None
    extract_was_weak: bool = False
    product_type_hint: str = "supplement"


class ChainResult(CamelModel):
    """Outcome of one extract+score round trip as seen by the client."""
    product: ChainProduct
    score: ScorePayload = Field(default_factory=ScorePayload)
    meta: ChainMeta = Field(default_factory=ChainMeta)

    def is_trivial(self) -> bool:
        """True when nothing worth caching was extracted."""
        return self.product.title == DEFAULT_TITLE and not self.product.ingredients


class CachedEntry(CamelModel):
    data: ChainResult
    timestamp: int


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


class ExtractPayload(CamelModel):
    """
    Extraction response normalized at the client boundary.

    ``supplementFacts`` may arrive as a string or as the legacy ``{raw}``
    object, and markdown/html may be nested under ``raw.data``.
    """
    title: Optional[str] = None
    ingredients: List[str] = Field(default_factory=list)
    ingredients_raw: Optional[str] = None
    supplement_facts: Optional[str] = None
    markdown: Optional[str] = None
    html: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    numeric_doses_present: bool = False
    facts_kind: Optional[str] = None
    ingredients_source: Optional[str] = None
    status: Optional[str] = None
    raw_meta: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_response(cls, data: Any) -> "ExtractPayload":
        if not isinstance(data, dict):
            return cls()

        facts = data.get("supplementFacts")
        if isinstance(facts, dict):
            facts = facts.get("raw")

        legacy = data.get("raw") if isinstance(data.get("raw"), dict) else {}
        legacy_data = legacy.get("data") if isinstance(legacy.get("data"), dict) else {}

        ingredients_raw = _text(data.get("ingredientsRaw"))
        ingredients = data.get("ingredients")
        if isinstance(ingredients, list):
            ingredients = [i.strip() for i in ingredients if isinstance(i, str) and i.strip()]
        if not ingredients and ingredients_raw:
            ingredients = split_ingredient_text(ingredients_raw)
        if not isinstance(ingredients, list):
            ingredients = []

        meta = data.get("_meta") if isinstance(data.get("_meta"), dict) else {}
        warnings = data.get("warnings")

        return cls(
            title=_text(data.get("title")),
            ingredients=ingredients,
            ingredients_raw=ingredients_raw,
            supplement_facts=_text(facts),
            markdown=_text(data.get("markdown")) or _text(legacy_data.get("markdown")),
            html=_text(data.get("html")) or _text(legacy_data.get("html")),
            warnings=[w for w in warnings if isinstance(w, str) and w.strip()]
            if isinstance(warnings, list) else [],
            numeric_doses_present=bool(data.get("numericDosesPresent")),
            facts_kind=meta.get("factsKind") or data.get("factsKind"),
            ingredients_source=meta.get("ingredientsSource") or data.get("ingredientsSource"),
            status=meta.get("status"),
            raw_meta=meta,
        )

