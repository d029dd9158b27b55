"""
Product extraction models.

``ParsedProduct`` is the parser's output for one page; ``ChainStep`` is the
telemetry record appended for every backend attempt.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case attributes, camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class StepStatus(str, Enum):
    """Outcome of one backend attempt."""
    OK = "ok"
    ERROR = "error"
    EMPTY = "empty"


class FactsKind(str, Enum):
    """Which kind of label panel the page exposes."""
    SUPPLEMENT_FACTS = "supplement_facts"
    NUTRITION_FACTS = "nutrition_facts"
    INGREDIENTS_ONLY = "ingredients_only"


class IngredientsSource(str, Enum):
    """Where the ingredients text came from."""
    SITE = "site"
    HTML = "html"
    LDJSON = "ldjson"
    OCR_IMAGE = "ocr_image"
    NONE = "none"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ChainStep(CamelModel):
    """One provider (or extract/score) attempt, appended in attempt order."""
    provider: str
    attempt: int = 1
    status: StepStatus
    elapsed_ms: int = 0
    http_code: Optional[int] = None
    hint: Optional[str] = None
    timestamp: str = Field(default_factory=utc_now_iso)


class ParserMeta(CamelModel):
    """How the parser arrived at each field."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    parser_steps: List[str] = Field(default_factory=list)
    facts_kind: FactsKind = FactsKind.INGREDIENTS_ONLY
    ingredients_source: IngredientsSource = IngredientsSource.NONE
    facts_source: Optional[str] = None
    facts_tokens: int = 0
    ocr_used: bool = False


class ParsedProduct(CamelModel):
    """Structured label data extracted from one product page."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: Optional[str] = None
    ingredients_raw: Optional[str] = None
    supplement_facts: Optional[str] = None
    numeric_doses_present: bool = False
    ingredients: List[str] = Field(default_factory=list)
    serving_size: Optional[str] = None
    directions: Optional[str] = None
    allergens: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    manufacturer: Optional[str] = None
    meta: ParserMeta = Field(default_factory=ParserMeta)

    def get_present_fields(self) -> List[str]:
        """Get list of label fields that have values."""
        present = []
        for name in ("title", "ingredients_raw", "supplement_facts", "serving_size",
                     "directions", "manufacturer"):
            if getattr(self, name):
                present.append(name)
        if self.warnings:
            present.append("warnings")
        if self.allergens:
            present.append("allergens")
        return present

    def get_missing_fields(self) -> List[str]:
        """Get list of core label fields that are missing."""
        return [
            name for name in ("title", "ingredients_raw", "supplement_facts")
            if not getattr(self, name)
        ]
