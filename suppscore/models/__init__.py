"""Models package initialization."""
from suppscore.models.product import (
    ChainStep,
    FactsKind,
    IngredientsSource,
    ParsedProduct,
    ParserMeta,
    StepStatus,
)
from suppscore.models.score import ScorePayload, ScoreRequest, clamp_score
from suppscore.models.chain import (
    DEFAULT_TITLE,
    CachedEntry,
    ChainMeta,
    ChainProduct,
    ChainResult,
    ExtractPayload,
)

__all__ = [
    "ChainStep",
    "FactsKind",
    "IngredientsSource",
    "ParsedProduct",
    "ParserMeta",
    "StepStatus",
    "ScorePayload",
    "ScoreRequest",
    "clamp_score",
    "DEFAULT_TITLE",
    "CachedEntry",
    "ChainMeta",
    "ChainProduct",
    "ChainResult",
    "ExtractPayload",
]
