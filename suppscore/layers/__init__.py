"""Layers package initialization."""
from suppscore.layers.block_detection import BlockVerdict, detect_block
from suppscore.layers.provider_chain import ChainOutcome, ProviderChain
from suppscore.layers.ocr_fallback import OcrFallback
from suppscore.layers.remediation import ExtractionStatus, Remediation, RemediationResult, classify
from suppscore.layers.extraction import ExtractionOutcome, ExtractionService
from suppscore.layers.scoring import ScoringService
from suppscore.layers.rate_limit import TokenBucket
from suppscore.layers.result_cache import InMemoryStorage, ResultCache
from suppscore.layers.client_chain import ClientChainOrchestrator

__all__ = [
    "BlockVerdict",
    "detect_block",
    "ChainOutcome",
    "ProviderChain",
    "OcrFallback",
    "ExtractionStatus",
    "Remediation",
    "RemediationResult",
    "classify",
    "ExtractionOutcome",
    "ExtractionService",
    "ScoringService",
    "TokenBucket",
    "InMemoryStorage",
    "ResultCache",
    "ClientChainOrchestrator",
]
