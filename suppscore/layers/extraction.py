"""
Extraction Service - the server side of one extract request.

blocklist check -> provider chain -> parser -> OCR fallback -> remediation,
producing the HTTP status and response body for the extract endpoint.
"""
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from suppscore.layers.ocr_fallback import OcrFallback
from suppscore.layers.provider_chain import ChainOutcome, ProviderChain
from suppscore.layers.remediation import blocked_domain_reason, classify
from suppscore.models.product import ParsedProduct
from suppscore.parsing.parser import ContentParser
from suppscore.utils.http import elapsed_ms
from suppscore.utils.logger import LayerLogger


NO_CONTENT_MESSAGE = "No content extracted from target URL after trying all methods"


@dataclass
class ExtractionOutcome:
    """HTTP status and JSON body for the extract endpoint."""
    status_code: int
    body: Dict[str, Any]


class ExtractionService:
    """
    Coordinates the extraction pipeline for one URL.

    Dependencies are injectable; defaults are built from the environment.
    """

    def __init__(
        self,
        chain: Optional[ProviderChain] = None,
        parser: Optional[ContentParser] = None,
        ocr: Optional[OcrFallback] = None,
        blocklist: Optional[Iterable[str]] = None,
    ):
        self.chain = chain or ProviderChain()
        self.parser = parser or ContentParser()
        self.ocr = ocr or OcrFallback()
        self.blocklist = list(blocklist) if blocklist is not None else None
        self.logger = LayerLogger("extraction")

    async def extract(
        self,
        url: str,
        proxy_mode: str = "auto",
        force_scrapfly: bool = False,
    ) -> ExtractionOutcome:
        """
        Extract label data from a product page.

        Returns:
            ExtractionOutcome with status 200, 451 (blocked domain) or 502 (no HTML)
        """
        started = time.monotonic()
        self.logger.log_action("extract", "started", url=url, proxy_mode=proxy_mode,
                               force_scrapfly=force_scrapfly)

        reason = blocked_domain_reason(url, self.blocklist)
        if reason:
            remediation = classify(False, [], None, blocked_domain=reason)
            self.logger.log_decision("refuse_url", reason, url=url)
            return ExtractionOutcome(451, {
                "error": "blocked_by_site",
                "message": reason,
                "_meta": {
                    "source": None,
                    "tried": [],
                    "parserSteps": [],
                    "blockedReason": reason,
                    **self._remediation_meta(remediation),
                    "timing": {"totalMs": elapsed_ms(started)},
                },
            })

        outcome = await self.chain.run(url, proxy_mode=proxy_mode, force_scrapfly=force_scrapfly)

        if not outcome.html_returned:
            remediation = classify(False, outcome.status_codes, None)
            self.logger.log_error(NO_CONTENT_MESSAGE, error_type=remediation.status.value, url=url,
                                  remediation=remediation.remediation.value)
            return ExtractionOutcome(502, {
                "error": NO_CONTENT_MESSAGE,
                "_meta": self._chain_meta(outcome, started, remediation=remediation),
            })

        parsed = self.parser.parse(outcome.html, url)
        if (not parsed.ingredients_raw or not parsed.supplement_facts) and self.ocr.is_available():
            self.logger.log_fallback(
                from_source="html", to_source="ocr", reason="label fields missing",
                url=url, missing=parsed.get_missing_fields(),
            )
            ocr_text = await self.ocr.find_label_text(outcome.html, url)
            if ocr_text:
                parsed = self.parser.parse(outcome.html, url, ocr_text=ocr_text)

        remediation = classify(True, outcome.status_codes, parsed)
        self.logger.log_action(
            "extract", "completed", url=url, source=outcome.source,
            outcome_status=remediation.status.value, parser_steps=parsed.meta.parser_steps,
        )
        return ExtractionOutcome(200, self._success_body(parsed, outcome, remediation, started))

    def _success_body(self, parsed: ParsedProduct, outcome: ChainOutcome, remediation,
                      started: float) -> Dict[str, Any]:
        body = parsed.to_json_dict()
        meta = body.pop("meta")
        body["markdown"] = parsed.supplement_facts or parsed.ingredients_raw
        body["_meta"] = {
            **self._chain_meta(outcome, started, remediation=remediation),
            "parserSteps": meta["parserSteps"],
            "factsKind": meta["factsKind"],
            "ingredientsSource": meta["ingredientsSource"],
            "factsSource": meta["factsSource"],
            "factsTokens": meta["factsTokens"],
            "ocrUsed": meta["ocrUsed"],
        }
        return body

    def _chain_meta(self, outcome: ChainOutcome, started: float, remediation) -> Dict[str, Any]:
        statuses = outcome.provider_statuses
        firecrawl = statuses.get("firecrawl-crawl") if statuses.get("firecrawl-crawl") == "success" \
            else statuses.get("firecrawl-extract")
        return {
            "source": outcome.source,
            "tried": outcome.tried,
            "parserSteps": [],
            **self._remediation_meta(remediation),
            "firecrawlStatus": firecrawl,
            "scrapflyStatus": statuses.get("scrapfly"),
            "scraperapiStatus": statuses.get("scraperapi"),
            "providerStatuses": statuses,
            "chain": [step.to_json_dict() for step in outcome.steps],
            "timing": {"totalMs": elapsed_ms(started)},
        }

    @staticmethod
    def _remediation_meta(remediation) -> Dict[str, Any]:
        meta = {
            "status": remediation.status.value,
            "remediation": remediation.remediation.value,
        }
        if remediation.notes:
            meta["remediation_notes"] = remediation.notes
        return meta
