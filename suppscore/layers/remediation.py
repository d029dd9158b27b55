"""
Remediation Classifier - maps an extraction outcome to a status and the next
action an operator should take. Pure functions, no I/O.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from suppscore.config import config
from suppscore.models.product import ParsedProduct
from suppscore.utils.text import hostname, host_matches


MIN_SUCCESS_INGREDIENTS = 100
MIN_SUCCESS_FACTS = 200


class ExtractionStatus(str, Enum):
    """Overall outcome of an extraction."""
    SUCCESS = "success"
    PARSER_FAIL = "parser_fail"
    BLOCKED_BY_SITE = "blocked_by_site"
    DEAD_URL = "dead_url"
    PROVIDER_ERROR = "provider_error"


class Remediation(str, Enum):
    """Suggested next action."""
    NONE = "none"
    SITE_SPECIFIC_PARSER = "site_specific_parser"
    MANUAL_QA = "manual_qa"
    FIX_URL = "fix_url"
    ROTATE_KEY = "rotate_key"
    UPGRADE_PLAN = "upgrade_plan"
    SWITCH_PROVIDER = "switch_provider"


@dataclass(frozen=True)
class RemediationResult:
    status: ExtractionStatus
    remediation: Remediation
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "remediation": self.remediation.value,
            "notes": self.notes,
        }


def blocked_domain_reason(url: str, blocklist: Optional[Iterable[str]] = None) -> Optional[str]:
    """Reason string when ``url`` is on the static domain blocklist, else None."""
    host = hostname(url)
    for domain in (config.BLOCKED_DOMAINS if blocklist is None else blocklist):
        if host and host_matches(host, domain):
            return f"Domain {domain} is on the static blocklist (aggressive bot protection)"
    return None


def classify(
    html_returned: bool,
    provider_status_codes: List[int],
    parsed: Optional[ParsedProduct],
    blocked_domain: Optional[str] = None,
) -> RemediationResult:
    """
    Classify an extraction outcome.

    Rules, first match wins:
    1. blocked domain -> blocked_by_site / manual_qa
    2. no HTML: 404 -> dead_url/fix_url, 403 -> rotate_key, 429 -> upgrade_plan,
       anything else -> switch_provider
    3. title, ingredients >= 100 chars and facts >= 200 chars -> success
    4. otherwise parser_fail / site_specific_parser
    """
    if blocked_domain:
        return RemediationResult(ExtractionStatus.BLOCKED_BY_SITE, Remediation.MANUAL_QA, blocked_domain)

    if not html_returned:
        codes = set(provider_status_codes)
        if 404 in codes:
            return RemediationResult(ExtractionStatus.DEAD_URL, Remediation.FIX_URL,
                                     "A provider reported HTTP 404 for this URL")
        if 403 in codes:
            return RemediationResult(ExtractionStatus.PROVIDER_ERROR, Remediation.ROTATE_KEY,
                                     "A provider rejected the API key (HTTP 403)")
        if 429 in codes:
            return RemediationResult(ExtractionStatus.PROVIDER_ERROR, Remediation.UPGRADE_PLAN,
                                     "A provider rate limited the request (HTTP 429)")
        return RemediationResult(ExtractionStatus.PROVIDER_ERROR, Remediation.SWITCH_PROVIDER,
                                 "No provider returned usable HTML")

    title = parsed.title if parsed else None
    ingredients = (parsed.ingredients_raw or "") if parsed else ""
    facts = (parsed.supplement_facts or "") if parsed else ""

    if title and len(ingredients) >= MIN_SUCCESS_INGREDIENTS and len(facts) >= MIN_SUCCESS_FACTS:
        return RemediationResult(ExtractionStatus.SUCCESS, Remediation.NONE)

    failures = []
    if not title:
        failures.append("title missing")
    if len(ingredients) < MIN_SUCCESS_INGREDIENTS:
        failures.append(f"ingredients {len(ingredients)} < {MIN_SUCCESS_INGREDIENTS} chars")
    if len(facts) < MIN_SUCCESS_FACTS:
        failures.append(f"facts {len(facts)} < {MIN_SUCCESS_FACTS} chars")
    return RemediationResult(ExtractionStatus.PARSER_FAIL, Remediation.SITE_SPECIFIC_PARSER,
                             "; ".join(failures))
