import pytest

from suppscore.layers.remediation import (
    ExtractionStatus,
    Remediation,
    blocked_domain_reason,
    classify,
)
from suppscore.models.product import ParsedProduct


GOOD_INGREDIENTS = "Ingredients: " + ", ".join(["Whey Protein Isolate"] * 6)
GOOD_FACTS = "Supplement Facts\n" + "Serving Size 1 scoop (35 g)\n" * 10


@pytest.mark.parametrize(
    "codes, status, remediation",
    [
        ([404, 500], ExtractionStatus.DEAD_URL, Remediation.FIX_URL),
        ([403], ExtractionStatus.PROVIDER_ERROR, Remediation.ROTATE_KEY),
        ([429, 429], ExtractionStatus.PROVIDER_ERROR, Remediation.UPGRADE_PLAN),
        ([403, 404], ExtractionStatus.DEAD_URL, Remediation.FIX_URL),
        ([500], ExtractionStatus.PROVIDER_ERROR, Remediation.SWITCH_PROVIDER),
        ([], ExtractionStatus.PROVIDER_ERROR, Remediation.SWITCH_PROVIDER),
    ],
)
def test_no_html_outcomes(codes, status, remediation):
    result = classify(False, codes, None)
    assert result.status == status
    assert result.remediation == remediation
    assert result.notes


def test_blocked_domain_wins():
    result = classify(True, [], ParsedProduct(title="x"), blocked_domain="on the blocklist")
    assert result.status == ExtractionStatus.BLOCKED_BY_SITE
    assert result.remediation == Remediation.MANUAL_QA
    assert result.to_dict()["notes"] == "on the blocklist"


def test_success_needs_all_three_fields():
    parsed = ParsedProduct(title="Quattro", ingredients_raw=GOOD_INGREDIENTS, supplement_facts=GOOD_FACTS)
    assert len(GOOD_INGREDIENTS) >= 100
    assert len(GOOD_FACTS) >= 200

    result = classify(True, [200], parsed)
    assert result.status == ExtractionStatus.SUCCESS
    assert result.remediation == Remediation.NONE
    assert result.notes is None


def test_short_fields_are_a_parser_failure():
    parsed = ParsedProduct(title="Quattro", ingredients_raw="Whey, Cocoa", supplement_facts=GOOD_FACTS)
    result = classify(True, [200], parsed)

    assert result.status == ExtractionStatus.PARSER_FAIL
    assert result.remediation == Remediation.SITE_SPECIFIC_PARSER
    assert "ingredients 11 < 100 chars" in result.notes


def test_missing_title_is_a_parser_failure():
    parsed = ParsedProduct(ingredients_raw=GOOD_INGREDIENTS, supplement_facts=GOOD_FACTS)
    result = classify(True, [200], parsed)
    assert result.status == ExtractionStatus.PARSER_FAIL
    assert result.notes == "title missing"


@pytest.mark.parametrize(
    "url, blocked",
    [
        ("https://www.amazon.com/dp/B000", True),
        ("https://smile.amazon.com/dp/B000", True),
        ("https://walmart.com/ip/123", True),
        ("https://notamazon.com/product", False),
        ("https://shop.example/products/quattro", False),
        ("not a url", False),
    ],
)
def test_blocked_domain_reason(url, blocked):
    reason = blocked_domain_reason(url, blocklist=["amazon.com", "walmart.com", "target.com"])
    assert (reason is not None) == blocked
