import pytest

from suppscore.models.chain import ExtractPayload
from suppscore.models.score import ScorePayload, ScoreRequest, clamp_score


@pytest.mark.parametrize(
    "value, expected",
    [
        (50, 50),
        (49.6, 50),
        (-3, 0),
        (150, 100),
        ("72", 72),
        ("abc", 0),
        (None, 0),
        (float("nan"), 0),
        (float("inf"), 0),
        (True, 0),
        ([1], 0),
    ],
)
def test_clamp_score(value, expected):
    assert clamp_score(value) == expected


def test_clamp_score_is_bounded_and_idempotent():
    for value in [-1e9, -0.4, 0, 33.3, 99.5, 100.4, 1e9, "12.7", None, float("-inf")]:
        once = clamp_score(value)
        assert 0 <= once <= 100
        assert clamp_score(once) == once


def test_from_raw_defaults_malformed_fields():
    payload = ScorePayload.from_raw({
        "score": "88",
        "purity": None,
        "safety": 140,
        "highlights": "great",
        "concerns": ["  ", 3, "Contains sucralose", "a", "b", "c"],
    })

    assert payload.score == 88
    assert payload.purity == 0
    assert payload.effectiveness == 0
    assert payload.safety == 100
    assert payload.highlights == []
    assert payload.concerns == ["Contains sucralose", "a", "b"]


def test_from_raw_ignores_non_objects():
    assert ScorePayload.from_raw(["not", "an", "object"]) == ScorePayload.zero()


def test_score_request_normalizes_legacy_supplement_facts():
    request = ScoreRequest.from_body({
        "title": "  Quattro Protein ",
        "supplementFacts": {"raw": "Serving Size 1 scoop"},
        "ingredients": "Whey Protein Isolate, Cocoa",
    })

    assert request.title == "Quattro Protein"
    assert request.facts == "Serving Size 1 scoop"
    assert request.ingredients == ["Whey Protein Isolate", "Cocoa"]
    assert request.warnings == []


def test_score_request_prefers_facts_over_legacy_field():
    request = ScoreRequest.from_body({"title": "X", "facts": "current", "supplementFacts": "legacy"})
    assert request.facts == "current"


@pytest.mark.parametrize("body", [None, "title", [], {}, {"title": "   "}, {"title": 42}])
def test_score_request_rejects_invalid_bodies(body):
    with pytest.raises(ValueError):
        ScoreRequest.from_body(body)


def test_extract_payload_accepts_legacy_shapes():
    payload = ExtractPayload.from_response({
        "title": "Alpha Brain",
        "supplementFacts": {"raw": "Supplement Facts\nServing Size 2 capsules"},
        "raw": {"data": {"markdown": "# Alpha Brain", "html": "<h1>Alpha Brain</h1>"}},
        "ingredientsRaw": "Ingredients: Bacopa Monnieri Extract, L-Theanine, Oat Straw",
        "warnings": ["Keep out of reach of children", 7],
        "_meta": {"factsKind": "supplement_facts", "ingredientsSource": "html", "status": "success"},
    })

    assert payload.supplement_facts.startswith("Supplement Facts")
    assert payload.markdown == "# Alpha Brain"
    assert payload.html == "<h1>Alpha Brain</h1>"
    assert payload.ingredients == ["Bacopa Monnieri Extract", "L-Theanine", "Oat Straw"]
    assert payload.warnings == ["Keep out of reach of children"]
    assert payload.facts_kind == "supplement_facts"
    assert payload.status == "success"


def test_extract_payload_tolerates_garbage():
    payload = ExtractPayload.from_response("not json")
    assert payload.title is None
    assert payload.ingredients == []
