import pytest

from suppscore.models.product import FactsKind
from suppscore.parsing.heuristics import (
    accepts_facts,
    classify_facts_kind,
    has_numeric_doses,
    is_polluted_title,
    looks_like_review,
    score_candidate,
    token_score,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Whey Protein (milk), natural flavors, 2.5 mg", 4),
        ("Smooth, delicious chocolate taste", -2),
        ("Citrulline Malate, Beta Alanine", 0),
        ("", 0),
        (None, 0),
    ],
)
def test_score_candidate(text, expected):
    assert score_candidate(text) == expected


def test_token_score_counts_every_match():
    assert token_score("Serving Size 1 scoop, Calories 120, Protein 24 g, Sodium 50 mg") == 4
    assert token_score("Organic greens") == 0


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Amazing protein! 5 stars from me", True),
        ("Q&A: how much protein per serving?", True),
        ("Protein 25 g per serving", False),
        ("Protein 25 g " + "x" * 100 + " reviews", False),
        ("Customer reviews without any label words", False),
    ],
)
def test_looks_like_review(text, expected):
    assert looks_like_review(text) is expected


@pytest.mark.parametrize(
    "title, polluted",
    [
        ("Quattro Protein", False),
        ("4.5 out of 5 stars", True),
        ("Write a Review", True),
        ("Customer Reviews", True),
        ("Questions & Answers", True),
        (None, True),
        ("x" * 251, True),
    ],
)
def test_is_polluted_title(title, polluted):
    assert is_polluted_title(title) is polluted


@pytest.mark.parametrize(
    "facts, ingredients, kind",
    [
        ("Supplement Facts\nServing Size 2 capsules", None, FactsKind.SUPPLEMENT_FACTS),
        ("Nutritional Information\nCalories 120", None, FactsKind.NUTRITION_FACTS),
        ("Serving Size 1 scoop\nProtein 20 g", None, FactsKind.SUPPLEMENT_FACTS),
        (None, "Ingredients: Wheat Grass, Spirulina", FactsKind.INGREDIENTS_ONLY),
        (None, None, FactsKind.INGREDIENTS_ONLY),
    ],
)
def test_classify_facts_kind(facts, ingredients, kind):
    assert classify_facts_kind(facts, ingredients) == kind


@pytest.mark.parametrize(
    "texts, expected",
    [
        (("Vitamin C 60 mg",), True),
        (("Vitamin C", None), False),
        ((None, "Vitamin D3 25mcg"), True),
        (("Take 2 capsules daily",), False),
        (("Use 10 grams",), False),
        (("Zinc 100%",), True),
    ],
)
def test_has_numeric_doses(texts, expected):
    assert has_numeric_doses(*texts) is expected


def test_accepts_facts_needs_length_and_tokens():
    short = "Serving Size 1 scoop\nProtein 25 g"
    assert accepts_facts(short) is False
    assert accepts_facts(short + "\n" + "Vitamin blend 0 mg\n" * 12) is True
    assert accepts_facts("Great protein, 5 stars! " + "x" * 200) is False
