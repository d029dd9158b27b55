"""
Label heuristics as data.

Candidate scoring, facts-token counting, review/FAQ filtering and the
thresholds the parser and client chain use. Every rule lives in a table so
it can be tuned and unit-tested without any HTML.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Pattern

from suppscore.models.product import FactsKind


# =========================================================================
# THRESHOLDS
# =========================================================================

MAX_HTML_LENGTH = 400_000
MAX_TITLE_LENGTH = 250
MAX_CLEAN_TITLE_LENGTH = 120
MIN_INGREDIENTS_LENGTH = 30
MIN_FACTS_LENGTH = 200
MIN_TEXT_FACTS_LENGTH = 300
MIN_FACTS_TOKENS = 2
MAX_FACTS_LENGTH = 4000
REVIEW_WINDOW = 80


# =========================================================================
# CANDIDATE SCORING
# =========================================================================

@dataclass(frozen=True)
class ScoringRule:
    """Adds ``weight`` to a candidate's score when ``pattern`` matches."""
    name: str
    pattern: Pattern
    weight: int


CANDIDATE_RULES: List[ScoringRule] = [
    ScoringRule("dosage_units", re.compile(r"\b\d*\.?\d+\s?(mg|mcg|µg|g|iu|%\s?dv)\b|\b(mg|mcg|iu)\b", re.I), 1),
    ScoringRule("allergen_parenthetical", re.compile(r"\([^()]*\b(allergen|milk|soy|egg|wheat|peanut|tree nut|fish|shellfish)\b[^()]*\)", re.I), 1),
    ScoringRule("label_adjectives", re.compile(r"\b(organic|natural|artificial|colou?rs?|flavou?rs?)\b", re.I), 1),
    ScoringRule("decimal_numbers", re.compile(r"\d+\.\d+"), 1),
    ScoringRule("marketing_copy", re.compile(r"\b(legacy|smooth|delicious|award[- ]winning|irresistible|mouth-?watering)\b", re.I), -2),
]


def score_candidate(text: Optional[str], rules: Optional[List[ScoringRule]] = None) -> int:
    """Sum the weights of every rule that matches ``text``."""
    if not text:
        return 0
    return sum(rule.weight for rule in (rules or CANDIDATE_RULES) if rule.pattern.search(text))


# =========================================================================
# FACTS TOKENS
# =========================================================================

FACTS_TOKEN_PATTERN = re.compile(
    r"(serving size|servings per container|amount per serving|% ?dv|daily value|calories|protein"
    r"|\bmg\b|\bmcg\b|\biu\b|supplement\s+facts|nutrition\s+facts)",
    re.I,
)


def token_score(text: Optional[str]) -> int:
    """Count facts-panel tokens in ``text``."""
    if not text:
        return 0
    return len(FACTS_TOKEN_PATTERN.findall(text))


# =========================================================================
# REVIEW / FAQ FILTER
# =========================================================================

REVIEW_KEYWORDS = re.compile(
    r"(customer reviews?|reviews?\b|testimonials?|ratings?\b|q\s?&\s?a|frequently asked|\bfaqs?\b"
    r"|verified (buyer|purchase)|was this helpful|stars?\b)",
    re.I,
)


def looks_like_review(text: Optional[str], window: int = REVIEW_WINDOW) -> bool:
    """
    True when a review/FAQ keyword sits within ``window`` characters of a
    facts-token match.

    Pages often quote label terms ("great protein per serving!") inside
    review widgets; those regions are not label content.
    """
    if not text:
        return False
    for match in FACTS_TOKEN_PATTERN.finditer(text):
        start = max(0, match.start() - window)
        end = min(len(text), match.end() + window)
        if REVIEW_KEYWORDS.search(text[start:end]):
            return True
    return False


REVIEW_CONTAINER_PATTERN = re.compile(
    r"((?<!p)review|rating|testimonial|\bfaq|question|yotpo|okendo|judgeme|jdgm|stamped-|loox|bazaarvoice|\bbv-)",
    re.I,
)

POLLUTED_TITLE_PATTERN = re.compile(
    r"(customer reviews?|write a review|\d+(\.\d+)?\s*(out of\s*5|stars?)|verified buyer|questions? & answers?)",
    re.I,
)


def is_polluted_title(title: Optional[str]) -> bool:
    """Titles picked up from review widgets or oversized blocks are rejected."""
    if not title:
        return True
    return bool(POLLUTED_TITLE_PATTERN.search(title)) or len(title) > MAX_TITLE_LENGTH


# =========================================================================
# MARKERS AND DOSES
# =========================================================================

INGREDIENTS_MARKER = re.compile(r"(other\s+)?ingredients?\s*:", re.I)
FACTS_MARKER = re.compile(r"(supplement|nutrition(al)?)\s+(facts|information)", re.I)
LABEL_MARKER = re.compile(r"ingredients?\s*:|supplement\s+facts|nutrition\s+facts", re.I)
NUMERIC_DOSE = re.compile(r"\d+(\.\d+)?\s?(g|mg|mcg|µg|iu|%)(?![a-z])", re.I)

LIST_DELIMITER = re.compile(r"[,;\n]")


def has_label_marker(text: Optional[str]) -> bool:
    return bool(text and LABEL_MARKER.search(text))


def has_numeric_doses(*texts: Optional[str]) -> bool:
    """True when any text has a number followed by a dosage unit."""
    return any(text and NUMERIC_DOSE.search(text) for text in texts)


def looks_like_ingredient_list(text: Optional[str]) -> bool:
    """A delimited list long enough to be an ingredients panel."""
    if not text or len(text) < MIN_INGREDIENTS_LENGTH:
        return False
    return bool(LIST_DELIMITER.search(text)) and not looks_like_review(text)


def accepts_ingredients(text: Optional[str]) -> bool:
    """Threshold for structured (selector / JSON-LD) ingredient candidates."""
    return looks_like_ingredient_list(text)


def accepts_facts(text: Optional[str]) -> bool:
    """Threshold for structured facts candidates."""
    if not text or len(text) < MIN_FACTS_LENGTH:
        return False
    return token_score(text) >= MIN_FACTS_TOKENS and not looks_like_review(text)


def accepts_text_candidate(text: Optional[str], min_length: int) -> bool:
    """Threshold for regex-mined candidates: long enough and positively scored."""
    if not text or len(text) < min_length:
        return False
    return score_candidate(text) > 0 and not looks_like_review(text)


def classify_facts_kind(facts: Optional[str], ingredients: Optional[str]) -> FactsKind:
    """Supplement facts, nutrition facts, or ingredients only."""
    combined = " ".join(t for t in (facts, ingredients) if t)
    if re.search(r"supplement\s+facts", combined, re.I):
        return FactsKind.SUPPLEMENT_FACTS
    if re.search(r"nutrition(al)?\s+(facts|information)", combined, re.I):
        return FactsKind.NUTRITION_FACTS
    if facts and token_score(facts) >= MIN_FACTS_TOKENS:
        return FactsKind.SUPPLEMENT_FACTS
    return FactsKind.INGREDIENTS_ONLY
