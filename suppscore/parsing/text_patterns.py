"""
Regex text mining over visible page text (or OCR output).

Blocks start at an "Ingredients:" / "Supplement Facts" marker and run until
the next section heading. Candidates are ranked with ``score_candidate``.
"""
import re
from typing import List, Optional

from suppscore.parsing.heuristics import (
    FACTS_MARKER,
    INGREDIENTS_MARKER,
    MAX_FACTS_LENGTH,
    MIN_FACTS_TOKENS,
    MIN_INGREDIENTS_LENGTH,
    MIN_TEXT_FACTS_LENGTH,
    accepts_text_candidate,
    score_candidate,
    token_score,
)
from suppscore.utils.text import collapse_whitespace, sanitize_text


INGREDIENTS_BLOCK_LIMIT = 800
FACTS_BLOCK_LIMIT = 1500

INGREDIENTS_END = re.compile(
    r"(\n\s*\n|\.\s*\n|warnings?\s*:|caution\s*:|allergen(s| information)?\s*:|contains\s*:|directions\s*:"
    r"|suggested use\s*:|how to use|supplement\s+facts|nutrition\s+facts|manufactured (for|by)"
    r"|reviews?\b|frequently asked)",
    re.I,
)
FACTS_END = re.compile(
    r"(directions\s*:|suggested use\s*:|how to use|warnings?\s*:|caution\s*:|customer reviews?"
    r"|write a review|frequently asked|you may also like|related products)",
    re.I,
)

SERVING_SIZE = re.compile(r"serving size\s*:?\s*([^\n\t]{1,60})", re.I)
DIRECTIONS = re.compile(r"(?:directions|suggested use|how to use)\s*:?\s*([^\n]{10,400})", re.I)
WARNINGS = re.compile(r"(?:warnings?|caution)\s*:\s*([^\n]{5,400})", re.I)
ALLERGENS = re.compile(r"(?:allergen(?:s| information)?|contains)\s*:\s*([^\n.]{2,200})", re.I)
MANUFACTURER = re.compile(
    r"(?:manufactured (?:for|by)(?: and distributed by)?|distributed by)\s*:?\s*([^\n]{3,120})",
    re.I,
)


def _blocks(text: str, marker: re.Pattern, end: re.Pattern, limit: int) -> List[str]:
    blocks = []
    for match in marker.finditer(text):
        start = match.start()
        tail = text[match.end():match.end() + limit]
        stop = end.search(tail)
        body = tail[:stop.start()] if stop else tail
        blocks.append(text[start:match.end()] + body)
    return blocks


def ingredient_blocks(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [
        collapse_whitespace(block)
        for block in _blocks(text, INGREDIENTS_MARKER, INGREDIENTS_END, INGREDIENTS_BLOCK_LIMIT)
    ]


def facts_blocks(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [
        sanitize_text(block, MAX_FACTS_LENGTH)
        for block in _blocks(text, FACTS_MARKER, FACTS_END, FACTS_BLOCK_LIMIT)
    ]


def best_ingredients(text: Optional[str], min_length: int = MIN_INGREDIENTS_LENGTH) -> Optional[str]:
    """Highest-scoring ingredients block that clears the threshold."""
    candidates = [b for b in ingredient_blocks(text) if accepts_text_candidate(b, min_length)]
    if not candidates:
        return None
    return max(candidates, key=lambda b: (score_candidate(b), len(b)))


def best_facts(text: Optional[str], min_length: int = MIN_TEXT_FACTS_LENGTH) -> Optional[str]:
    """Highest-scoring facts block with enough facts tokens."""
    candidates = [
        b for b in facts_blocks(text)
        if accepts_text_candidate(b, min_length) and token_score(b) >= MIN_FACTS_TOKENS
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda b: (token_score(b), score_candidate(b)))


def ocr_ingredients(text: Optional[str]) -> Optional[str]:
    """Ingredients block from OCR output; the marker is mandatory."""
    blocks = [b for b in ingredient_blocks(text) if len(b) >= MIN_INGREDIENTS_LENGTH]
    return max(blocks, key=score_candidate) if blocks else None


def ocr_facts(text: Optional[str]) -> Optional[str]:
    """Facts panel from OCR output; marker and facts tokens are mandatory."""
    blocks = [b for b in facts_blocks(text) if token_score(b) >= MIN_FACTS_TOKENS]
    return max(blocks, key=token_score) if blocks else None


# =========================================================================
# SUPPLEMENTAL FIELDS
# =========================================================================

def serving_size(text: Optional[str]) -> Optional[str]:
    match = SERVING_SIZE.search(text or "")
    return collapse_whitespace(match.group(1)) if match else None


def directions(text: Optional[str]) -> Optional[str]:
    match = DIRECTIONS.search(text or "")
    return collapse_whitespace(match.group(1)) if match else None


def warnings(text: Optional[str]) -> List[str]:
    found: List[str] = []
    for match in WARNINGS.finditer(text or ""):
        line = collapse_whitespace(match.group(1))
        if line not in found:
            found.append(line)
    return found[:10]


def allergens(text: Optional[str]) -> List[str]:
    found: List[str] = []
    for match in ALLERGENS.finditer(text or ""):
        for item in re.split(r",|;|\band\b", match.group(1)):
            item = collapse_whitespace(item).strip(" .")
            if 1 < len(item) < 60 and item.lower() not in (a.lower() for a in found):
                found.append(item)
    return found


def manufacturer(text: Optional[str]) -> Optional[str]:
    match = MANUFACTURER.search(text or "")
    return collapse_whitespace(match.group(1)).rstrip(".") if match else None
