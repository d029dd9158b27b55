"""
Generic structured-data extractors.

These work on any storefront: common e-commerce selectors, meta tags,
JSON-LD and label tables. Each returns ``(text, step_name)`` or ``None``.
"""
import json
import re
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from suppscore.parsing import jsonld
from suppscore.parsing.dom import is_inside_review, meta_content, select_texts, table_to_text
from suppscore.parsing.heuristics import (
    FACTS_MARKER,
    INGREDIENTS_MARKER,
    accepts_facts,
    accepts_ingredients,
    is_polluted_title,
)
from suppscore.utils.text import collapse_whitespace

Extraction = Optional[Tuple[str, str]]

INGREDIENT_SELECTORS = [
    "[data-ingredients]",
    "#ingredients",
    ".product-ingredients",
    ".ingredient-list",
    ".ingredients-list",
    ".ingredients",
    "section[id*='ingredient' i]",
    "div[id*='ingredient' i]",
    "div[class*='ingredient' i]",
]

FACTS_SELECTORS = [
    ".supplement-facts",
    "#supplement-facts",
    ".nutrition-facts",
    "#nutrition-facts",
    "[class*='supplement-fact' i]",
    "[id*='supplement-fact' i]",
    "[class*='nutrition-fact' i]",
    "[class*='nutrition-label' i]",
    "#nutrition",
    ".nutrition-info",
    "[id*='nutrition' i]",
]

SHOPIFY_PRODUCT_BLOB = re.compile(r"Shopify\.current_product\s*=\s*(\{.+?\});", re.S)
_STORE_SUFFIX = re.compile(r"\s+[|–—]\s+[^|–—]{1,40}$")


def strip_store_suffix(title: str) -> str:
    """Drop a trailing " | Store Name" from <title>-derived titles."""
    stripped = _STORE_SUFFIX.sub("", title)
    return stripped if len(stripped) >= 3 else title


# =========================================================================
# TITLE
# =========================================================================

def extract_title(soup: BeautifulSoup, nodes: Dict[str, List[Dict[str, Any]]]) -> Extraction:
    """Title from product headings, meta tags, JSON-LD, <title>, then any h1."""
    candidates: List[Tuple[Optional[str], str]] = []

    h1 = soup.select_one("h1[itemprop='name']")
    candidates.append((h1.get_text(" ") if h1 else None, "title-itemprop"))
    for selector in ("h1.product__title", "h1.product-single__title", "h1.product-title"):
        el = soup.select_one(selector)
        if el is not None:
            candidates.append((el.get_text(" "), "title-h1-product"))
            break
    candidates.append((meta_content(soup, property="og:title"), "title-og"))
    candidates.append((meta_content(soup, name="title"), "title-meta"))
    candidates.append((jsonld.product_name(nodes), "title-ld-json"))
    title_tag = soup.find("title")
    candidates.append(
        (strip_store_suffix(collapse_whitespace(title_tag.get_text())) if title_tag else None, "title-tag")
    )
    first_h1 = soup.find("h1")
    candidates.append((first_h1.get_text(" ") if first_h1 else None, "title-h1"))

    for raw, step in candidates:
        text = collapse_whitespace(raw)
        if text and not is_polluted_title(text):
            return text, step
    return None


# =========================================================================
# INGREDIENTS
# =========================================================================

def extract_ingredients_html(soup: BeautifulSoup) -> Extraction:
    for text in select_texts(soup, INGREDIENT_SELECTORS):
        if accepts_ingredients(text):
            return collapse_whitespace(text), "ingredients-html"
    return None


def extract_ingredients_ldjson(nodes: Dict[str, List[Dict[str, Any]]]) -> Extraction:
    text = jsonld.product_ingredients(nodes)
    if text and accepts_ingredients(text):
        return text, "ingredients-ld-json"
    return None


def extract_ingredients_shopify_blob(html: str) -> Extraction:
    """Ingredients line inside the ``Shopify.current_product`` description."""
    match = SHOPIFY_PRODUCT_BLOB.search(html)
    if not match:
        return None
    try:
        product = json.loads(match.group(1))
    except json.JSONDecodeError:
        return None
    description = product.get("description") or product.get("content") or ""
    if not isinstance(description, str) or not description:
        return None
    text = BeautifulSoup(description, "lxml").get_text("\n")
    for line in text.split("\n"):
        line = collapse_whitespace(line)
        if INGREDIENTS_MARKER.match(line) and accepts_ingredients(line):
            return line, "ingredients-shopify-json"
    return None


# =========================================================================
# FACTS
# =========================================================================

def extract_facts_ldjson(nodes: Dict[str, List[Dict[str, Any]]]) -> Extraction:
    text = jsonld.product_nutrition(nodes)
    if text and accepts_facts(text):
        return text, "ld-json-nutrition"
    return None


def extract_facts_table(soup: BeautifulSoup) -> Extraction:
    """A table whose attributes, caption or preceding heading name a facts panel."""
    for table in soup.find_all("table"):
        if is_inside_review(table):
            continue
        text = table_to_text(table)
        label = " ".join(
            [table.get("id") or "", " ".join(table.get("class") or []), text[:200]]
        )
        heading = table.find_previous(["h2", "h3", "h4", "strong"])
        if heading is not None:
            label += " " + heading.get_text(" ")
        if not (FACTS_MARKER.search(label) or re.search(r"supplement|nutrition", label, re.I)):
            continue
        if heading is not None and FACTS_MARKER.search(heading.get_text(" ")) and not FACTS_MARKER.search(text):
            text = collapse_whitespace(heading.get_text(" ")) + "\n" + text
        if accepts_facts(text):
            return text, "supplement-facts-table"
    return None


def extract_facts_section(soup: BeautifulSoup) -> Extraction:
    for text in select_texts(soup, FACTS_SELECTORS):
        if accepts_facts(text):
            return text, "facts-section"
    return None


# =========================================================================
# OTHER FIELDS
# =========================================================================

def extract_brand(soup: BeautifulSoup, nodes: Dict[str, List[Dict[str, Any]]]) -> Optional[str]:
    return (
        meta_content(soup, property="product:brand")
        or meta_content(soup, property="og:brand")
        or jsonld.product_brand(nodes)
    )
