"""
Site-specific extractors, expressed as selector profiles.

A profile applies when the page's hostname ends with one of its hosts or its
platform detector recognizes the markup. Step names are
``<profile>-title``, ``<profile>-ingredients`` and ``<profile>-supplement-facts``.
"""
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from bs4 import BeautifulSoup

from suppscore.parsing.dom import select_texts
from suppscore.parsing.heuristics import (
    INGREDIENTS_MARKER,
    accepts_facts,
    accepts_ingredients,
    is_polluted_title,
)
from suppscore.utils.text import collapse_whitespace, host_matches


def is_shopify(soup: BeautifulSoup, html: str) -> bool:
    """Shopify storefront markers: generator meta, window.Shopify, theme sections."""
    generator = soup.find("meta", attrs={"name": "generator"})
    if generator and "shopify" in (generator.get("content") or "").lower():
        return True
    if "window.Shopify" in html or "Shopify.theme" in html or "cdn.shopify.com" in html:
        return True
    return soup.select_one(".shopify-section") is not None


@dataclass
class SiteProfile:
    """Selectors for one storefront or platform."""
    name: str
    hosts: Tuple[str, ...] = ()
    title_selectors: List[str] = field(default_factory=list)
    ingredients_selectors: List[str] = field(default_factory=list)
    facts_selectors: List[str] = field(default_factory=list)
    detect: Optional[Callable[[BeautifulSoup, str], bool]] = None

    def matches(self, host: str, soup: BeautifulSoup, html: str) -> bool:
        if any(host_matches(host, h) for h in self.hosts):
            return True
        return self.detect is not None and self.detect(soup, html)

    def title(self, soup: BeautifulSoup) -> Optional[str]:
        for selector in self.title_selectors:
            el = soup.select_one(selector)
            if el is None:
                continue
            text = collapse_whitespace(el.get("content") or el.get_text(" "))
            if text and not is_polluted_title(text):
                return text
        return None

    def ingredients(self, soup: BeautifulSoup) -> Optional[str]:
        for selector in self.ingredients_selectors:
            targeted = "ingredient" in selector.lower()
            for text in select_texts(soup, [selector]):
                if not targeted and not INGREDIENTS_MARKER.search(text):
                    continue
                if accepts_ingredients(text):
                    return text
        return None

    def facts(self, soup: BeautifulSoup) -> Optional[str]:
        for text in select_texts(soup, self.facts_selectors):
            if accepts_facts(text):
                return text
        return None


SHOPIFY_PROFILE = SiteProfile(
    name="shopify",
    hosts=("myshopify.com",),
    title_selectors=[
        "h1.product__title",
        "h1.product-single__title",
        ".product__title h1",
        "h1.product-meta__title",
        "h1.product_title",
    ],
    ingredients_selectors=[
        "[id*='ingredients' i] .accordion__content",
        "details[id*='ingredient' i] .accordion__content",
        "#ProductInfo .rte p",
        "#ProductInfo .rte li",
        ".product-single__description p",
        ".product-single__description li",
        ".product__description p",
        ".product__description li",
    ],
    facts_selectors=[
        ".supplement-facts",
        "[id*='supplement-facts' i]",
        "[class*='supplement-facts' i]",
        ".product__description table",
        ".product-single__description table",
        ".rte table",
    ],
    detect=is_shopify,
)


SITE_PROFILES: List[SiteProfile] = [
    SiteProfile(
        name="magnumsupps",
        hosts=("magnumsupps.com",),
        title_selectors=["h1.product-single__title", "h1.product__title"],
        ingredients_selectors=[
            ".product-ingredients",
            "[data-tab='ingredients']",
            ".product-single__description p",
            ".product-single__description li",
        ],
        facts_selectors=[
            ".supplement-facts",
            "[data-tab='supplement-facts']",
            ".product-single__description table",
        ],
    ),
    SiteProfile(
        name="transparentlabs",
        hosts=("transparentlabs.com",),
        title_selectors=["h1.product__title", "h1.product-title"],
        ingredients_selectors=[".product-ingredients", "[class*='ingredients' i] .rte"],
        facts_selectors=[".supplement-facts-table", "[class*='supplement-facts' i]", ".nutrition-table"],
    ),
    SiteProfile(
        name="myprotein",
        hosts=("myprotein.com",),
        title_selectors=["h1.productName_title", "h1[data-product-name]"],
        ingredients_selectors=[
            "#product-description-content-ingredients",
            "[data-tab-title='Ingredients']",
        ],
        facts_selectors=[
            "#product-description-content-nutritionalInformation",
            ".productDescription_synopsisContent table",
            "[data-tab-title='Nutritional Information']",
        ],
    ),
    SiteProfile(
        name="gnc",
        hosts=("gnc.com", "gardenoflife.com"),
        title_selectors=["h1.product-name", "h1.product-title"],
        ingredients_selectors=[".product-ingredients", "#ingredients", ".ingredients-content"],
        facts_selectors=[".supplement-facts-container", "#supplement-facts", ".supplement-facts"],
    ),
    SiteProfile(
        name="legendaryfoods",
        hosts=("legendaryfoods.com",),
        title_selectors=["h1.product__title", "h1.product-single__title"],
        ingredients_selectors=[".ingredients", "[id*='ingredients' i]"],
        facts_selectors=[".nutrition-facts", "[class*='nutrition-facts' i]", ".nutrition-label"],
    ),
    SiteProfile(
        name="huel",
        hosts=("huel.com",),
        title_selectors=["h1[data-testid='product-title']", "h1.product-title"],
        ingredients_selectors=["[data-testid='ingredients']", "[id*='ingredients' i]"],
        facts_selectors=["[data-testid='nutrition-table']", "table[class*='nutrition' i]"],
    ),
    SHOPIFY_PROFILE,
]


def profiles_for(host: str, soup: BeautifulSoup, html: str,
                 profiles: Optional[List[SiteProfile]] = None) -> List[SiteProfile]:
    """Profiles applying to a page, host matches first, platform detection last."""
    return [p for p in (profiles or SITE_PROFILES) if p.matches(host, soup, html)]

