"""
Content Parser - turns product-page HTML (or markdown) into a ParsedProduct.

Each field is resolved independently by walking an ordered strategy list:

1. Site-specific extractors (hostname or platform profiles)
2. Generic structured-data extractors (selectors, meta tags, JSON-LD, tables)
3. Regex text mining over the visible text
4. OCR text, as a last resort, when supplied by the caller

The first strategy whose candidate clears its threshold wins, and its name is
appended to ``meta.parserSteps``.
"""
import re
from typing import Callable, List, Optional, Tuple
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup

from suppscore.models.product import IngredientsSource, ParsedProduct, ParserMeta
from suppscore.parsing import generic, text_patterns
from suppscore.parsing.dom import visible_text
from suppscore.parsing.heuristics import (
    MAX_CLEAN_TITLE_LENGTH,
    MAX_FACTS_LENGTH,
    MAX_HTML_LENGTH,
    MAX_TITLE_LENGTH,
    classify_facts_kind,
    has_label_marker,
    has_numeric_doses,
    is_polluted_title,
    token_score,
)
from suppscore.parsing.jsonld import parse_all_jsonld
from suppscore.parsing.sites import SITE_PROFILES, SiteProfile, profiles_for
from suppscore.utils.logger import LayerLogger
from suppscore.utils.text import hostname, sanitize_text, split_ingredient_text

Strategy = Tuple[str, Callable[[], Optional[str]]]


class _PageContext:
    """Lazily computed views of one page shared by all strategies."""

    def __init__(self, html: str, url: str, profiles: List[SiteProfile]):
        self.html = html
        self.url = url
        self.soup = BeautifulSoup(html, "lxml")
        self.host = hostname(url)
        self.nodes = parse_all_jsonld(self.soup)
        self.profiles = profiles_for(self.host, self.soup, html, profiles)
        self._text: Optional[str] = None

    @property
    def text(self) -> str:
        if self._text is None:
            self._text = visible_text(self.soup)
        return self._text


class ContentParser:
    """
    Multi-strategy product page parser.

    Stateless apart from its profile table; one instance can parse any number
    of pages concurrently.
    """

    def __init__(self, profiles: Optional[List[SiteProfile]] = None):
        self.profiles = profiles if profiles is not None else SITE_PROFILES
        self.logger = LayerLogger("content_parser")

    def parse(self, html: str, url: str, ocr_text: Optional[str] = None) -> ParsedProduct:
        """
        Parse one product page.

        Args:
            html: page HTML or markdown (truncated to 400k chars)
            url: page URL, used for host matching and the slug title fallback
            ocr_text: label text read from product images, if any

        Returns:
            ParsedProduct with parser steps recorded in ``meta``
        """
        html = (html or "")[:MAX_HTML_LENGTH]
        ctx = _PageContext(html, url, self.profiles)
        steps: List[str] = []

        title = self._first(steps, self._title_strategies(ctx))
        if title:
            title = sanitize_text(title, MAX_TITLE_LENGTH)

        ingredients_step = self._first_with_name(self._ingredient_strategies(ctx, ocr_text))
        ingredients_raw = None
        ingredients_source = IngredientsSource.NONE
        if ingredients_step:
            ingredients_raw, step = ingredients_step
            steps.append(step)
            ingredients_source = self._ingredients_source(step)

        facts_step = self._first_with_name(self._facts_strategies(ctx, ocr_text))
        facts = None
        facts_source = None
        if facts_step:
            facts, facts_source = facts_step
            facts = sanitize_text(facts, MAX_FACTS_LENGTH)
            steps.append(facts_source)

        label_text = "\n".join(t for t in (facts, ingredients_raw) if t)
        page_text = ctx.text if ctx.html else ""
        search_text = "\n".join(t for t in (label_text, page_text, ocr_text or "") if t)

        product = ParsedProduct(
            title=title or None,
            ingredients_raw=ingredients_raw,
            supplement_facts=facts,
            numeric_doses_present=has_numeric_doses(ingredients_raw, facts),
            ingredients=split_ingredient_text(ingredients_raw),
            serving_size=text_patterns.serving_size(search_text),
            directions=text_patterns.directions(search_text),
            allergens=text_patterns.allergens(search_text),
            warnings=text_patterns.warnings(search_text),
            manufacturer=generic.extract_brand(ctx.soup, ctx.nodes)
            or text_patterns.manufacturer(search_text),
            meta=ParserMeta(
                parser_steps=steps,
                facts_kind=classify_facts_kind(facts, ingredients_raw),
                ingredients_source=ingredients_source,
                facts_source=facts_source,
                facts_tokens=token_score(facts),
                ocr_used=any(s.endswith("ocr-panel") for s in steps),
            ),
        )

        self.logger.log_parse_result(
            url=url,
            parser_steps=steps,
            fields_present=product.get_present_fields(),
            fields_missing=product.get_missing_fields(),
            profiles=[p.name for p in ctx.profiles],
            html_length=len(html),
        )
        return product

    # =========================================================================
    # STRATEGY LISTS
    # =========================================================================

    def _title_strategies(self, ctx: _PageContext) -> List[Strategy]:
        strategies: List[Strategy] = [
            (f"{p.name}-title", lambda p=p: p.title(ctx.soup)) for p in ctx.profiles
        ]
        generic_title = generic.extract_title(ctx.soup, ctx.nodes)
        if generic_title:
            text, step = generic_title
            strategies.append((step, lambda text=text: text))
        strategies.append(("title-markdown-h1", lambda: title_from_markdown(ctx.html)))
        strategies.append(("title-url-slug", lambda: title_from_url(ctx.url)))
        return strategies

    def _ingredient_strategies(self, ctx: _PageContext, ocr_text: Optional[str]) -> List[Strategy]:
        strategies: List[Strategy] = [
            (f"{p.name}-ingredients", lambda p=p: p.ingredients(ctx.soup)) for p in ctx.profiles
        ]
        strategies += [
            ("ingredients-html", lambda: _text_of(generic.extract_ingredients_html(ctx.soup))),
            ("ingredients-ld-json", lambda: _text_of(generic.extract_ingredients_ldjson(ctx.nodes))),
            ("ingredients-shopify-json", lambda: _text_of(generic.extract_ingredients_shopify_blob(ctx.html))),
            ("ingredients-text-pattern", lambda: text_patterns.best_ingredients(ctx.text)),
        ]
        if ocr_text and has_label_marker(ocr_text):
            strategies.append(("ingredients-ocr-panel", lambda: text_patterns.ocr_ingredients(ocr_text)))
        return strategies

    def _facts_strategies(self, ctx: _PageContext, ocr_text: Optional[str]) -> List[Strategy]:
        strategies: List[Strategy] = [
            (f"{p.name}-supplement-facts", lambda p=p: p.facts(ctx.soup)) for p in ctx.profiles
        ]
        strategies += [
            ("ld-json-nutrition", lambda: _text_of(generic.extract_facts_ldjson(ctx.nodes))),
            ("supplement-facts-table", lambda: _text_of(generic.extract_facts_table(ctx.soup))),
            ("facts-section", lambda: _text_of(generic.extract_facts_section(ctx.soup))),
            ("facts-text-pattern", lambda: text_patterns.best_facts(ctx.text)),
        ]
        if ocr_text and has_label_marker(ocr_text):
            strategies.append(("facts-ocr-panel", lambda: text_patterns.ocr_facts(ocr_text)))
        return strategies

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _first(self, steps: List[str], strategies: List[Strategy]) -> Optional[str]:
        found = self._first_with_name(strategies)
        if found is None:
            return None
        value, step = found
        steps.append(step)
        return value

    def _first_with_name(self, strategies: List[Strategy]) -> Optional[Tuple[str, str]]:
        for name, strategy in strategies:
            value = strategy()
            if value:
                return value, name
        return None

    @staticmethod
    def _ingredients_source(step: str) -> IngredientsSource:
        if step.endswith("ocr-panel"):
            return IngredientsSource.OCR_IMAGE
        if step == "ingredients-ld-json":
            return IngredientsSource.LDJSON
        if step.startswith("ingredients-"):
            return IngredientsSource.HTML
        return IngredientsSource.SITE


def _text_of(extraction: generic.Extraction) -> Optional[str]:
    return extraction[0] if extraction else None


_MARKDOWN_H1 = re.compile(r"^#\s+(.{3,200})$", re.M)


def title_from_markdown(content: str) -> Optional[str]:
    """First level-one markdown heading, for crawler output in markdown mode."""
    match = _MARKDOWN_H1.search(content or "")
    if not match:
        return None
    title = match.group(1).strip(" #")
    return None if is_polluted_title(title) else title


def title_from_url(url: str) -> Optional[str]:
    """Title-case the ``/products/<slug>`` segment of a product URL."""
    path = urlparse(url).path
    match = re.search(r"/products?/([^/?#]+)", path)
    slug = match.group(1) if match else path.rstrip("/").rsplit("/", 1)[-1]
    slug = re.sub(r"\.(html?|php|aspx)$", "", unquote(slug or ""))
    words = [w for w in re.split(r"[-_+]+", slug) if w and not w.isdigit()]
    if not words:
        return None
    title = " ".join(w.capitalize() for w in words)
    if is_polluted_title(title) or len(title) > MAX_CLEAN_TITLE_LENGTH:
        return None
    return title
