"""DOM helpers shared by the site-specific and generic extractors."""
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from suppscore.parsing.heuristics import REVIEW_CONTAINER_PATTERN
from suppscore.utils.text import collapse_whitespace, sanitize_text


def _attr_text(el: Tag) -> str:
    classes = el.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    return " ".join([el.get("id") or "", " ".join(classes), el.get("data-section-type") or ""])


def is_inside_review(el: Tag) -> bool:
    """True when the element or an ancestor is a review/FAQ widget."""
    node: Optional[Tag] = el
    while node is not None and isinstance(node, Tag) and node.name not in ("body", "html"):
        if REVIEW_CONTAINER_PATTERN.search(_attr_text(node)):
            return True
        node = node.parent
    return False


def table_to_text(table: Tag) -> str:
    """Render a table as newline-separated rows of tab-joined cells."""
    rows = []
    caption = table.find("caption")
    if caption:
        rows.append(collapse_whitespace(caption.get_text(" ")))
    for tr in table.find_all("tr"):
        cells = [collapse_whitespace(c.get_text(" ")) for c in tr.find_all(["th", "td"])]
        cells = [c for c in cells if c]
        if cells:
            rows.append("\t".join(cells))
    return "\n".join(rows)


def dl_to_text(dl: Tag) -> str:
    """Render a definition list as tab-joined term/definition rows."""
    rows = []
    for dt in dl.find_all("dt"):
        dd = dt.find_next_sibling("dd")
        term = collapse_whitespace(dt.get_text(" "))
        value = collapse_whitespace(dd.get_text(" ")) if dd else ""
        if term:
            rows.append(f"{term}\t{value}" if value else term)
    return "\n".join(rows)


def element_text(el: Tag) -> str:
    """
    Label-friendly text for an element.

    Tables and definition lists inside the element keep their row structure.
    """
    if el.name == "table":
        return table_to_text(el)
    if el.name == "dl":
        return dl_to_text(el)

    tables = el.find_all(["table", "dl"])
    if not tables:
        return sanitize_text(el.get_text("\n"))

    parts = []
    heading = el.find(["h2", "h3", "h4", "strong", "caption"])
    if heading:
        parts.append(collapse_whitespace(heading.get_text(" ")))
    for block in tables:
        parts.append(table_to_text(block) if block.name == "table" else dl_to_text(block))
    return sanitize_text("\n".join(p for p in parts if p))


def select_texts(soup: BeautifulSoup, selectors: List[str]) -> Iterator[str]:
    """Yield element texts for each selector in order, skipping review widgets."""
    for selector in selectors:
        for el in soup.select(selector):
            if is_inside_review(el):
                continue
            text = element_text(el)
            if text:
                yield text


def meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag and tag.get("content"):
        return collapse_whitespace(tag["content"])
    return None


def visible_text(soup: BeautifulSoup) -> str:
    """
    Visible text of the page with scripts, styles and review widgets removed.
    Works on a copy so the caller's soup is untouched.
    """
    clone = BeautifulSoup(str(soup), "lxml")
    for tag in clone(["script", "style", "noscript", "template", "svg", "iframe"]):
        tag.decompose()
    for el in clone.find_all(True):
        if el.decomposed:
            continue
        if el.name not in ("html", "body") and REVIEW_CONTAINER_PATTERN.search(_attr_text(el)):
            el.decompose()
    return sanitize_text(clone.get_text("\n"))
