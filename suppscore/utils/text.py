"""Text normalization helpers shared by the parser and the client chain."""
import re
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_INLINE_WS = re.compile(r"[ \u00a0]+")
_BLANK_LINES = re.compile(r"\n\s*\n+")


def sanitize_text(value: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Remove control characters and collapse whitespace.

    Single newlines are kept (facts panels are row oriented); runs of blank
    lines collapse to one newline.
    """
    if not value:
        return ""
    text = _CONTROL_CHARS.sub(" ", value)
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _INLINE_WS.sub(" ", text)
    text = _BLANK_LINES.sub("\n", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = text.strip()
    if max_length is not None and len(text) > max_length:
        text = text[:max_length].rstrip()
    return text


def collapse_whitespace(value: Optional[str]) -> str:
    """Collapse all whitespace, newlines included, to single spaces."""
    return re.sub(r"\s+", " ", value or "").strip()


def strip_html_to_text(html: Optional[str]) -> str:
    """Visible text of an HTML document, scripts and styles removed."""
    if not html:
        return ""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript", "template", "svg"]):
        tag.decompose()
    return sanitize_text(soup.get_text("\n"))


def hostname(url: str) -> str:
    """Lower-cased hostname without a leading ``www.``."""
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


def host_matches(host: str, domain: str) -> bool:
    """True when ``host`` is ``domain`` or one of its subdomains."""
    domain = domain.lower().lstrip(".")
    return host == domain or host.endswith("." + domain)


_INGREDIENT_LABEL = re.compile(r"^\s*(other\s+)?ingredients?\s*:\s*", re.I)
_INGREDIENT_SPLIT = re.compile(r",(?![^()]*\))|\n|;")
_INGREDIENT_NOISE = re.compile(r"(warning|consult|keep out of reach|allergen|manufactured in|contains:)", re.I)


def split_ingredient_text(text: Optional[str]) -> List[str]:
    """
    Split an ingredients block into items.

    The leading "Ingredients:" label is dropped, commas inside parentheses do
    not split, and warning/consult lines are filtered out.
    """
    if not text:
        return []
    body = _INGREDIENT_LABEL.sub("", text)
    items = []
    for part in _INGREDIENT_SPLIT.split(body):
        item = part.strip(" .\t")
        if 2 < len(item) < 120 and not _INGREDIENT_NOISE.search(item):
            items.append(item)
    return items
