"""
OCR Fallback - reads label text from product photos when the page markup
has no usable ingredients or facts.

Images are ranked by how likely they are to show the label panel, then sent
to OCR one at a time until one returns text with an ingredients or facts
marker.
"""
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup, Tag

from suppscore.adapters.ocr_space import OcrError, OcrImageTooLarge, OcrSpaceClient
from suppscore.parsing.heuristics import has_label_marker
from suppscore.utils.logger import LayerLogger


MAX_OCR_CANDIDATES = 8
DEFAULT_MAX_SIDE = 1200
RETRY_MAX_SIDE = 800
LARGE_IMAGE_SIDE = 500
CAROUSEL_RANGE = range(4, 20)

IMAGE_ATTRIBUTES = ("src", "data-src", "data-original", "data-zoom-image", "data-rimg-src")
IMAGE_EXTENSION = re.compile(r"\.(jpe?g|png|webp)(\?|$)", re.I)

INGREDIENT_KEYWORD = re.compile(r"ingredient", re.I)
LABEL_KEYWORD = re.compile(r"supplement|nutrition|facts|label|panel|back", re.I)
SHOPIFY_SIZE_SUFFIX = re.compile(
    r"_(\d+x\d*|x\d+|pico|icon|thumb|small|compact|medium|large|grande|original|master)(?=\.[a-z]+$)",
    re.I,
)


@dataclass
class ImageCandidate:
    url: str
    score: int
    index: int


def _int_attr(img: Tag, name: str) -> int:
    value = img.get(name) or ""
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else 0


def _image_source(img: Tag) -> Optional[str]:
    for attr in IMAGE_ATTRIBUTES:
        value = img.get(attr)
        if value and not str(value).startswith("data:"):
            return str(value).strip()
    srcset = img.get("srcset") or img.get("data-srcset")
    if srcset:
        first = str(srcset).split(",")[0].strip().split(" ")[0]
        if first:
            return first
    return None


def resolve_image_url(src: str, page_url: Optional[str]) -> str:
    """Absolute https URL for relative and protocol-relative sources."""
    if src.startswith("//"):
        return "https:" + src
    if page_url and not urlparse(src).scheme:
        return urljoin(page_url, src)
    return src


def is_shopify_cdn(url: str) -> bool:
    return "cdn.shopify.com" in (urlparse(url).hostname or "") or "/cdn/shop/" in url


def normalize_shopify_url(url: str) -> str:
    """Strip Shopify size suffixes (``_2048x``, ``_large``) and the ``v`` cache param."""
    if not is_shopify_cdn(url):
        return url
    parts = urlparse(url)
    path = SHOPIFY_SIZE_SUFFIX.sub("", parts.path)
    query = urlencode([(k, v) for k, v in parse_qsl(parts.query) if k != "v"])
    return urlunparse(parts._replace(path=path, query=query))


def downsize_shopify_url(url: str, max_side: int = DEFAULT_MAX_SIDE) -> str:
    """Ask the Shopify CDN for a ``max_side`` px variant so OCR stays under its size limit."""
    if not is_shopify_cdn(url):
        return url
    parts = urlparse(url)
    query = [(k, v) for k, v in parse_qsl(parts.query) if k != "width"]
    query.append(("width", str(max_side)))
    return urlunparse(parts._replace(query=urlencode(query)))


def score_image(src: str, alt: str, width: int, height: int, index: int) -> int:
    """
    Likelihood that an image shows the label panel.

    +4 ingredient keyword and +3 label keyword, each counted for filename and
    alt text; +5 when "supplement" and "facts" both appear; +1 for large
    images; +1 for mid-carousel positions, where back-of-pack shots tend to sit.
    """
    filename = urlparse(src).path.rsplit("/", 1)[-1]
    score = 0
    for text in (filename, alt):
        if INGREDIENT_KEYWORD.search(text):
            score += 4
        if LABEL_KEYWORD.search(text):
            score += 3
    combined = f"{filename} {alt}".lower()
    if "supplement" in combined and "facts" in combined:
        score += 5
    if max(width, height) >= LARGE_IMAGE_SIDE:
        score += 1
    if index in CAROUSEL_RANGE:
        score += 1
    return score


MARKDOWN_IMAGE = re.compile(r"!\[([^\]]*)\]\(([^)\s]+)")


def _image_tags(soup: BeautifulSoup, content: str) -> Iterator[Tuple[str, str, int, int]]:
    """(src, alt, width, height) for <img> tags, then markdown images."""
    for img in soup.find_all("img"):
        src = _image_source(img)
        if src:
            alt = str(img.get("alt") or img.get("data-alt") or "")
            yield src, alt, _int_attr(img, "width"), _int_attr(img, "height")
    for match in MARKDOWN_IMAGE.finditer(content):
        yield match.group(2), match.group(1), 0, 0


def rank_images(html: str, page_url: Optional[str] = None,
                limit: int = MAX_OCR_CANDIDATES) -> List[ImageCandidate]:
    """
    Deduplicated image candidates, best first.

    Zero-score images follow the scored ones in page order.
    """
    soup = BeautifulSoup(html or "", "lxml")
    seen = set()
    candidates: List[ImageCandidate] = []

    for index, (src, alt, width, height) in enumerate(_image_tags(soup, html or "")):
        url = normalize_shopify_url(resolve_image_url(src, page_url))
        if not IMAGE_EXTENSION.search(urlparse(url).path + "?") or url in seen:
            continue
        seen.add(url)
        score = score_image(url, alt, width, height, index)
        candidates.append(ImageCandidate(url=url, score=score, index=index))

    candidates.sort(key=lambda c: (-c.score, c.index))
    return candidates[:limit]


class OcrFallback:
    """
    Runs OCR over ranked product images.

    OCR failures on one image are logged and the loop moves on; the fallback
    only returns ``None`` once every candidate is exhausted.
    """

    def __init__(self, client: Optional[OcrSpaceClient] = None,
                 max_candidates: int = MAX_OCR_CANDIDATES):
        self.client = client or OcrSpaceClient()
        self.max_candidates = max_candidates
        self.logger = LayerLogger("ocr_fallback")

    def is_available(self) -> bool:
        return self.client.is_configured()

    async def find_label_text(self, html: str, page_url: Optional[str] = None) -> Optional[str]:
        """
        OCR text of the first image that reads like a label panel.

        Args:
            html: page HTML
            page_url: base for resolving relative image URLs
        """
        if not self.is_available():
            self.logger.log_decision("skip_ocr", "OCRSPACE_API_KEY not configured", url=page_url)
            return None

        candidates = rank_images(html, page_url, self.max_candidates)
        self.logger.log_action(
            "rank_images", "completed", url=page_url,
            candidates=[{"url": c.url, "score": c.score} for c in candidates],
        )

        for candidate in candidates:
            text = await self._read(candidate.url)
            if text and has_label_marker(text):
                self.logger.log_action(
                    "ocr_label", "accepted", url=page_url,
                    image=candidate.url, score=candidate.score, text_length=len(text),
                )
                return text
            self.logger.log_decision(
                "reject_ocr_text", "no ingredients/facts marker" if text else "no text",
                url=page_url, image=candidate.url,
            )

        self.logger.log_action("ocr_label", "exhausted", url=page_url, tried=len(candidates))
        return None

    async def _read(self, image_url: str) -> Optional[str]:
        try:
            return await self.client.read_image(downsize_shopify_url(image_url, DEFAULT_MAX_SIDE))
        except OcrImageTooLarge:
            if not is_shopify_cdn(image_url):
                self.logger.log_error("Image too large for OCR", error_type="ocr_image_too_large",
                                      image=image_url)
                return None
            self.logger.log_fallback(
                from_source=f"{DEFAULT_MAX_SIDE}px", to_source=f"{RETRY_MAX_SIDE}px",
                reason="ocr_image_too_large", image=image_url,
            )
            try:
                return await self.client.read_image(downsize_shopify_url(image_url, RETRY_MAX_SIDE))
            except OcrError as e:
                self.logger.log_error(str(e), error_type=e.error_code, image=image_url)
                return None
        except OcrError as e:
            self.logger.log_error(str(e), error_type=e.error_code, image=image_url)
            return None
