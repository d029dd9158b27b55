"""
OCR.Space client used to read supplement label photos.
"""
from typing import Optional

from suppscore.config import config
from suppscore.errors import FetchError, SuppScoreError
from suppscore.utils.http import HttpFetcher
from suppscore.utils.logger import LayerLogger


OCR_SPACE_URL = "https://api.ocr.space/parse/image"


class OcrError(SuppScoreError):
    """OCR.Space failed on one image."""

    error_code = "ocr_failed"


class OcrImageTooLarge(OcrError):
    """OCR.Space rejected the image as too large (error E214)."""

    error_code = "ocr_image_too_large"


class OcrSpaceClient:
    """
    Minimal OCR.Space client.

    ``read_image`` returns the parsed text for one image URL, ``None`` when
    the image holds no text, and raises ``OcrError`` for service failures so
    the caller can decide whether to retry with a smaller image.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        fetcher: Optional[HttpFetcher] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else config.OCRSPACE_API_KEY
        self.fetcher = fetcher or HttpFetcher()
        self.timeout = timeout if timeout is not None else config.OCR_SPACE_TIMEOUT
        self.logger = LayerLogger("ocr_space")

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def read_image(self, image_url: str) -> Optional[str]:
        if not self.api_key:
            return None

        try:
            response = await self.fetcher.post(
                OCR_SPACE_URL,
                timeout=self.timeout,
                headers={"apikey": self.api_key},
                data={
                    "url": image_url,
                    "apikey": self.api_key,
                    "language": "eng",
                    "isOverlayRequired": "false",
                    "isTable": "true",
                    "scale": "true",
                    "OCREngine": "2",
                },
            )
        except FetchError as e:
            raise OcrError(str(e)) from e

        if response.status_code != 200:
            raise OcrError(f"OCR API error: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise OcrError("OCR API returned invalid JSON") from e
        if not isinstance(data, dict):
            raise OcrError("OCR API returned an unexpected response shape")

        if data.get("IsErroredOnProcessing"):
            details = data.get("ErrorMessage") or data.get("ErrorDetails") or ""
            if isinstance(details, list):
                details = "; ".join(str(d) for d in details)
            if "E214" in str(details) or "size" in str(details).lower():
                raise OcrImageTooLarge(str(details))
            raise OcrError(str(details) or "OCR processing failed")

        results = data.get("ParsedResults") or []
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            return None
        text = results[0].get("ParsedText")
        if not isinstance(text, str):
            return None
        return text.strip() or None
