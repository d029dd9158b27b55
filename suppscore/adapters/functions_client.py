"""
Client-side transport for invoking the extract and score functions.

The client chain only depends on ``invoke(name, body, timeout)``; tests swap
in a fake or an ``httpx.MockTransport``-backed fetcher.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from suppscore.config import config
from suppscore.errors import FetchError
from suppscore.utils.http import HttpFetcher
from suppscore.utils.logger import LayerLogger


@dataclass
class FunctionResponse:
    """Result of one function invocation."""
    data: Any
    status_code: Optional[int]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status_code is not None and 200 <= self.status_code < 300


class FunctionsClient:
    """POSTs JSON to ``{base_url}/{name}`` with the API key headers."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        fetcher: Optional[HttpFetcher] = None,
    ):
        self.base_url = (base_url or config.FUNCTIONS_BASE_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else config.FUNCTIONS_API_KEY
        self.fetcher = fetcher or HttpFetcher()
        self.logger = LayerLogger("functions_client")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def invoke(self, name: str, body: Dict[str, Any], timeout: float) -> FunctionResponse:
        """
        Invoke one function.

        Transport failures (timeouts included) come back as a
        ``FunctionResponse`` with ``error`` set; they are not raised.
        """
        url = f"{self.base_url}/{name}"
        try:
            response = await self.fetcher.post(url, timeout=timeout, headers=self._headers(), json=body)
        except FetchError as e:
            self.logger.log_error(str(e), error_type=e.error_code, function=name)
            return FunctionResponse(data=None, status_code=None, error=e.error_code)

        try:
            data = response.json()
        except ValueError:
            data = None

        if not 200 <= response.status_code < 300:
            error = None
            if isinstance(data, dict):
                error = data.get("error") or data.get("message")
            return FunctionResponse(
                data=data,
                status_code=response.status_code,
                error=str(error or f"http_{response.status_code}"),
            )

        return FunctionResponse(data=data, status_code=response.status_code)
