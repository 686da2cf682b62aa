"""
HTTP client the UI uses to reach the review API.
"""

import os
from typing import Optional

import httpx

DEFAULT_API_URL = "http://127.0.0.1:8000"
REVIEW_PATH = "/ai/get-review"


class ReviewAPIClient:
    def __init__(self, base_url: Optional[str] = None, timeout: float = 120.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url or os.getenv("REVIEW_API_URL", DEFAULT_API_URL)
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def request_review(self, code: str, language: str) -> httpx.Response:
        """POST the code for review; non-2xx answers raise httpx.HTTPStatusError."""
        response = self._client.post(REVIEW_PATH, json={"code": code, "language": language})
        response.raise_for_status()
        return response

    def close(self):
        self._client.close()
