"""
UI state for the review screen, kept free of Streamlit calls so it can be tested.
"""

import json
import logging
from dataclasses import dataclass
from typing import NamedTuple

import httpx

from .client import ReviewAPIClient

logger = logging.getLogger(__name__)

SAMPLE_CODE = "function sum() {\n  return 1 + 1;\n}"
REVIEW_ERROR = "Error: Failed to get review. Please check your connection and try again."
COPY_CONFIRMATION = "Code copied to clipboard!"
COPY_FAILED = "Copy failed. Use the copy icon on the highlighted preview instead."

LANGUAGES = [
    "javascript", "typescript", "python", "java", "cpp", "c", "csharp", "go",
    "rust", "php", "ruby", "swift", "kotlin", "html", "css", "sql",
]


class DownloadPayload(NamedTuple):
    file_name: str
    data: bytes
    mime: str


@dataclass
class ReviewSession:
    code: str = SAMPLE_CODE
    language: str = "javascript"
    review: str = ""
    loading: bool = False

    def can_review(self) -> bool:
        return not self.loading and bool(self.code.strip())

    def review_code(self, client: ReviewAPIClient) -> None:
        self.loading = True
        try:
            response = client.request_review(self.code, self.language)
            self.review = _review_text(response)
        except httpx.HTTPError as e:
            logger.error(f"Error fetching review: {e}")
            self.review = REVIEW_ERROR
        finally:
            self.loading = False

    def reset_editor(self) -> None:
        self.code = ""
        self.review = ""

    def copy_code_to_clipboard(self) -> str:
        """
        Browser snippet that writes the current code to the clipboard.

        The confirmation is shown only once the browser resolves the write,
        a rejected write shows COPY_FAILED instead.
        """
        text, done, failed = (_script_literal(value) for value in (self.code, COPY_CONFIRMATION, COPY_FAILED))
        return (
            '<span id="copy-status" style="font-family: sans-serif; font-size: 0.9rem;"></span>'
            "<script>"
            "const status = document.getElementById('copy-status');"
            f"Promise.resolve().then(() => navigator.clipboard.writeText({text}))"
            f".then(() => {{ status.textContent = {done}; }}, () => {{ status.textContent = {failed}; }});"
            "</script>"
        )

    def download_review(self) -> DownloadPayload:
        return DownloadPayload("review.md", self.review.encode("utf-8"), "text/markdown")


def _script_literal(value: str) -> str:
    return json.dumps(value).replace("</", "<\\/")


def _review_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("review"), str):
        return body["review"]
    return response.text
