"""
Request shape checks applied before the review handler runs.
"""

import json
import time
from typing import Any, Dict

from fastapi import Request

from src.pipeline.review.types import ReviewValidationError

BODY_REQUIRED = "Request body is required."
CONTENT_TYPE_JSON = "Content-Type must be application/json."


async def require_json_body(request: Request) -> Dict[str, Any]:
    """Return the decoded JSON object body, or fail with a 400 validation error."""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        body = None

    if not isinstance(body, dict) or not body:
        raise ReviewValidationError(BODY_REQUIRED)

    media_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if media_type != "application/json":
        raise ReviewValidationError(CONTENT_TYPE_JSON)

    return body


async def record_request_time(request: Request) -> None:
    # Arrival time in epoch ms. No limit is enforced on it.
    request.state.request_time = int(time.time() * 1000)
