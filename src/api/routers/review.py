"""
Code review endpoint.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from typing import Any, Dict

from ..models.common import ErrorResponse
from ..models.review import ReviewMetadata, ReviewRequest, ReviewResponse
from ..dependencies.state import get_model_manager, get_settings
from ..dependencies.validation import record_request_time, require_json_body
from ..settings import ServerSettings
from src.models.manager import ModelManager
from src.pipeline.review.review import ReviewPipeline
from src.pipeline.review.types import GENERATION_FAILED, INTERNAL_ERROR

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/get-review",
    response_model=ReviewResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    # body is read by require_json_body; this only documents its shape
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": ReviewRequest.model_json_schema()}},
        }
    },
)
async def get_review(
    body: Dict[str, Any] = Depends(require_json_body),
    _request_time: None = Depends(record_request_time),
    model_manager: ModelManager = Depends(get_model_manager),
    settings: ServerSettings = Depends(get_settings),
):
    """
    Review submitted source code.

    Validation failures raise ReviewValidationError and are answered with 400
    by the app-level handler. One provider call is made per request.
    """
    review_input = ReviewPipeline.parse(body)

    try:
        output = await ReviewPipeline(model_manager).process(review_input)
    except Exception as e:
        logger.exception(f"Error in get_review: {e}")
        error = ErrorResponse(
            success=False,
            error=GENERATION_FAILED,
            message=str(e) if settings.expose_error_details else INTERNAL_ERROR,
        )
        return JSONResponse(status_code=500, content=error.model_dump())

    logger.info(
        f"Review completed: code_length={output.code_length} "
        f"processing_time={output.processing_metadata['processing_time']:.2f}s"
    )
    return ReviewResponse(
        success=True,
        review=output.review,
        metadata=ReviewMetadata(
            language=output.language,
            code_length=output.code_length,
            timestamp=output.timestamp,
        ),
    )
