"""
API models for the code review endpoint.

The request body is parsed by hand (see dependencies.validation) so that
each failed check maps to its own message; these models describe the
success payload and document the request shape.
"""

from pydantic import BaseModel, Field
from typing import Optional

from .common import APIResponse


class ReviewRequest(BaseModel):
    """Documented shape of POST /ai/get-review."""
    code: str = Field(..., description="Source code to review (at most 50,000 characters)")
    language: Optional[str] = Field("javascript", description="Language label used for the code fence")

    class Config:
        json_schema_extra = {
            "example": {
                "code": "function sum() {\n  return 1 + 1;\n}",
                "language": "javascript"
            }
        }


class ReviewMetadata(BaseModel):
    language: str = Field(..., description="Language the code was reviewed as")
    code_length: int = Field(..., alias="codeLength", description="Number of characters submitted")
    timestamp: str = Field(..., description="ISO-8601 UTC time the review was produced")

    class Config:
        populate_by_name = True


class ReviewResponse(APIResponse):
    """Response after a successful review."""
    review: str = Field(..., description="Markdown review text from the model")
    metadata: ReviewMetadata

    class Config:
        json_schema_extra = {
            "example": {
                "success": True,
                "review": "## Code Quality Score: 7/10\n...",
                "metadata": {
                    "language": "javascript",
                    "codeLength": 26,
                    "timestamp": "2024-01-01T12:00:00.000Z"
                }
            }
        }
