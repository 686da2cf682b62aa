"""
Common API models used across different endpoints.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class APIResponse(BaseModel):
    """Base response wrapper for all API endpoints."""
    success: bool = Field(..., description="Whether the request was successful")


class ErrorResponse(APIResponse):
    """Standard error response format."""
    error: str = Field(..., description="Error message")
    message: Optional[str] = Field(None, description="Extra detail, only set for server errors")

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Code must be a non-empty string."
            }
        }


class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    uptime: float = Field(..., description="Uptime in seconds")
    dependencies: Dict[str, str] = Field(..., description="Status of external dependencies")
    stats: Dict[str, Any] = Field(default_factory=dict, description="Provider call statistics per task")
