"""
Health check endpoints for monitoring and diagnostics.
"""

import time
from fastapi import APIRouter, Depends

from ..models.common import HealthStatus
from ..dependencies.state import get_model_manager
from src.models.manager import ModelManager

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()

API_VERSION = "1.0.0"


@router.get("", response_model=HealthStatus)
async def health_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Basic liveness check.

    Does not call the model provider; see /health/ready for that.
    """
    uptime = time.time() - _server_start_time

    try:
        stats = model_manager.get_stats()
        dependencies = {"model_manager": "ok"}
    except Exception as e:
        stats = {}
        dependencies = {"model_manager": f"error: {e}"}

    return HealthStatus(
        status="healthy",
        version=API_VERSION,
        uptime=uptime,
        dependencies=dependencies,
        stats=stats,
    )


@router.get("/ready")
async def readiness_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Readiness probe.

    Sends a short probe prompt to the provider and reports whether text came back.
    """
    if not await model_manager.health_check():
        return {"ready": False, "reason": "Model provider did not return a response"}

    return {"ready": True, "message": "Service ready to handle requests"}
