"""
Accessors for objects created at application startup.

The ModelManager is built in the app lifespan and stored on app.state,
so endpoints receive it explicitly instead of importing a module global.
"""

from fastapi import Request

from src.models.manager import ModelManager
from ..settings import ServerSettings


def get_model_manager(request: Request) -> ModelManager:
    """FastAPI dependency to get the model manager from app state."""
    return request.app.state.model_manager


def get_settings(request: Request) -> ServerSettings:
    """FastAPI dependency to get the server settings the app was created with."""
    return request.app.state.settings
