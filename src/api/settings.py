"""
Process-level settings for the HTTP service.

Values come from the `server` section of config.yaml, with a few
environment overrides for deployment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"


@dataclass(frozen=True)
class ServerSettings:
    config_path: Path
    expose_error_details: bool = False  # include exception text in 500 bodies
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=list)


def load_settings(config_path: Optional[Union[Path, str]] = None) -> ServerSettings:
    path = Path(config_path or os.getenv("CODE_REVIEW_CONFIG") or DEFAULT_CONFIG_PATH)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path) as f:
        config = yaml.safe_load(f) or {}

    server = config.get("server") or {}
    expose = bool(server.get("expose_error_details", False))
    if os.getenv("APP_ENV", "").lower() == "development":
        expose = True

    return ServerSettings(
        config_path=path,
        expose_error_details=expose,
        log_level=os.getenv("LOG_LEVEL", server.get("log_level", "INFO")).upper(),
        cors_origins=list(server.get("cors_origins") or []),
    )
