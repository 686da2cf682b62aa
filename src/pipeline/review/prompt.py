"""
Prompt construction for code reviews.

The wording lives in the versioned Jinja templates under src/prompts/review/code/.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from src.models.prompts import PromptManager
from .types import DEFAULT_LANGUAGE

REVIEW_PROMPT_REF = "review/code@v1"
PROMPTS_DIR = Path(__file__).parents[2] / "prompts"


@lru_cache(maxsize=1)
def default_prompt_manager() -> PromptManager:
    return PromptManager(PROMPTS_DIR)


def build_review_prompt(code: str, language: str = DEFAULT_LANGUAGE,
                        prompts: Optional[PromptManager] = None) -> str:
    """Embed `code` in a fenced block labeled with `language` and ask for a six-part review."""
    prompts = prompts or default_prompt_manager()
    return prompts.render_user(REVIEW_PROMPT_REF, {"code": code, "language": language})
