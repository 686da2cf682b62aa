import logging
import time
from typing import Any, Dict, Optional

from src.models.manager import ModelManager, utc_timestamp
from src.models.prompts import PromptManager
from .prompt import REVIEW_PROMPT_REF, build_review_prompt, default_prompt_manager
from .types import (
    CODE_NOT_STRING,
    CODE_REQUIRED,
    CODE_TOO_LONG,
    DEFAULT_LANGUAGE,
    LANGUAGE_NOT_STRING,
    MAX_CODE_LENGTH,
    ReviewInput,
    ReviewOutput,
    ReviewValidationError,
)

logger = logging.getLogger(__name__)


class ReviewPipeline:
    def __init__(self, manager: ModelManager, prompts: Optional[PromptManager] = None):
        self.model_manager = manager
        self.prompts = prompts or default_prompt_manager()

    @staticmethod
    def parse(body: Dict[str, Any]) -> ReviewInput:
        """
        Check a decoded request body and turn it into a ReviewInput.

        Raises ReviewValidationError before any provider call is made.
        """
        code = body.get("code")
        if code is None:
            raise ReviewValidationError(CODE_REQUIRED)
        if not isinstance(code, str) or not code.strip():
            raise ReviewValidationError(CODE_NOT_STRING)
        if len(code) > MAX_CODE_LENGTH:
            raise ReviewValidationError(CODE_TOO_LONG)

        language = body.get("language")
        if language is not None and not isinstance(language, str):
            raise ReviewValidationError(LANGUAGE_NOT_STRING)
        if not language or not language.strip():
            language = DEFAULT_LANGUAGE

        return ReviewInput(code=code, language=language)

    async def process(self, review_input: ReviewInput) -> ReviewOutput:
        prompt = build_review_prompt(review_input.code, review_input.language, prompts=self.prompts)

        logger.info(
            f"Generating code review: code_length={len(review_input.code)} "
            f"language={review_input.language} timestamp={utc_timestamp()}"
        )

        start_time = time.perf_counter()
        review = await self.model_manager.generate(prompt)
        processing_time = time.perf_counter() - start_time

        return ReviewOutput(
            review=review,
            language=review_input.language,
            code_length=len(review_input.code),
            timestamp=utc_timestamp(),
            processing_metadata={
                "prompt_version": REVIEW_PROMPT_REF,
                "prompt_length": len(prompt),
                "processing_time": processing_time,
            },
        )
