from dataclasses import dataclass, field
from typing import Dict, Any

MAX_CODE_LENGTH = 50_000
DEFAULT_LANGUAGE = "javascript"

# Input types
@dataclass
class ReviewInput:
    code: str
    language: str = DEFAULT_LANGUAGE

# Output types
@dataclass
class ReviewOutput:
    review: str
    language: str
    code_length: int
    timestamp: str
    processing_metadata: Dict[str, Any] = field(default_factory=dict)


class ReviewValidationError(ValueError):
    """Request failed an input check; always answered with HTTP 400."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# Messages returned to clients verbatim
CODE_REQUIRED = "Code is required."
CODE_NOT_STRING = "Code must be a non-empty string."
CODE_TOO_LONG = f"Code exceeds maximum length of {MAX_CODE_LENGTH:,} characters."
LANGUAGE_NOT_STRING = "Language must be a string."
GENERATION_FAILED = "Failed to generate code review."
INTERNAL_ERROR = "Internal server error"
