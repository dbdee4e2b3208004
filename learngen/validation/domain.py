"""
Technique-specific domain contracts.

These are stricter than the response schema sent to the oracle, so they
catch oracle non-compliance even when structured output is nominally honored.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from learngen.errors import ContentValidationError
from learngen.validation.schema_cache import format_path

MIN_FLASHCARDS = 5
MAX_FLASHCARDS = 7
MAX_FLASHCARD_ANSWER_LENGTH = 25


class FlashcardResult(BaseModel):
    index: int = Field(ge=1)
    question: str = Field(min_length=5)
    answer: str = Field(min_length=1, max_length=MAX_FLASHCARD_ANSWER_LENGTH)


class FlashcardsResult(BaseModel):
    flashcards: list[FlashcardResult] = Field(
        min_length=MIN_FLASHCARDS, max_length=MAX_FLASHCARDS
    )


def check_domain(contract: type[BaseModel] | None, data: Any, label: str) -> None:
    """
    Validate a response against a domain contract, if the technique has one.

    Raises:
        ContentValidationError: With pydantic-ordered, path-qualified diagnostics
    """
    if contract is None:
        return
    try:
        contract.model_validate(data)
    except ValidationError as e:
        diagnostics = [f"{format_path(err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ContentValidationError(f"{label} validation failed", diagnostics) from e
