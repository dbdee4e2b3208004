"""
Input contracts per technique.

Caller payloads are validated before any prompt is rendered. Field aliases
match the template inputFields and are what the prompt serializes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, constr

from learngen.errors import InputError
from learngen.validation.schema_cache import format_path

NonEmptyStr = constr(strip_whitespace=True, min_length=1)


class CoachLevel(str, Enum):
    """Learner proficiency used to tailor coaching prompts."""

    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"


class TechniqueInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @classmethod
    def field_names(cls) -> list[str]:
        """Wire names of the fields, in declaration order."""
        return [info.alias or name for name, info in cls.model_fields.items()]

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class MnemonicInput(TechniqueInput):
    term: NonEmptyStr
    definition: NonEmptyStr


class StoryInput(TechniqueInput):
    concepts: list[NonEmptyStr] = Field(min_length=1)
    target_audience: NonEmptyStr = Field(alias="targetAudience")
    learning_goal: NonEmptyStr = Field(alias="learningGoal")


class FlashcardItem(BaseModel):
    model_config = ConfigDict(extra="forbid")

    term: NonEmptyStr
    definition: NonEmptyStr


class FlashcardsInput(TechniqueInput):
    topic: NonEmptyStr
    items: list[FlashcardItem] = Field(min_length=1)


class CoachInput(TechniqueInput):
    topic: NonEmptyStr
    level: CoachLevel


def validate_input(model: type[TechniqueInput], payload: Any) -> TechniqueInput:
    """
    Validate a caller payload against a technique input contract.

    Raises:
        InputError: With one path-qualified diagnostic per violation
    """
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        diagnostics = [f"{format_path(err['loc'])}: {err['msg']}" for err in e.errors()]
        raise InputError(f"Invalid input: {'; '.join(diagnostics)}", diagnostics) from e
