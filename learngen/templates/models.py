"""
Template models.

A template bundles the prompt, response JSON Schema and guardrails for one
version of a technique. Models are frozen and use the camelCase keys of the
template documents as aliases.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

MAX_ALLOWED_ANSWER_LENGTH = 1200


class Technique(str, Enum):
    """Supported generation flows."""

    MNEMONIC = "mnemonic_it"
    STORY = "story_it"
    FLASHCARDS = "flashcards_index_it"
    COACH = "coach_it"


FieldName = constr(min_length=1)
VersionStr = constr(min_length=1)
PromptStr = constr(min_length=10)


class Guardrails(BaseModel):
    """Business rules layered above schema validation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    max_answer_length: int = Field(
        alias="maxAnswerLength",
        ge=1,
        le=MAX_ALLOWED_ANSWER_LENGTH,
        description="Upper bound on the compact JSON length of a response",
    )
    required_fields: list[FieldName] = Field(alias="requiredFields", min_length=1)


class Template(BaseModel):
    """One validated version of a technique template."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    technique: Technique
    version: VersionStr
    language: Literal["it"]
    prompt: PromptStr
    input_fields: list[FieldName] = Field(alias="inputFields", min_length=1)
    guardrails: Guardrails
    response_schema: dict[str, Any] = Field(alias="responseSchema")

    @field_validator("response_schema")
    @classmethod
    def _schema_must_be_object(cls, value: dict[str, Any]) -> dict[str, Any]:
        if not value:
            raise ValueError("responseSchema must be a non-empty object")
        return value

    @property
    def key(self) -> str:
        """Cache key for compiled validators."""
        return f"{self.technique.value}:{self.version}"

    def to_document(self, include_schema: bool = True) -> dict[str, Any]:
        """Serialize back to the camelCase document form."""
        exclude = None if include_schema else {"response_schema"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)
