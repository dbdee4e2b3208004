"""
Typed generation results.

Artifacts are built from accepted, already-trimmed oracle payloads. Flashcards
and coaching artifacts echo back part of the caller input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from learngen.validation.inputs import CoachLevel


def trim_strings(value: Any) -> Any:
    """Recursively strip surrounding whitespace from every string leaf."""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, dict):
        return {key: trim_strings(item) for key, item in value.items()}
    if isinstance(value, list):
        return [trim_strings(item) for item in value]
    return value


class GeneratedArtifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    technique: str
    template_version: str = Field(alias="templateVersion")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_response(cls, data: dict[str, Any], **values: Any):
        """
        Build an artifact from the declared fields of an accepted response.

        Response keys the artifact does not declare are ignored. Explicit
        values win over response keys of the same field.

        Raises:
            pydantic.ValidationError: A declared field is missing or mistyped
        """
        fields = {
            name: data[info.alias or name]
            for name, info in cls.model_fields.items()
            if name not in values and (info.alias or name) in data
        }
        return cls.model_validate({**fields, **values})


class MnemonicArtifact(GeneratedArtifact):
    mnemonic: str
    explanation: str
    keywords: list[str]


class StoryArtifact(GeneratedArtifact):
    story: str
    summary: str
    key_points: list[str] = Field(alias="keyPoints")


class Flashcard(BaseModel):
    index: int
    question: str
    answer: str


class FlashcardsArtifact(GeneratedArtifact):
    topic: str
    flashcards: list[Flashcard]


class CoachArtifact(GeneratedArtifact):
    topic: str
    level: CoachLevel
    suggested_technique: str = Field(alias="suggestedTechnique")
    advice: str
    rationale: str
