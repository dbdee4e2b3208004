"""
Per-technique wiring: input contract, domain contract and artifact builder.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from learngen.generation.artifacts import (
    CoachArtifact,
    FlashcardsArtifact,
    GeneratedArtifact,
    MnemonicArtifact,
    StoryArtifact,
)
from learngen.templates.models import Technique, Template
from learngen.validation.domain import FlashcardsResult
from learngen.validation.inputs import (
    CoachInput,
    FlashcardsInput,
    MnemonicInput,
    StoryInput,
    TechniqueInput,
)

ArtifactBuilder = Callable[[Template, Any, dict[str, Any]], GeneratedArtifact]


@dataclass(frozen=True)
class TechniqueSpec:
    technique: Technique
    label: str
    input_model: type[TechniqueInput]
    build: ArtifactBuilder
    domain_contract: type[BaseModel] | None = None


def _meta(template: Template) -> dict[str, str]:
    return {"technique": template.technique.value, "template_version": template.version}


def _build_mnemonic(template: Template, _: MnemonicInput, data: dict[str, Any]) -> MnemonicArtifact:
    return MnemonicArtifact.from_response(data, **_meta(template))


def _build_story(template: Template, _: StoryInput, data: dict[str, Any]) -> StoryArtifact:
    return StoryArtifact.from_response(data, **_meta(template))


def _build_flashcards(
    template: Template, validated: FlashcardsInput, data: dict[str, Any]
) -> FlashcardsArtifact:
    return FlashcardsArtifact.from_response(data, **_meta(template), topic=validated.topic)


def _build_coach(template: Template, validated: CoachInput, data: dict[str, Any]) -> CoachArtifact:
    # The response "technique" is the suggestion; the artifact's own technique is coach_it
    return CoachArtifact.from_response(
        data,
        **_meta(template),
        topic=validated.topic,
        level=validated.level,
        suggested_technique=data.get("technique"),
    )

TECHNIQUES: dict[Technique, TechniqueSpec] = {
    spec.technique: spec
    for spec in (
        TechniqueSpec(Technique.MNEMONIC, "Mnemonic", MnemonicInput, _build_mnemonic),
        TechniqueSpec(Technique.STORY, "Story", StoryInput, _build_story),
        TechniqueSpec(
            Technique.FLASHCARDS,
            "Flashcards",
            FlashcardsInput,
            _build_flashcards,
            domain_contract=FlashcardsResult,
        ),
        TechniqueSpec(Technique.COACH, "Coaching", CoachInput, _build_coach),
    )
}
