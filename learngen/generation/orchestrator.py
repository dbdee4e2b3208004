"""
Generation Orchestrator.

Pipeline per attempt:
1. RENDER          template + validated input -> prompt
2. INVOKE          oracle call (the only await point)
3. PARSE           raw text -> JSON value
4. SCHEMA_VALIDATE JSON Schema 2020-12, compiled once per template
5. GUARDRAIL_CHECK required fields + serialized length budget
6. DOMAIN_VALIDATE technique-specific stricter contract
7. POSTPROCESS     trim string leaves, build the typed artifact

Content failures (3-7) are retryable up to the technique's attempt budget.
Oracle failures are fatal and surface immediately.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import ValidationError

from learngen.errors import (
    ConfigurationError,
    ContentValidationError,
    LearnGenError,
    NotFoundError,
    OracleTransportError,
    UnprocessableContentError,
)
from learngen.generation.artifacts import (
    CoachArtifact,
    FlashcardsArtifact,
    GeneratedArtifact,
    MnemonicArtifact,
    StoryArtifact,
    trim_strings,
)
from learngen.generation.oracle import MIN_MAX_TOKENS, CompletionClient, get_completion_client
from learngen.generation.parser import parse_response
from learngen.generation.renderer import render_prompt
from learngen.generation.techniques import TECHNIQUES, TechniqueSpec
from learngen.templates.models import Technique, Template
from learngen.templates.store import TemplateStore, load_default_store
from learngen.validation.domain import check_domain
from learngen.validation.guardrails import enforce_guardrails
from learngen.validation.inputs import TechniqueInput, validate_input
from learngen.validation.schema_cache import SchemaValidatorCache, format_path

if TYPE_CHECKING:
    from config import Settings

DEFAULT_ATTEMPT_BUDGETS: dict[str, int] = {Technique.FLASHCARDS.value: 2}


def estimate_max_tokens(max_answer_length: int) -> int:
    """Roughly four characters per token, never below the floor."""
    return max(MIN_MAX_TOKENS, math.ceil(max_answer_length / 4))


class AttemptStatus(str, Enum):
    SUCCESS = "success"
    RETRYABLE = "retryable"
    FATAL = "fatal"


@dataclass
class AttemptOutcome:
    """Result of one render -> validate cycle."""

    status: AttemptStatus
    attempt: int
    artifact: GeneratedArtifact | None = None
    diagnostics: list[str] = field(default_factory=list)
    error: LearnGenError | None = None


class GenerationOrchestrator:
    """
    Turns a technique request into a validated artifact.

    Holds only read-only collaborators (store, client) and the validator
    cache, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        store: TemplateStore,
        client: CompletionClient,
        schema_cache: SchemaValidatorCache | None = None,
        attempt_budgets: Mapping[str, int] | None = None,
        default_attempts: int = 1,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Validated template store
            client: Completion client (oracle)
            schema_cache: Shared validator cache (new one if omitted)
            attempt_budgets: {technique: max attempts}; defaults to 2 for flashcards
            default_attempts: Budget for techniques missing from attempt_budgets

        Raises:
            ConfigurationError: Invalid budgets or templates not matching input contracts
        """
        self.store = store
        self.client = client
        self.schema_cache = schema_cache or SchemaValidatorCache()
        self.default_attempts = default_attempts
        self.attempt_budgets = dict(
            DEFAULT_ATTEMPT_BUDGETS if attempt_budgets is None else attempt_budgets
        )

        if default_attempts < 1:
            raise ConfigurationError("default_attempts must be at least 1")
        for technique, budget in self.attempt_budgets.items():
            if budget < 1:
                raise ConfigurationError(f"Attempt budget for {technique} must be at least 1")

        self._check_input_fields()

    def _check_input_fields(self) -> None:
        for technique in self.store.techniques():
            spec = TECHNIQUES[technique]
            expected = spec.input_model.field_names()
            for version in self.store.versions(technique):
                template = self.store.get(technique, version)
                if template.input_fields != expected:
                    raise ConfigurationError(
                        f"Template {template.key} declares inputFields {template.input_fields}, "
                        f"expected {expected}"
                    )

    def attempt_budget(self, technique: Technique | str) -> int:
        key = technique.value if isinstance(technique, Technique) else technique
        return self.attempt_budgets.get(key, self.default_attempts)

    def list_templates(self) -> list[Template]:
        """Latest template per technique. No generation, no side effects."""
        return self.store.list_templates()

    async def generate(
        self,
        technique: Technique | str,
        payload: Any,
        version: str | None = None,
    ) -> GeneratedArtifact:
        """
        Generate an artifact for a technique.

        Args:
            technique: Technique id
            payload: Caller input (dict or input model)
            version: Template version; latest when omitted

        Returns:
            Typed artifact with trimmed string leaves

        Raises:
            NotFoundError: Unknown technique or version
            InputError: Payload fails the technique input contract
            OracleTransportError: The oracle call failed
            UnprocessableContentError: Attempt budget exhausted
        """
        template = self.store.get(technique, version)
        spec = TECHNIQUES.get(template.technique)
        if spec is None:
            raise NotFoundError(f"Unknown technique: {template.technique.value}")

        validated = validate_input(spec.input_model, payload)
        budget = self.attempt_budget(template.technique)

        last: AttemptOutcome | None = None
        for attempt in range(1, budget + 1):
            outcome = await self._run_attempt(spec, template, validated, attempt)

            if outcome.status is AttemptStatus.SUCCESS:
                logger.info(f"{template.key} generated on attempt {attempt}/{budget}")
                return outcome.artifact

            if outcome.status is AttemptStatus.FATAL:
                logger.error(f"{template.key} aborted on attempt {attempt}: {outcome.error}")
                raise outcome.error

            last = outcome
            logger.warning(
                f"{template.key} attempt {attempt}/{budget} rejected: "
                f"{'; '.join(outcome.diagnostics)}"
            )

        logger.error(f"{template.key} failed after {budget} attempts")
        raise UnprocessableContentError(
            template.technique.value, budget, last.diagnostics if last else []
        )

    async def _run_attempt(
        self,
        spec: TechniqueSpec,
        template: Template,
        validated: TechniqueInput,
        attempt: int,
    ) -> AttemptOutcome:
        prompt = render_prompt(template, validated.to_payload())
        logger.debug(f"{template.key} attempt {attempt}: prompt of {len(prompt)} chars")

        try:
            raw = await self.client.complete_json(
                prompt,
                template.response_schema,
                estimate_max_tokens(template.guardrails.max_answer_length),
            )
        except OracleTransportError as e:
            return AttemptOutcome(AttemptStatus.FATAL, attempt, error=e)
        except Exception as e:
            error = OracleTransportError(f"Oracle call failed: {e}")
            error.__cause__ = e
            return AttemptOutcome(AttemptStatus.FATAL, attempt, error=error)

        try:
            data = parse_response(raw)
            errors = self.schema_cache.validate(template.key, template.response_schema, data)
            if errors:
                raise ContentValidationError("Response validation failed", errors)
            enforce_guardrails(template, data)
            check_domain(spec.domain_contract, data, spec.label)
            artifact = _build_artifact(spec, template, validated, trim_strings(data))
        except ContentValidationError as e:
            return AttemptOutcome(AttemptStatus.RETRYABLE, attempt, diagnostics=e.diagnostics)

        return AttemptOutcome(AttemptStatus.SUCCESS, attempt, artifact=artifact)

    async def create_mnemonic(self, payload: Any, version: str | None = None) -> MnemonicArtifact:
        return await self.generate(Technique.MNEMONIC, payload, version)

    async def create_story(self, payload: Any, version: str | None = None) -> StoryArtifact:
        return await self.generate(Technique.STORY, payload, version)

    async def create_flashcards(self, payload: Any, version: str | None = None) -> FlashcardsArtifact:
        return await self.generate(Technique.FLASHCARDS, payload, version)

    async def coach(self, payload: Any, version: str | None = None) -> CoachArtifact:
        return await self.generate(Technique.COACH, payload, version)


def _build_artifact(
    spec: TechniqueSpec,
    template: Template,
    validated: TechniqueInput,
    data: dict[str, Any],
) -> GeneratedArtifact:
    """Build the typed artifact; a response that does not fit it is a content failure."""
    try:
        return spec.build(template, validated, data)
    except ValidationError as e:
        diagnostics = [f"{format_path(err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ContentValidationError(f"{spec.label} artifact could not be built", diagnostics) from e


def create_orchestrator(
    settings: Settings,
    client: CompletionClient | None = None,
) -> GenerationOrchestrator:
    """Wire an orchestrator from settings: default store, configured oracle, budgets."""
    return GenerationOrchestrator(
        store=load_default_store(settings.template_dir),
        client=client or get_completion_client(settings),
        attempt_budgets=settings.get_attempt_budgets(),
        default_attempts=settings.generation_default_attempts,
    )
