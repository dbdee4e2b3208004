"""
Unit tests for the Generation Orchestrator.

The oracle is an AsyncMock scripted per test via side_effect, so every
test controls exactly what each attempt receives.
"""

import asyncio
import copy
import json

import pytest

from learngen.errors import (
    ConfigurationError,
    InputError,
    NotFoundError,
    OracleTransportError,
    UnprocessableContentError,
)
from learngen.generation.artifacts import CoachArtifact, FlashcardsArtifact, MnemonicArtifact
from learngen.generation.orchestrator import GenerationOrchestrator, estimate_max_tokens
from learngen.templates.store import TemplateStore, load_default_store


@pytest.fixture
def orchestrator(mock_client):
    return GenerationOrchestrator(load_default_store(), mock_client)


@pytest.fixture
def coach_response():
    return {
        "technique": "flashcards_index_it",
        "advice": "Prepara poche schede e ripassale ogni giorno.",
        "rationale": "Il richiamo attivo consolida le frazioni.",
    }


class TestEstimateMaxTokens:
    @pytest.mark.parametrize("length,expected", [
        (1, 128),
        (100, 128),
        (512, 128),
        (513, 129),
        (600, 150),
        (800, 200),
        (1200, 300),
    ])
    def test_estimate(self, length, expected):
        assert estimate_max_tokens(length) == expected


class TestConstruction:
    """Tests for budget and contract checks at construction time."""

    def test_default_budgets(self, orchestrator):
        assert orchestrator.attempt_budget("flashcards_index_it") == 2
        assert orchestrator.attempt_budget("mnemonic_it") == 1
        assert orchestrator.attempt_budget("story_it") == 1
        assert orchestrator.attempt_budget("coach_it") == 1

    def test_custom_budgets(self, mock_client):
        orchestrator = GenerationOrchestrator(
            load_default_store(), mock_client, attempt_budgets={"story_it": 3}, default_attempts=2
        )
        assert orchestrator.attempt_budget("story_it") == 3
        assert orchestrator.attempt_budget("flashcards_index_it") == 2
        assert orchestrator.attempt_budget("mnemonic_it") == 2

    @pytest.mark.parametrize("kwargs", [
        {"attempt_budgets": {"story_it": 0}},
        {"default_attempts": 0},
    ])
    def test_invalid_budgets(self, mock_client, kwargs):
        with pytest.raises(ConfigurationError):
            GenerationOrchestrator(load_default_store(), mock_client, **kwargs)

    def test_input_fields_mismatch(self, mock_client, definitions):
        definitions["mnemonic_it"]["1.0.0"]["inputFields"] = ["term"]
        store = TemplateStore(definitions)

        with pytest.raises(ConfigurationError, match="inputFields"):
            GenerationOrchestrator(store, mock_client)

    def test_list_templates(self, orchestrator, mock_client):
        templates = orchestrator.list_templates()

        assert [t.technique.value for t in templates] == [
            "mnemonic_it", "story_it", "flashcards_index_it", "coach_it",
        ]
        mock_client.complete_json.assert_not_awaited()


class TestGenerate:
    """Tests for the attempt loop and its outcomes."""

    @pytest.mark.asyncio
    async def test_mnemonic_success_is_trimmed(self, orchestrator, mock_client, mnemonic_input,
                                               mnemonic_response):
        mock_client.complete_json.side_effect = [json.dumps(mnemonic_response)]

        artifact = await orchestrator.create_mnemonic(mnemonic_input)

        assert isinstance(artifact, MnemonicArtifact)
        assert artifact.mnemonic == "MITO-CONDRIO: il mito della centrale elettrica"
        assert artifact.keywords == ["centrale", "energia"]
        assert artifact.technique == "mnemonic_it"
        assert artifact.template_version == "1.0.0"
        assert mock_client.complete_json.await_count == 1

    @pytest.mark.asyncio
    async def test_request_arguments(self, orchestrator, mock_client, mnemonic_input,
                                     mnemonic_response):
        mock_client.complete_json.side_effect = [json.dumps(mnemonic_response)]
        template = load_default_store().get("mnemonic_it")

        await orchestrator.generate("mnemonic_it", mnemonic_input)

        prompt, schema, max_tokens = mock_client.complete_json.await_args.args
        assert prompt.startswith(template.prompt.strip())
        assert '"term": "mitocondrio"' in prompt
        assert schema == template.response_schema
        assert max_tokens == 150

    @pytest.mark.asyncio
    @pytest.mark.parametrize("technique,expected", [
        ("story_it", 300),
        ("flashcards_index_it", 300),
        ("coach_it", 200),
    ])
    async def test_max_tokens_per_technique(self, orchestrator, mock_client, technique, expected):
        mock_client.complete_json.side_effect = ["not json"] * 2
        payloads = {
            "story_it": {"concepts": ["x"], "targetAudience": "a", "learningGoal": "b"},
            "flashcards_index_it": {"topic": "t", "items": [{"term": "a", "definition": "b"}]},
            "coach_it": {"topic": "t", "level": "ADVANCED"},
        }

        with pytest.raises(UnprocessableContentError):
            await orchestrator.generate(technique, payloads[technique])

        assert mock_client.complete_json.await_args.args[2] == expected

    @pytest.mark.asyncio
    async def test_prose_wrapped_response_accepted(self, orchestrator, mock_client,
                                                   mnemonic_input, mnemonic_response):
        mock_client.complete_json.side_effect = [
            f"Ecco la mnemonica:\n{json.dumps(mnemonic_response)}\nBuono studio!"
        ]

        artifact = await orchestrator.create_mnemonic(mnemonic_input)

        assert artifact.explanation.startswith("Associa")

    @pytest.mark.asyncio
    async def test_single_shot_technique_fails_fast(self, orchestrator, mock_client,
                                                    mnemonic_input, mnemonic_response):
        del mnemonic_response["keywords"]
        mock_client.complete_json.side_effect = [
            json.dumps(mnemonic_response),
            json.dumps(mnemonic_response),
        ]

        with pytest.raises(UnprocessableContentError) as exc_info:
            await orchestrator.create_mnemonic(mnemonic_input)

        assert exc_info.value.attempts == 1
        assert exc_info.value.technique == "mnemonic_it"
        assert "keywords" in str(exc_info.value)
        assert mock_client.complete_json.await_count == 1

    @pytest.mark.asyncio
    async def test_flashcards_retry_then_success(self, orchestrator, mock_client,
                                                 flashcards_input, make_flashcards):
        invalid = make_flashcards(5)
        invalid["flashcards"][1]["answer"] = "a" * 57
        valid = make_flashcards(6, answer="  Risposta breve  ")
        mock_client.complete_json.side_effect = [json.dumps(invalid), json.dumps(valid)]

        artifact = await orchestrator.create_flashcards(flashcards_input)

        assert isinstance(artifact, FlashcardsArtifact)
        assert artifact.topic == "Energia"
        assert len(artifact.flashcards) == 6
        assert all(card.answer == "Risposta breve" for card in artifact.flashcards)
        assert mock_client.complete_json.await_count == 2

    @pytest.mark.asyncio
    async def test_flashcards_budget_exhausted(self, orchestrator, mock_client,
                                               flashcards_input, make_flashcards):
        too_few = make_flashcards(3)
        mock_client.complete_json.side_effect = [json.dumps(too_few)] * 3

        with pytest.raises(UnprocessableContentError) as exc_info:
            await orchestrator.create_flashcards(flashcards_input)

        assert exc_info.value.attempts == 2
        assert exc_info.value.diagnostics[0].startswith("flashcards: ")
        assert mock_client.complete_json.await_count == 2

    @pytest.mark.asyncio
    async def test_unparseable_then_valid(self, orchestrator, mock_client,
                                          flashcards_input, make_flashcards):
        mock_client.complete_json.side_effect = [
            "Mi dispiace, non posso.",
            json.dumps(make_flashcards(5)),
        ]

        artifact = await orchestrator.create_flashcards(flashcards_input)

        assert [card.index for card in artifact.flashcards] == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_same_prompt_on_every_attempt(self, orchestrator, mock_client,
                                                flashcards_input, make_flashcards):
        mock_client.complete_json.side_effect = ["{}", json.dumps(make_flashcards(5))]

        await orchestrator.create_flashcards(flashcards_input)

        first, second = mock_client.complete_json.await_args_list
        assert first.args == second.args

    @pytest.mark.asyncio
    async def test_transport_error_is_not_retried(self, orchestrator, mock_client,
                                                  flashcards_input, make_flashcards):
        mock_client.complete_json.side_effect = [
            OracleTransportError("Oracle request failed with status 503"),
            json.dumps(make_flashcards(5)),
        ]

        with pytest.raises(OracleTransportError, match="503"):
            await orchestrator.create_flashcards(flashcards_input)

        assert mock_client.complete_json.await_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_client_error_is_transport_error(self, orchestrator, mock_client,
                                                              mnemonic_input):
        boom = RuntimeError("socket closed")
        mock_client.complete_json.side_effect = boom

        with pytest.raises(OracleTransportError, match="socket closed") as exc_info:
            await orchestrator.create_mnemonic(mnemonic_input)

        assert exc_info.value.__cause__ is boom

    @pytest.mark.asyncio
    async def test_invalid_input_never_calls_oracle(self, orchestrator, mock_client):
        with pytest.raises(InputError):
            await orchestrator.create_mnemonic({"term": "mitocondrio"})

        mock_client.complete_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_technique(self, orchestrator, mock_client, mnemonic_input):
        with pytest.raises(NotFoundError, match="Unknown technique"):
            await orchestrator.generate("limerick_it", mnemonic_input)
        mock_client.complete_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_version_checked_before_input(self, orchestrator, mock_client):
        with pytest.raises(NotFoundError, match="Unknown version"):
            await orchestrator.generate("mnemonic_it", {}, version="9.9.9")
        mock_client.complete_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_coach(self, orchestrator, mock_client, coach_response):
        mock_client.complete_json.side_effect = [json.dumps(coach_response)]

        artifact = await orchestrator.coach({"topic": "Frazioni", "level": "BEGINNER"})

        assert isinstance(artifact, CoachArtifact)
        assert artifact.suggested_technique == "flashcards_index_it"
        assert artifact.to_payload()["suggestedTechnique"] == "flashcards_index_it"
        assert artifact.to_payload()["technique"] == "coach_it"
        assert artifact.level.value == "BEGINNER"

    @pytest.mark.asyncio
    async def test_coach_unknown_suggestion_rejected(self, orchestrator, mock_client,
                                                     coach_response):
        coach_response["technique"] = "limerick_it"
        mock_client.complete_json.side_effect = [json.dumps(coach_response)]

        with pytest.raises(UnprocessableContentError) as exc_info:
            await orchestrator.coach({"topic": "Frazioni", "level": "BEGINNER"})

        assert exc_info.value.diagnostics[0].startswith("technique: ")

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, orchestrator, mock_client, flashcards_input):
        mock_client.complete_json.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await orchestrator.create_flashcards(flashcards_input)

        assert mock_client.complete_json.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_requests(self, orchestrator, mock_client, mnemonic_input,
                                       mnemonic_response):
        mock_client.complete_json.side_effect = [json.dumps(mnemonic_response)] * 5

        artifacts = await asyncio.gather(
            *(orchestrator.create_mnemonic(mnemonic_input) for _ in range(5))
        )

        assert len({a.mnemonic for a in artifacts}) == 1
        assert len(orchestrator.schema_cache) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        '{"flashcards": [{"index": ' + "9" * 5000 + ', "question": "Domanda", "answer": "x"}]}',
        "[" * 100000,
    ])
    async def test_decoder_limits_are_retried(self, orchestrator, mock_client, flashcards_input,
                                              make_flashcards, raw):
        mock_client.complete_json.side_effect = [raw, json.dumps(make_flashcards(5))]

        artifact = await orchestrator.create_flashcards(flashcards_input)

        assert len(artifact.flashcards) == 5
        assert mock_client.complete_json.await_count == 2


class TestLooseSchemas:
    """Responses that pass a loosely authored schema but do not fit the artifact."""

    @pytest.fixture
    def loose_store(self, definitions):
        document = copy.deepcopy(definitions["mnemonic_it"]["1.0.0"])
        document["version"] = "2.0.0"
        document["responseSchema"] = {
            "type": "object",
            "properties": {"mnemonic": {}, "explanation": {}, "keywords": {}},
            "required": ["mnemonic", "explanation", "keywords"],
        }
        definitions["mnemonic_it"]["2.0.0"] = document
        return TemplateStore(definitions)

    @pytest.fixture
    def loose_response(self):
        return {"mnemonic": "abc", "explanation": "x", "keywords": "notalist", "technique": "z"}

    @pytest.mark.asyncio
    async def test_mistyped_field_is_content_failure(self, loose_store, mock_client,
                                                     mnemonic_input, loose_response):
        orchestrator = GenerationOrchestrator(loose_store, mock_client)
        mock_client.complete_json.side_effect = [json.dumps(loose_response)]

        with pytest.raises(UnprocessableContentError) as exc_info:
            await orchestrator.create_mnemonic(mnemonic_input)

        assert exc_info.value.diagnostics[0].startswith("keywords: ")
        assert mock_client.complete_json.await_count == 1

    @pytest.mark.asyncio
    async def test_mistyped_field_is_retried(self, loose_store, mock_client, mnemonic_input,
                                             loose_response):
        orchestrator = GenerationOrchestrator(
            loose_store, mock_client, attempt_budgets={"mnemonic_it": 2}
        )
        fixed = dict(loose_response, keywords=[" centrale "])
        mock_client.complete_json.side_effect = [json.dumps(loose_response), json.dumps(fixed)]

        artifact = await orchestrator.create_mnemonic(mnemonic_input)

        assert artifact.technique == "mnemonic_it"
        assert artifact.template_version == "2.0.0"
        assert artifact.keywords == ["centrale"]
        assert mock_client.complete_json.await_count == 2

    @pytest.mark.asyncio
    async def test_undeclared_keys_are_ignored(self, loose_store, mock_client, mnemonic_input):
        orchestrator = GenerationOrchestrator(loose_store, mock_client)
        response = {
            "mnemonic": "abc",
            "explanation": "x",
            "keywords": ["a"],
            "templateVersion": "9.9.9",
            "extra": True,
        }
        mock_client.complete_json.side_effect = [json.dumps(response)]

        artifact = await orchestrator.create_mnemonic(mnemonic_input)

        assert artifact.template_version == "2.0.0"
        assert "extra" not in artifact.to_payload()
