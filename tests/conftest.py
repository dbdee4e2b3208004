"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import copy
import json
import sys
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from learngen.generation.oracle import CompletionClient  # noqa: E402
from learngen.templates.store import DEFINITIONS_DIR  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


def _load_bundled_definitions() -> dict:
    definitions = {}
    for technique in ("mnemonic_it", "story_it", "flashcards_index_it", "coach_it"):
        document = json.loads((DEFINITIONS_DIR / technique / "v1.json").read_text(encoding="utf-8"))
        definitions[technique] = {document["version"]: document}
    return definitions


_BUNDLED = _load_bundled_definitions()


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def definitions():
    """Fresh, mutable copy of the bundled template definitions."""
    return copy.deepcopy(_BUNDLED)


@pytest.fixture
def mock_client():
    """Completion client whose complete_json is an AsyncMock; script it via side_effect."""
    return AsyncMock(spec=CompletionClient)


@pytest.fixture
def flashcards_input():
    return {
        "topic": "Energia",
        "items": [
            {"term": "energia cinetica", "definition": "energia dovuta al movimento"},
        ],
    }


@pytest.fixture
def mnemonic_input():
    return {"term": "mitocondrio", "definition": "organello che produce energia nella cellula"}


@pytest.fixture
def mnemonic_response():
    return {
        "mnemonic": "  MITO-CONDRIO: il mito della centrale elettrica  ",
        "explanation": "Associa il mitocondrio a una centrale che produce energia.",
        "keywords": [" centrale ", "energia"],
    }


@pytest.fixture
def make_flashcards():
    """Factory for flashcards responses with count cards."""

    def _make(count: int, question: str = "Domanda {n}", answer: str = "Risposta breve") -> dict:
        return {
            "flashcards": [
                {"index": n, "question": question.format(n=n), "answer": answer}
                for n in range(1, count + 1)
            ]
        }

    return _make
