"""Template-driven generation of structured learning artifacts.

Pipeline:
1. Template Store validates versioned prompt/schema templates at startup
2. Orchestrator renders a prompt and calls the completion oracle
3. Responses are parsed, schema-validated, guardrail-checked and domain-checked
4. Content failures are retried up to a per-technique attempt budget

Usage:
    from config import get_settings
    from learngen import create_orchestrator

    orchestrator = create_orchestrator(get_settings())
    cards = await orchestrator.create_flashcards(
        {"topic": "Energia", "items": [{"term": "energia cinetica", "definition": "..."}]}
    )
"""
from learngen.errors import (
    ConfigurationError,
    ContentValidationError,
    InputError,
    LearnGenError,
    NotFoundError,
    OracleTransportError,
    UnprocessableContentError,
)
from learngen.generation.orchestrator import GenerationOrchestrator, create_orchestrator
from learngen.templates.models import Technique, Template
from learngen.templates.store import TemplateStore, load_default_store

__all__ = [
    "ConfigurationError",
    "ContentValidationError",
    "InputError",
    "LearnGenError",
    "NotFoundError",
    "OracleTransportError",
    "UnprocessableContentError",
    "GenerationOrchestrator",
    "create_orchestrator",
    "Technique",
    "Template",
    "TemplateStore",
    "load_default_store",
]
