"""Versioned prompt/schema templates and the read-only store that serves them."""
from learngen.templates.models import Guardrails, Technique, Template
from learngen.templates.store import TemplateStore, load_default_store, version_key

__all__ = [
    "Guardrails",
    "Technique",
    "Template",
    "TemplateStore",
    "load_default_store",
    "version_key",
]
