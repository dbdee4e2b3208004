"""
Template Store - versioned, validated, read-only template registry.

Philosophy:
- Templates are validated once, at startup
- A broken template is a configuration bug: fail fast, never at request time
- Every lookup hands out an independent deep copy
"""

from __future__ import annotations

import copy
import json
import re
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError
from loguru import logger
from pydantic import ValidationError

from learngen.errors import ConfigurationError, NotFoundError
from learngen.templates.models import Technique, Template

DEFINITIONS_DIR = Path(__file__).parent / "definitions"

_LEADING_DIGITS = re.compile(r"\d+")


def version_key(version: str) -> tuple[int, int, int]:
    """
    Numeric (major, minor, patch) sort key for a version string.

    Missing or non-numeric segments count as 0; a segment such as "2rc1"
    contributes its leading digits.
    """
    parts = []
    for segment in version.split(".")[:3]:
        match = _LEADING_DIGITS.match(segment.strip())
        parts.append(int(match.group()) if match else 0)
    while len(parts) < 3:
        parts.append(0)
    return parts[0], parts[1], parts[2]


def _check_guardrail_consistency(template: Template) -> None:
    """Every guardrail field must be required by and defined in the response schema."""
    schema = template.response_schema
    required = schema.get("required")
    required = required if isinstance(required, list) else []
    properties = schema.get("properties")
    properties = properties if isinstance(properties, dict) else {}

    for field in template.guardrails.required_fields:
        if field not in required:
            raise ConfigurationError(
                f"Template {template.key} is missing required field "
                f"\"{field}\" in responseSchema.required"
            )
        if field not in properties:
            raise ConfigurationError(
                f"Template {template.key} is missing property definition for \"{field}\""
            )


def _validate_definition(technique: str, version: str, definition: Any) -> Template:
    if not isinstance(definition, Mapping):
        raise ConfigurationError(f"Template {technique}@{version} must be an object")

    try:
        template = Template.model_validate(copy.deepcopy(dict(definition)))
    except ValidationError as e:
        raise ConfigurationError(f"Template {technique}@{version} is invalid: {e}") from e

    if template.technique.value != technique:
        raise ConfigurationError(
            f"Template declared under {technique} reports technique {template.technique.value}"
        )
    if template.version != version:
        raise ConfigurationError(
            f"Template {technique}@{version} reports version {template.version}"
        )

    try:
        Draft202012Validator.check_schema(template.response_schema)
    except SchemaError as e:
        raise ConfigurationError(
            f"Template {template.key} has an invalid responseSchema: {e.message}"
        ) from e

    _check_guardrail_consistency(template)
    return template


class TemplateStore:
    """
    Immutable registry of templates keyed by (technique, version).

    Built once from static definitions and shared by reference. The store
    exposes no mutation path after construction, so concurrent readers need
    no locking.
    """

    def __init__(self, definitions: Mapping[str, Mapping[str, Any]]):
        """
        Validate and register template definitions.

        Args:
            definitions: {technique: {version: template document}}

        Raises:
            ConfigurationError: If any definition is malformed or inconsistent
        """
        self._templates: dict[Technique, list[Template]] = {}

        for technique_id, versions in definitions.items():
            try:
                technique = Technique(technique_id)
            except ValueError as e:
                raise ConfigurationError(f"Unknown technique in definitions: {technique_id}") from e

            if not versions:
                raise ConfigurationError(f"No template versions declared for {technique_id}")

            validated = [
                _validate_definition(technique_id, version, definition)
                for version, definition in versions.items()
            ]
            validated.sort(key=lambda t: version_key(t.version))
            self._templates[technique] = validated

        logger.info(
            f"Loaded {sum(len(v) for v in self._templates.values())} templates "
            f"for {len(self._templates)} techniques"
        )

    @classmethod
    def from_directory(cls, path: Path | str) -> TemplateStore:
        """
        Load definitions laid out as <path>/<technique>/<any>.json.

        The version is taken from each document's "version" field.
        """
        root = Path(path)
        if not root.is_dir():
            raise ConfigurationError(f"Template directory not found: {root}")

        order = [t.value for t in Technique]
        technique_dirs = sorted(
            (p for p in root.iterdir() if p.is_dir() and not p.name.startswith((".", "_"))),
            key=lambda p: (order.index(p.name) if p.name in order else len(order), p.name),
        )

        definitions: dict[str, dict[str, Any]] = {}
        for technique_dir in technique_dirs:
            versions: dict[str, Any] = {}
            for file in sorted(technique_dir.glob("*.json")):
                try:
                    document = json.loads(file.read_text(encoding="utf-8"))
                except json.JSONDecodeError as e:
                    raise ConfigurationError(f"Template file {file} is not valid JSON: {e}") from e
                version = document.get("version") if isinstance(document, dict) else None
                if not isinstance(version, str) or not version:
                    raise ConfigurationError(f"Template file {file} has no version")
                if version in versions:
                    raise ConfigurationError(
                        f"Duplicate version {version} for technique {technique_dir.name}"
                    )
                versions[version] = document
            definitions[technique_dir.name] = versions

        return cls(definitions)

    def techniques(self) -> list[Technique]:
        """Registered techniques in declaration order."""
        return list(self._templates)

    def versions(self, technique: Technique | str) -> list[str]:
        """Registered versions of a technique, ascending."""
        return [t.version for t in self._lookup(technique)]

    def get(self, technique: Technique | str, version: str | None = None) -> Template:
        """
        Get a template by technique and optional version.

        Args:
            technique: Technique id
            version: Exact version string; latest when omitted

        Returns:
            Deep copy of the stored template

        Raises:
            NotFoundError: Unknown technique or version
        """
        templates = self._lookup(technique)

        if version:
            for template in templates:
                if template.version == version:
                    return template.model_copy(deep=True)
            raise NotFoundError(f"Unknown version {version} for technique {_name(technique)}")

        return templates[-1].model_copy(deep=True)

    def list_templates(self) -> list[Template]:
        """Latest template of every technique."""
        return [templates[-1].model_copy(deep=True) for templates in self._templates.values()]

    def _lookup(self, technique: Technique | str) -> list[Template]:
        try:
            key = Technique(technique)
        except ValueError:
            raise NotFoundError(f"Unknown technique: {_name(technique)}") from None

        templates = self._templates.get(key)
        if not templates:
            raise NotFoundError(f"Unknown technique: {key.value}")
        return templates


def _name(technique: Technique | str) -> str:
    return technique.value if isinstance(technique, Technique) else str(technique)


@lru_cache(maxsize=1)
def load_default_store(path: str | None = None) -> TemplateStore:
    """Build the process-wide store from the bundled (or overridden) definitions."""
    return TemplateStore.from_directory(path or DEFINITIONS_DIR)
