"""
Guardrail enforcement.

Runs after schema validation. The required-field check holds even when a
response schema does not list the field as required.
"""

from __future__ import annotations

import json
from typing import Any

from learngen.errors import ContentValidationError
from learngen.templates.models import Template


def serialized_length(data: Any) -> int:
    """
    Character length of the compact JSON form of data.

    Counts Unicode code points. A UTF-16 count differs only for characters
    outside the Basic Multilingual Plane (emoji count 1 here, 2 in UTF-16).
    """
    return len(json.dumps(data, separators=(",", ":"), ensure_ascii=False))


def enforce_guardrails(template: Template, data: Any) -> None:
    """
    Check a schema-valid response against the template guardrails.

    Raises:
        ContentValidationError: On the first violated rule
    """
    if not isinstance(data, dict):
        raise ContentValidationError("Guardrail enforcement failed: expected an object response")

    for field in template.guardrails.required_fields:
        if field not in data:
            raise ContentValidationError(f"Guardrail violation: missing required field \"{field}\"")

    length = serialized_length(data)
    if length > template.guardrails.max_answer_length:
        raise ContentValidationError(
            f"Guardrail violation: maxAnswerLength exceeded "
            f"({length} > {template.guardrails.max_answer_length})"
        )
