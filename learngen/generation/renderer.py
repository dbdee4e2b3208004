"""Prompt rendering. Pure: the same template and input always give the same prompt."""

from __future__ import annotations

import json
from typing import Any

from learngen.templates.models import Template

INPUT_HEADER = "Input payload:"
JSON_DIRECTIVE = "Respond strictly with JSON matching the provided response schema."


def render_prompt(template: Template, payload: dict[str, Any]) -> str:
    return "\n\n".join(
        [
            template.prompt.strip(),
            INPUT_HEADER,
            json.dumps(payload, indent=2, ensure_ascii=False),
            JSON_DIRECTIVE,
        ]
    )
