"""
Tolerant JSON extraction from raw oracle text.

Models often wrap valid JSON in commentary or code fences. Parsing tries the
whole text first, then the span between the first "{" and the last "}".
"""

from __future__ import annotations

import json
from typing import Any

from learngen.errors import ContentValidationError

UNPARSEABLE_MESSAGE = "Failed to parse JSON response from oracle"


def parse_response(raw: str) -> Any:
    """
    Extract a JSON value from raw oracle output.

    Raises:
        ContentValidationError: If neither the text nor its outer-brace span parses
    """
    trimmed = (raw or "").strip()

    try:
        return json.loads(trimmed)
    except (ValueError, RecursionError):
        pass

    start = trimmed.find("{")
    end = trimmed.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(trimmed[start : end + 1])
        except (ValueError, RecursionError) as e:
            raise ContentValidationError(f"{UNPARSEABLE_MESSAGE}: {_reason(e)}") from e

    raise ContentValidationError(UNPARSEABLE_MESSAGE)


def _reason(error: Exception) -> str:
    # Oversized integer literals raise a plain ValueError, deep nesting a RecursionError
    if isinstance(error, json.JSONDecodeError):
        return error.msg
    if isinstance(error, RecursionError):
        return "nesting too deep"
    return str(error)
