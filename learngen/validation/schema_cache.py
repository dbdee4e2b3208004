"""
Compiled JSON Schema validators, memoized per template key.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from jsonschema import Draft202012Validator
from loguru import logger

ROOT_PATH = "<root>"


def format_path(parts: Iterable[Any]) -> str:
    """
    Render a location as a dotted path with list indices.

    ("flashcards", 2, "answer") -> "flashcards[2].answer"
    """
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or ROOT_PATH


class SchemaValidatorCache:
    """
    Compiles a Draft 2020-12 validator once per key and reuses it.

    Keys are "technique:version". Two coroutines compiling the same key
    concurrently both produce an equivalent validator; the last insert wins.
    """

    def __init__(self):
        self._validators: dict[str, Draft202012Validator] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._validators

    def __len__(self) -> int:
        return len(self._validators)

    def get_validator(self, key: str, schema: dict[str, Any]) -> Draft202012Validator:
        validator = self._validators.get(key)
        if validator is None:
            logger.debug(f"Compiling response schema validator for {key}")
            validator = Draft202012Validator(schema)
            self._validators[key] = validator
        return validator

    def validate(self, key: str, schema: dict[str, Any], data: Any) -> list[str]:
        """
        Validate data against the schema registered under key.

        Returns:
            Path-qualified error messages in validator-report order; empty if valid
        """
        validator = self.get_validator(key, schema)
        return [
            f"{format_path(error.absolute_path)}: {error.message}"
            for error in validator.iter_errors(data)
        ]
