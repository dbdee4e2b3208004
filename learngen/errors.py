"""
Error taxonomy for template loading and artifact generation.

Only ContentValidationError is retried by the orchestrator. Everything else
is surfaced to the caller on first occurrence.
"""

from __future__ import annotations


class LearnGenError(Exception):
    """Base class for all learngen errors."""


class ConfigurationError(LearnGenError):
    """Raised when templates or generation settings are inconsistent at load time."""


class NotFoundError(LearnGenError):
    """Raised for an unknown technique or template version."""


class InputError(LearnGenError):
    """Raised when caller input fails its structural contract."""

    def __init__(self, message: str, diagnostics: list[str] | None = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])


class OracleTransportError(LearnGenError):
    """Raised when the completion capability itself fails (network, auth, quota)."""


class ContentValidationError(LearnGenError):
    """Raised when oracle output cannot be parsed or violates a contract."""

    def __init__(self, message: str, diagnostics: list[str] | None = None):
        super().__init__(message)
        self.diagnostics = list(diagnostics) if diagnostics else [message]


class UnprocessableContentError(LearnGenError):
    """Raised once the attempt budget is exhausted without a valid response."""

    def __init__(self, technique: str, attempts: int, diagnostics: list[str]):
        self.technique = technique
        self.attempts = attempts
        self.diagnostics = list(diagnostics)
        super().__init__("; ".join(self.diagnostics) or f"Unable to generate {technique}")
