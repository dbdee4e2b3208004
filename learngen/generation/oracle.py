"""
Completion clients (the "oracle").

The orchestrator only depends on CompletionClient. The HTTP adapter speaks
the OpenAI-compatible chat/completions protocol with json_schema structured
output. Every failure of the call itself surfaces as OracleTransportError so
it is never confused with a content failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger

from learngen.errors import OracleTransportError

if TYPE_CHECKING:
    from config import Settings

MIN_MAX_TOKENS = 128

SYSTEM_PROMPT = (
    "You are a structured assistant that always responds with JSON "
    "matching the provided schema."
)


class CompletionClient(ABC):
    @abstractmethod
    async def complete_json(self, prompt: str, schema: dict[str, Any], max_tokens: int) -> str:
        """Return raw completion text for a prompt, constrained to schema."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class UnconfiguredCompletionClient(CompletionClient):
    """Stand-in used when no API key is configured; every call fails."""

    async def complete_json(self, prompt: str, schema: dict[str, Any], max_tokens: int) -> str:
        raise OracleTransportError("Oracle API key is not configured")


class OpenAICompletionClient(CompletionClient):
    """HTTP client for OpenAI-compatible chat completion endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Bearer token for the endpoint
            base_url: API root, without the /chat/completions suffix
            model: Model name sent with each request
            timeout_seconds: Transport timeout per request
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> OpenAICompletionClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def build_payload(self, prompt: str, schema: dict[str, Any], max_tokens: int) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": {"name": "structured_output", "schema": schema},
            },
            "max_tokens": max(MIN_MAX_TOKENS, max_tokens),
        }

    async def complete_json(self, prompt: str, schema: dict[str, Any], max_tokens: int) -> str:
        """
        Request a schema-constrained completion.

        Raises:
            OracleTransportError: HTTP failure, malformed envelope or empty content
        """
        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                json=self.build_payload(prompt, schema, max_tokens),
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Oracle returned HTTP {e.response.status_code}")
            raise OracleTransportError(
                f"Oracle request failed with status {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Oracle request error: {e}")
            raise OracleTransportError(f"Oracle request failed: {e}") from e
        except ValueError as e:
            raise OracleTransportError("Oracle returned a non-JSON envelope") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise OracleTransportError("Oracle returned no completion choices")

        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise OracleTransportError("Oracle returned a malformed completion choice")

        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise OracleTransportError("Oracle returned a malformed completion message")

        content = message.get("content")
        if isinstance(content, list):
            # Content parts: keep only text
            body = "".join(
                part["text"]
                for part in content
                if isinstance(part, dict) and isinstance(part.get("text"), str)
            )
        elif content is None or isinstance(content, str):
            body = content or ""
        else:
            raise OracleTransportError("Oracle returned non-text completion content")

        if not body.strip():
            raise OracleTransportError("Oracle returned an empty response")

        logger.debug(f"Oracle completion received ({len(body)} chars)")
        return body


def get_completion_client(settings: Settings) -> CompletionClient:
    """Build the configured completion client."""
    if not settings.openai_api_key:
        logger.warning("No oracle API key configured; generation calls will fail")
        return UnconfiguredCompletionClient()

    return OpenAICompletionClient(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
    )
