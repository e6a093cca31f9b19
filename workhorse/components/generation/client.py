"""Generation provider contract and the HTTP client for it.

Provider contract:
    complete(prompt, model, max_tokens, context) -> GenerationResult

`context` is free-form; the keys understood here are:
- system_prompt: replaces the default system message
- conversation_history: prior turns, [{"role": "user"|"assistant", "content": ...}]
- temperature: sampling temperature override

API Reference (OpenAI-compatible):
- POST {base_url}/chat/completions
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from workhorse.exceptions import ProviderFailure
from workhorse.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant for a creative agency project management system. "
    "Provide concise, professional responses."
)

NO_RESPONSE_TEXT = "No response generated"


@dataclass
class GenerationUsage:
    """Token accounting reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass
class GenerationResult:
    """Provider response."""

    text: str
    model: str
    usage: GenerationUsage = field(default_factory=GenerationUsage)


class GenerationProvider(Protocol):
    """Anything that turns a prompt into text. May fail or take long."""

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int,
        context: dict[str, Any] | None = None,
    ) -> GenerationResult: ...


def build_chat_messages(prompt: str, context: dict[str, Any] | None = None) -> list[dict[str, str]]:
    """System message, then prior user/assistant turns, then the prompt."""
    context = context or {}
    messages = [{"role": "system", "content": context.get("system_prompt") or DEFAULT_SYSTEM_PROMPT}]
    for turn in context.get("conversation_history") or []:
        if turn.get("role") in ("user", "assistant"):
            messages.append({"role": turn["role"], "content": str(turn.get("content", ""))})
    messages.append({"role": "user", "content": prompt})
    return messages


class HttpGenerationClient:
    """Client for an OpenAI-compatible chat completions endpoint.

    Args:
        base_url: API root, e.g. https://api.openai.com/v1
        api_key: Bearer token
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.generation_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.generation_api_key
        self.timeout = timeout or settings.generation_timeout
        self._transport = transport

    def _get_headers(self) -> dict:
        """Get request headers with auth token."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int,
        context: dict[str, Any] | None = None,
    ) -> GenerationResult:
        """Send one chat completion request.

        Raises:
            ProviderFailure: on transport errors, non-2xx responses or malformed bodies
        """
        payload = {
            "model": model,
            "messages": build_chat_messages(prompt, context),
            "max_tokens": max_tokens,
            "temperature": (context or {}).get("temperature", settings.generation_temperature),
        }

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                resp = await client.post(
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=self._get_headers(),
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Generation provider returned {e.response.status_code}: {e.response.text[:200]}")
            raise ProviderFailure(f"Provider returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"Generation provider request failed: {e}")
            raise ProviderFailure(f"Provider request failed: {e}") from e
        except ValueError as e:
            logger.error(f"Generation provider returned invalid JSON: {e}")
            raise ProviderFailure("Provider returned invalid JSON") from e

        try:
            choices = data.get("choices") or []
            text = (choices[0].get("message") or {}).get("content") if choices else None
            usage = data.get("usage") or {}
            result = GenerationResult(
                text=text or NO_RESPONSE_TEXT,
                model=data.get("model") or model,
                usage=GenerationUsage(
                    prompt_tokens=int(usage.get("prompt_tokens") or 0),
                    completion_tokens=int(usage.get("completion_tokens") or 0),
                ),
            )
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Unexpected generation response shape: {e}")
            raise ProviderFailure("Unexpected provider response") from e

        logger.info(
            f"Generation complete: model={result.model}, "
            f"tokens={result.usage.prompt_tokens}+{result.usage.completion_tokens}"
        )
        return result
