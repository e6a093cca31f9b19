"""Mock generation provider for local development and tests.

Mirrors HttpGenerationClient.complete so the coordinator can switch
between mock and real modes without changes.
"""

import asyncio
import logging
import math
from collections.abc import Callable
from typing import Any

from workhorse.components.generation.client import GenerationResult, GenerationUsage
from workhorse.exceptions import ProviderFailure

logger = logging.getLogger(__name__)

MOCK_MODEL = "mock-gpt4-brand-expert"

_CANNED_RESPONSES: list[tuple[tuple[str, ...], str]] = [
    (
        ("brand strategy", "positioning", "target audience"),
        "Your brand strategy should focus on differentiation, a premium position that "
        "delivers measurable ROI, and decision-makers who value both innovation and proven results.",
    ),
    (
        ("summarize", "summary"),
        "Summary: the team agreed on next steps and open questions are tracked in this thread.",
    ),
    (
        ("design", "visual", "logo"),
        "The visual direction should stay consistent with the brand platform: a restrained palette, "
        "one expressive typeface and generous whitespace.",
    ),
]

_DEFAULT_RESPONSE = "I can help with that. Could you share a bit more detail about what you need?"


def canned_response(prompt: str) -> str:
    """Pick a plausible reply by keyword."""
    query = prompt.lower()
    for keywords, text in _CANNED_RESPONSES:
        if any(k in query for k in keywords):
            return text
    return _DEFAULT_RESPONSE


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


class MockGenerationClient:
    """In-process provider.

    Args:
        response: Fixed text, or a callable (prompt, context) -> text
        delay: Seconds to sleep before answering
        fail_with: If set, every call raises ProviderFailure with this message
        gate: If set, each call waits for this event before answering
    """

    def __init__(
        self,
        response: str | Callable[[str, dict[str, Any]], str] | None = None,
        delay: float = 0.0,
        fail_with: str | None = None,
        gate: asyncio.Event | None = None,
    ):
        self.response = response
        self.delay = delay
        self.fail_with = fail_with
        self.gate = gate
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int,
        context: dict[str, Any] | None = None,
    ) -> GenerationResult:
        context = context or {}
        self.calls.append({"prompt": prompt, "model": model, "max_tokens": max_tokens, "context": context})

        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            logger.warning(f"Mock provider failing on purpose: {self.fail_with}")
            raise ProviderFailure(self.fail_with)

        if callable(self.response):
            text = self.response(prompt, context)
        elif self.response is not None:
            text = self.response
        else:
            text = canned_response(prompt)

        return GenerationResult(
            text=text,
            model=model or MOCK_MODEL,
            usage=GenerationUsage(prompt_tokens=estimate_tokens(prompt), completion_tokens=estimate_tokens(text)),
        )
