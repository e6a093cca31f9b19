"""Generation Module.

Talks to an external text generation provider on behalf of AI agents.

Components:
- client.py: Provider contract and the OpenAI-compatible httpx client
- mock.py: Mock provider (mirrors the real client interface)
- ui_spec.py: UI specification extraction from free-form text
- coordinator.py: Placeholder-then-fill flow for AI messages, generated UI

Usage:
    from workhorse.components.generation import GenerationCoordinator

    coordinator = GenerationCoordinator()
    message = await coordinator.generate_ai_message(thread_id, "summarize", agent_id)
"""

from workhorse.components.generation.client import (
    GenerationProvider,
    GenerationResult,
    GenerationUsage,
    HttpGenerationClient,
    build_chat_messages,
)
from workhorse.components.generation.coordinator import (
    GenerationCoordinator,
    create_generation_provider,
)
from workhorse.components.generation.mock import MockGenerationClient
from workhorse.components.generation.ui_spec import fallback_specification, parse_ui_specification

__all__ = [
    # Client classes
    "GenerationProvider",
    "GenerationResult",
    "GenerationUsage",
    "HttpGenerationClient",
    "MockGenerationClient",
    # Coordinator
    "GenerationCoordinator",
    "create_generation_provider",
    # Utils
    "build_chat_messages",
    "fallback_specification",
    "parse_ui_specification",
]
