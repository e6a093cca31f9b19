"""Async generation coordinator.

Placeholder-then-fill flow for messages written by AI agents:

1. start_ai_message inserts a `generating` placeholder synchronously, so it
   is visible to every reader of the thread before any await
2. the provider is called with a bounded timeout
3. on success the same message is filled in place and marked `final`
4. on failure or timeout the placeholder stays `generating` and
   ProviderFailure is raised; reconciliation belongs to a sweep

Concurrent generations never share a placeholder, even on the same thread.
"""

import asyncio
import json
import logging
import time
from typing import Any

from workhorse.components.collaboration import permissions
from workhorse.components.collaboration.models import (
    Attachment,
    AttachmentType,
    GenerationMetadata,
    Message,
    Permission,
)
from workhorse.components.collaboration.service import CollaborationService, get_collaboration_service
from workhorse.components.generation.client import GenerationProvider, GenerationResult, HttpGenerationClient
from workhorse.components.generation.mock import MockGenerationClient
from workhorse.components.generation.ui_spec import parse_ui_specification
from workhorse.exceptions import ProviderFailure
from workhorse.settings import settings
from workhorse.utils import elapsed_ms, generate_id

logger = logging.getLogger(__name__)


def create_generation_provider() -> GenerationProvider:
    """Build the provider named by settings.generation_provider."""
    if settings.generation_provider == "http":
        if not settings.is_generation_configured():
            logger.warning("HTTP generation provider selected without an API key")
        logger.info(f"Using HTTP generation provider: {settings.generation_base_url}")
        return HttpGenerationClient()
    logger.info("Using mock generation provider")
    return MockGenerationClient()


class GenerationCoordinator:
    """Drives AI-authored messages and generated UI components.

    Args:
        service: Collaboration service holding threads and messages
        provider: Generation provider (defaults by settings)
        timeout: Default provider timeout in seconds
    """

    def __init__(
        self,
        service: CollaborationService | None = None,
        provider: GenerationProvider | None = None,
        timeout: float | None = None,
    ):
        self.service = service or get_collaboration_service()
        self.provider = provider or create_generation_provider()
        self.timeout = timeout or settings.generation_timeout
        self._in_flight: set[asyncio.Task] = set()

    # ==================== Provider call ====================

    async def _call_provider(
        self,
        prompt: str,
        model: str,
        context: dict[str, Any],
        timeout: float | None,
    ) -> tuple[GenerationResult, int]:
        """Invoke the provider once. Returns the result and elapsed milliseconds."""
        limit = timeout or self.timeout
        start = time.monotonic()
        try:
            result = await asyncio.wait_for(
                self.provider.complete(prompt, model, settings.generation_max_tokens, context),
                timeout=limit,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Generation timed out after {limit}s (model={model})")
            raise ProviderFailure(f"Generation timed out after {limit}s") from e
        except ProviderFailure as e:
            logger.error(f"Generation failed (model={model}): {e}")
            raise
        except Exception as e:
            logger.error(f"Generation provider error (model={model}): {e!r}")
            raise ProviderFailure(f"Generation provider error: {e}") from e
        return result, elapsed_ms(start, time.monotonic())

    def _agent_request(self, thread_id: str, agent_id: str, context: dict[str, Any] | None) -> tuple[str, dict]:
        """Model and context for an agent: its model, custom instructions as system prompt."""
        context = dict(context or {})
        workspace, _, _ = self.service.get_thread_context(thread_id)
        agent = permissions.find_agent(workspace, agent_id)
        model = settings.generation_model
        if agent is not None:
            model = agent.model or model
            if agent.custom_instructions and "system_prompt" not in context:
                context["system_prompt"] = agent.custom_instructions
        return model, context

    # ==================== AI messages ====================

    def start_ai_message(
        self,
        thread_id: str,
        prompt: str,
        agent_id: str,
        display_name: str = "AI Assistant",
        context: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> tuple[Message, asyncio.Task] | None:
        """Insert the placeholder now and schedule its completion.

        Must be called from a running event loop.

        Returns:
            (placeholder, task resolving to the final message), or None if the
            placeholder could not be stored

        Raises:
            NotFoundError: thread missing
            PermissionDeniedError: agent lacks `generate_content`
        """
        model, request_context = self._agent_request(thread_id, agent_id, context)
        placeholder = self.service.create_placeholder(thread_id, agent_id, display_name)
        if placeholder is None:
            return None

        task = asyncio.get_running_loop().create_task(
            self._fill(placeholder, prompt, model, request_context, timeout),
            name=f"generate:{placeholder.id}",
        )
        self._in_flight.add(task)
        task.add_done_callback(self._task_done)
        return placeholder, task

    def _task_done(self, task: asyncio.Task) -> None:
        """Forget a finished generation task and log its failure, if any."""
        self._in_flight.discard(task)
        if task.cancelled():
            logger.warning(f"Generation task {task.get_name()} cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Generation task {task.get_name()} failed: {error}")

    async def _fill(
        self,
        placeholder: Message,
        prompt: str,
        model: str,
        context: dict[str, Any],
        timeout: float | None,
    ) -> Message | None:
        try:
            result, generation_time = await self._call_provider(prompt, model, context, timeout)
        except ProviderFailure:
            logger.warning(f"Placeholder {placeholder.id} left generating after provider failure")
            raise

        metadata = GenerationMetadata(
            model=result.model or model,
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            temperature=context.get("temperature", settings.generation_temperature),
            prompt=prompt,
            generation_time=generation_time,
        )
        return self.complete_ai_message(placeholder.id, result.text, metadata)

    async def generate_ai_message(
        self,
        thread_id: str,
        prompt: str,
        agent_id: str,
        display_name: str = "AI Assistant",
        context: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Message | None:
        """Generate a reply from an AI agent and return the final message.

        Returns:
            The final message, or None if the placeholder could not be stored

        Raises:
            ProviderFailure: provider error or timeout; the placeholder stays `generating`
        """
        started = self.start_ai_message(thread_id, prompt, agent_id, display_name, context, timeout)
        if started is None:
            return None
        _, task = started
        return await task

    def complete_ai_message(self, message_id: str, text: str, metadata: GenerationMetadata) -> Message | None:
        """Fill a placeholder. A second call for the same message does nothing and returns None."""
        return self.service.complete_generation(message_id, text, metadata)

    async def wait_idle(self) -> None:
        """Wait for every in-flight generation to settle (errors included)."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    # ==================== Generated UI ====================

    async def generate_ui_component(
        self,
        thread_id: str,
        sender_id: str,
        ui_type: str,
        parameters: dict[str, Any],
        timeout: float | None = None,
    ) -> Attachment:
        """Ask the provider for a UI specification and wrap it as an attachment.

        Does not append a message; the caller attaches the result to one.

        Raises:
            PermissionDeniedError: sender lacks `generate_ui`
            ProviderFailure: provider error or timeout
        """
        workspace, _, _ = self.service.get_thread_context(thread_id)
        permissions.require_permission(workspace, sender_id, Permission.generate_ui)

        prompt = f"Generate a {ui_type} UI component with the following parameters: {json.dumps(parameters)}"
        model, context = self._agent_request(thread_id, sender_id, None)
        result, _ = await self._call_provider(prompt, model, context, timeout)

        specification = parse_ui_specification(result.text, ui_type, parameters)
        logger.info(f"Generated {ui_type} UI component for thread {thread_id}")
        return Attachment(
            id=generate_id("attachment"),
            message_id="",
            type=AttachmentType.generative_ui,
            name=f"{ui_type} Component",
            url="",
            ui_specification=specification,
        )
