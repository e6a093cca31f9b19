"""Thread-safe in-memory storage for collaboration entities.

Provides storage for:
- Workspaces (with embedded teams and settings)
- Channels
- Threads
- Messages (per-thread insertion order)

Read-modify-write helpers take a `mutate` callable that edits a private
copy of the entity; the copy is stored only if it differs from the
original, so a mutate that changes nothing writes nothing.
"""

import threading
from collections.abc import Callable
from typing import TypeVar

from workhorse.components.collaboration.models import Channel, Message, Thread, Workspace
from workhorse.exceptions import NotFoundError

T = TypeVar("T")


class CollaborationStorage:
    """Thread-safe in-memory storage for collaboration data.

    Uses a reentrant lock (RLock) so that every read-modify-write is atomic
    with respect to other callers in the same process.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._workspaces: dict[str, Workspace] = {}
        self._channels: dict[str, Channel] = {}
        self._threads: dict[str, Thread] = {}
        self._messages: dict[str, Message] = {}
        self._thread_messages: dict[str, list[str]] = {}

    # Workspace operations
    def save_workspace(self, workspace: Workspace) -> bool:
        with self._lock:
            self._workspaces[workspace.id] = workspace.model_copy(deep=True)
            return True

    def get_workspace(self, workspace_id: str) -> Workspace | None:
        with self._lock:
            workspace = self._workspaces.get(workspace_id)
            return workspace.model_copy(deep=True) if workspace else None

    def list_workspaces(self, project_id: str | None = None) -> list[Workspace]:
        """List workspaces, oldest first, optionally filtered by project."""
        with self._lock:
            workspaces = [
                w.model_copy(deep=True)
                for w in self._workspaces.values()
                if project_id is None or w.project_id == project_id
            ]
        return sorted(workspaces, key=lambda w: w.created_at)

    def update_workspace(self, workspace_id: str, mutate: Callable[[Workspace], T]) -> T:
        with self._lock:
            return self._mutate(self._workspaces, "Workspace", workspace_id, mutate)

    def delete_workspace(self, workspace_id: str) -> bool:
        with self._lock:
            return self._workspaces.pop(workspace_id, None) is not None

    # Channel operations
    def save_channel(self, channel: Channel) -> bool:
        with self._lock:
            self._channels[channel.id] = channel.model_copy(deep=True)
            return True

    def get_channel(self, channel_id: str) -> Channel | None:
        with self._lock:
            channel = self._channels.get(channel_id)
            return channel.model_copy(deep=True) if channel else None

    def list_channels(self, workspace_id: str) -> list[Channel]:
        """List a workspace's channels, oldest first."""
        with self._lock:
            channels = [c.model_copy(deep=True) for c in self._channels.values() if c.workspace_id == workspace_id]
        return sorted(channels, key=lambda c: c.created_at)

    def update_channel(self, channel_id: str, mutate: Callable[[Channel], T]) -> T:
        with self._lock:
            return self._mutate(self._channels, "Channel", channel_id, mutate)

    def delete_channel(self, channel_id: str) -> bool:
        with self._lock:
            return self._channels.pop(channel_id, None) is not None

    # Thread operations
    def save_thread(self, thread: Thread) -> bool:
        with self._lock:
            self._threads[thread.id] = thread.model_copy(deep=True)
            self._thread_messages.setdefault(thread.id, [])
            return True

    def get_thread(self, thread_id: str) -> Thread | None:
        with self._lock:
            thread = self._threads.get(thread_id)
            return thread.model_copy(deep=True) if thread else None

    def list_threads(self, channel_id: str) -> list[Thread]:
        with self._lock:
            return [t.model_copy(deep=True) for t in self._threads.values() if t.channel_id == channel_id]

    def update_thread(self, thread_id: str, mutate: Callable[[Thread], T]) -> T:
        with self._lock:
            return self._mutate(self._threads, "Thread", thread_id, mutate)

    # Message operations
    def append_message(self, message: Message, place: Callable[[Message, Thread], None]) -> tuple[Message, Thread]:
        """Insert a message and update its thread in one step.

        `place` assigns the message's sequence and timestamp from the thread
        and bumps the thread; both are stored together.
        """
        with self._lock:
            current = self._threads.get(message.thread_id)
            if current is None:
                raise NotFoundError("Thread", message.thread_id)
            thread = current.model_copy(deep=True)
            message = message.model_copy(deep=True)
            place(message, thread)
            self._threads[thread.id] = thread
            self._messages[message.id] = message
            self._thread_messages.setdefault(thread.id, []).append(message.id)
            return message.model_copy(deep=True), thread.model_copy(deep=True)

    def get_message(self, message_id: str) -> Message | None:
        with self._lock:
            message = self._messages.get(message_id)
            return message.model_copy(deep=True) if message else None

    def list_messages(self, thread_id: str) -> list[Message]:
        """List a thread's messages ordered by (created_at, sequence)."""
        with self._lock:
            ids = self._thread_messages.get(thread_id, [])
            messages = [self._messages[i].model_copy(deep=True) for i in ids if i in self._messages]
        return sorted(messages, key=lambda m: m.sort_key())

    def update_message(self, message_id: str, mutate: Callable[[Message], T]) -> T:
        with self._lock:
            return self._mutate(self._messages, "Message", message_id, mutate)

    def update_message_and_thread(self, message_id: str, mutate: Callable[[Message, Thread], T]) -> T:
        """Apply `mutate` to a message and its thread together."""
        with self._lock:
            current_message = self._messages.get(message_id)
            if current_message is None:
                raise NotFoundError("Message", message_id)
            current_thread = self._threads.get(current_message.thread_id)
            if current_thread is None:
                raise NotFoundError("Thread", current_message.thread_id)

            message = current_message.model_copy(deep=True)
            thread = current_thread.model_copy(deep=True)
            result = mutate(message, thread)
            if message != current_message:
                self._messages[message.id] = message
            if thread != current_thread:
                self._threads[thread.id] = thread
            return result

    def delete_message(self, message_id: str) -> bool:
        with self._lock:
            message = self._messages.pop(message_id, None)
            if message is None:
                return False
            ids = self._thread_messages.get(message.thread_id, [])
            if message_id in ids:
                ids.remove(message_id)
            return True

    # Utility
    def clear_all(self) -> None:
        """Clear all data (useful for testing)."""
        with self._lock:
            self._workspaces.clear()
            self._channels.clear()
            self._threads.clear()
            self._messages.clear()
            self._thread_messages.clear()

    @staticmethod
    def _mutate(table: dict, entity: str, entity_id: str, mutate: Callable) -> T:
        current = table.get(entity_id)
        if current is None:
            raise NotFoundError(entity, entity_id)
        updated = current.model_copy(deep=True)
        result = mutate(updated)
        if updated != current:
            table[entity_id] = updated
        return result


# Singleton instance
collaboration_storage = CollaborationStorage()
