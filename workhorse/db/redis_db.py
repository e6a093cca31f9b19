"""
Redis Key Prefix Strategy (Single DB + Key Prefix Pattern)

All workhorse data lives in db=0 and is isolated by key prefix, which keeps
the layout Redis Cluster compatible and lets MULTI/EXEC span any two keys.

Usage:
    from workhorse.db.redis_db import RedisKeyPrefix

    key = RedisKeyPrefix.thread_key(thread_id)
    # Result: "workhorse:collab:thread:thread_abc123"

Environment isolation is done with separate Redis instances, not databases.
"""

from enum import Enum


class RedisKeyPrefix(str, Enum):
    """Redis key prefixes, one per stored entity kind.

    Key format:
        {prefix}:{entity_id}
        {prefix}:{index_name}:{owner_id}
    """

    # === Collaboration ===
    COLLAB_WORKSPACE = "workhorse:collab:workspace"  # Workspace document (String/JSON)
    COLLAB_CHANNEL = "workhorse:collab:channel"  # Channel document (String/JSON)
    COLLAB_THREAD = "workhorse:collab:thread"  # Thread document (String/JSON)
    COLLAB_MESSAGE = "workhorse:collab:message"  # Message document (String/JSON)
    COLLAB_INDEX = "workhorse:collab:index"  # Index sets and lists

    # === Presence ===
    PRESENCE_THREAD = "workhorse:presence:thread"  # CollaborationStatus (String/JSON, TTL)

    # === Workflow ===
    WORKFLOW_PROJECT = "workhorse:workflow:project"  # Project document (String/JSON)
    WORKFLOW_PHASE = "workhorse:workflow:phase"  # ProjectPhase document (String/JSON)
    WORKFLOW_ARTIFACT = "workhorse:workflow:artifact"  # Artifact document (String/JSON)
    WORKFLOW_INDEX = "workhorse:workflow:index"  # Index sets

    # ==================== Collaboration keys ====================

    @classmethod
    def workspace_key(cls, workspace_id: str) -> str:
        return f"{cls.COLLAB_WORKSPACE.value}:{workspace_id}"

    @classmethod
    def channel_key(cls, channel_id: str) -> str:
        return f"{cls.COLLAB_CHANNEL.value}:{channel_id}"

    @classmethod
    def thread_key(cls, thread_id: str) -> str:
        return f"{cls.COLLAB_THREAD.value}:{thread_id}"

    @classmethod
    def message_key(cls, message_id: str) -> str:
        return f"{cls.COLLAB_MESSAGE.value}:{message_id}"

    @classmethod
    def workspace_index_key(cls) -> str:
        """Set of all workspace ids."""
        return f"{cls.COLLAB_INDEX.value}:workspaces"

    @classmethod
    def workspace_channels_key(cls, workspace_id: str) -> str:
        """Set of channel ids in a workspace."""
        return f"{cls.COLLAB_INDEX.value}:workspace_channels:{workspace_id}"

    @classmethod
    def channel_threads_key(cls, channel_id: str) -> str:
        """Set of thread ids in a channel."""
        return f"{cls.COLLAB_INDEX.value}:channel_threads:{channel_id}"

    @classmethod
    def thread_messages_key(cls, thread_id: str) -> str:
        """List of message ids in a thread, in insertion order."""
        return f"{cls.COLLAB_INDEX.value}:thread_messages:{thread_id}"

    # ==================== Presence keys ====================

    @classmethod
    def presence_key(cls, thread_id: str) -> str:
        return f"{cls.PRESENCE_THREAD.value}:{thread_id}"

    # ==================== Workflow keys ====================

    @classmethod
    def project_key(cls, project_id: str) -> str:
        return f"{cls.WORKFLOW_PROJECT.value}:{project_id}"

    @classmethod
    def phase_key(cls, project_id: str, phase_type: str) -> str:
        return f"{cls.WORKFLOW_PHASE.value}:{project_id}:{phase_type}"

    @classmethod
    def artifact_key(cls, artifact_id: str) -> str:
        return f"{cls.WORKFLOW_ARTIFACT.value}:{artifact_id}"

    @classmethod
    def project_index_key(cls) -> str:
        return f"{cls.WORKFLOW_INDEX.value}:projects"

    @classmethod
    def project_artifacts_key(cls, project_id: str) -> str:
        """Set of artifact ids in a project."""
        return f"{cls.WORKFLOW_INDEX.value}:project_artifacts:{project_id}"

    # ==================== Descriptions ====================

    @classmethod
    def get_description(cls, prefix: "RedisKeyPrefix") -> str:
        descriptions = {
            cls.COLLAB_WORKSPACE: "Workspace with embedded teams and settings",
            cls.COLLAB_CHANNEL: "Channel with agent assignments",
            cls.COLLAB_THREAD: "Thread state and message clock",
            cls.COLLAB_MESSAGE: "Message content and generation state",
            cls.COLLAB_INDEX: "Collaboration containment indexes",
            cls.PRESENCE_THREAD: "Ephemeral per-thread presence",
            cls.WORKFLOW_PROJECT: "Project phase pointer and completion flags",
            cls.WORKFLOW_PHASE: "Phase status and dates",
            cls.WORKFLOW_ARTIFACT: "Phase artifact",
            cls.WORKFLOW_INDEX: "Workflow indexes",
        }
        return descriptions.get(prefix, "undefined")

    @classmethod
    def list_all(cls) -> dict:
        return {member.name: {"prefix": member.value, "description": cls.get_description(member)} for member in cls}
