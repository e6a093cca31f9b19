"""Collaboration Module.

Workspaces, teams, channels, threads and messages shared by clients, the
studio team and AI agents, plus live presence per thread.

Components:
- models.py: Pydantic models and closed vocabularies
- permissions.py: Capability checks by team kind and member grants
- storage.py / redis_storage.py: In-memory and Redis backends
- storage_provider.py: Backend selection by settings.use_memory_store
- service.py: CollaborationService (directory, threads, messages)
- presence.py: PresenceTracker and its stores

Usage:
    from workhorse.components.collaboration import get_collaboration_service

    service = get_collaboration_service()
    workspace = service.create_workspace(project_id, "Acme rebrand")
"""

from workhorse.components.collaboration.models import (
    ActiveParticipant,
    AddMemberRequest,
    AgentCapability,
    AIAgentAssignment,
    AIAgentMember,
    Attachment,
    AttachmentType,
    Channel,
    ChannelType,
    CollaborationStatus,
    ContentType,
    CreateAgentRequest,
    CreateChannelRequest,
    CreateTeamRequest,
    GenerationMetadata,
    GenerationState,
    Mention,
    Message,
    Permission,
    Reaction,
    SenderType,
    Team,
    TeamMember,
    TeamType,
    Thread,
    ThreadStatus,
    UISpecification,
    Workspace,
    WorkspaceSettings,
)
from workhorse.components.collaboration.presence import (
    MemoryPresenceStore,
    PresenceStore,
    PresenceTracker,
    RedisPresenceStore,
    get_presence_tracker,
    reset_presence_tracker,
)
from workhorse.components.collaboration.service import (
    CollaborationService,
    get_collaboration_service,
    reset_collaboration_service,
)
from workhorse.components.collaboration.storage_provider import (
    get_collaboration_storage,
    reset_collaboration_storage,
)

__all__ = [
    # Models
    "ActiveParticipant",
    "AddMemberRequest",
    "AgentCapability",
    "AIAgentAssignment",
    "AIAgentMember",
    "Attachment",
    "AttachmentType",
    "Channel",
    "ChannelType",
    "CollaborationStatus",
    "ContentType",
    "CreateAgentRequest",
    "CreateChannelRequest",
    "CreateTeamRequest",
    "GenerationMetadata",
    "GenerationState",
    "Mention",
    "Message",
    "Permission",
    "Reaction",
    "SenderType",
    "Team",
    "TeamMember",
    "TeamType",
    "Thread",
    "ThreadStatus",
    "UISpecification",
    "Workspace",
    "WorkspaceSettings",
    # Presence
    "MemoryPresenceStore",
    "PresenceStore",
    "PresenceTracker",
    "RedisPresenceStore",
    "get_presence_tracker",
    "reset_presence_tracker",
    # Services
    "CollaborationService",
    "get_collaboration_service",
    "reset_collaboration_service",
    "get_collaboration_storage",
    "reset_collaboration_storage",
]
