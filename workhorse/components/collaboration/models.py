"""Collaboration data models.

Defines the entities shared by humans and AI agents inside a project:
- Workspace: Root container for one project, embeds its Teams and settings
- Team / TeamMember / AIAgentMember: Participants grouped by team kind
- Channel / AIAgentAssignment: Topical sub-spaces and the agents serving them
- Thread / Message / Attachment: Ordered conversations and their content
- CollaborationStatus: Ephemeral per-thread presence
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from workhorse.utils import utc_now


class TeamType(str, Enum):
    """Kind of team. A workspace holds at most one team of each kind."""

    studio = "studio"
    client = "client"
    agent = "agent"


class Permission(str, Enum):
    """Capabilities checked before mutating workspace, channel, thread or message state."""

    view_workspace = "view_workspace"
    manage_workspace = "manage_workspace"
    create_channel = "create_channel"
    join_channel = "join_channel"
    create_thread = "create_thread"
    send_message = "send_message"
    edit_own_message = "edit_own_message"
    edit_any_message = "edit_any_message"
    delete_own_message = "delete_own_message"
    delete_any_message = "delete_any_message"
    pin_thread = "pin_thread"
    assign_ai_agent = "assign_ai_agent"
    upload_file = "upload_file"
    generate_content = "generate_content"
    generate_ui = "generate_ui"
    export_content = "export_content"
    invite_members = "invite_members"
    view_analytics = "view_analytics"


class AgentCapability(str, Enum):
    """What an AI agent member is able to do."""

    answer_questions = "answer_questions"
    generate_content = "generate_content"
    generate_ui = "generate_ui"
    provide_suggestions = "provide_suggestions"
    summarize = "summarize"
    review_content = "review_content"


class ChannelType(str, Enum):
    general = "general"
    design = "design"
    content = "content"
    development = "development"
    strategy = "strategy"
    feedback = "feedback"
    custom = "custom"


class ThreadStatus(str, Enum):
    active = "active"
    resolved = "resolved"
    archived = "archived"


class SenderType(str, Enum):
    human = "human"
    ai = "ai"


class ContentType(str, Enum):
    text = "text"
    markdown = "markdown"
    rich_text = "rich_text"
    code = "code"


class GenerationState(str, Enum):
    """Lifecycle of a message body.

    generating -> final: provider returned and the placeholder was filled
    generating -> failed: an external sweep gave up on a stuck placeholder
    """

    generating = "generating"
    final = "final"
    failed = "failed"


class AttachmentType(str, Enum):
    image = "image"
    file = "file"
    link = "link"
    artifact = "artifact"
    embed = "embed"
    generative_ui = "generative_ui"


# ==================== Workspace / Team ====================


def default_permissions() -> dict[TeamType, set[Permission]]:
    """Default capability sets granted to each team kind in a new workspace."""
    return {
        TeamType.studio: {
            Permission.view_workspace,
            Permission.manage_workspace,
            Permission.create_channel,
            Permission.generate_content,
            Permission.pin_thread,
        },
        TeamType.client: {
            Permission.view_workspace,
            Permission.join_channel,
            Permission.create_thread,
            Permission.send_message,
        },
        TeamType.agent: {
            Permission.view_workspace,
            Permission.send_message,
            Permission.generate_content,
            Permission.generate_ui,
        },
    }


class WorkspaceSettings(BaseModel):
    default_permissions: dict[TeamType, set[Permission]] = Field(default_factory=default_permissions)
    ai_assistance_enabled: bool = True
    live_collaboration_enabled: bool = True
    history_retention_days: int = 90
    notifications_enabled: bool = True


class TeamMember(BaseModel):
    """Human participant of a team."""

    member_type: Literal["human"] = "human"
    id: str
    team_id: str
    user_id: str
    name: str
    email: str = ""
    role: str = "member"
    avatar: str | None = None
    is_active: bool = True
    is_admin: bool = False
    # Explicit grants on top of the team kind's defaults
    permissions: set[Permission] = Field(default_factory=set)
    joined_at: datetime = Field(default_factory=utc_now)
    last_active_at: datetime = Field(default_factory=utc_now)


class AIAgentMember(TeamMember):
    """Automated participant. Only ever a member of an agent team."""

    member_type: Literal["ai"] = "ai"
    agent_type: str = "general"
    capabilities: set[AgentCapability] = Field(
        default_factory=lambda: {AgentCapability.answer_questions, AgentCapability.generate_content}
    )
    model: str = "gpt-4o"
    is_autonomous: bool = False
    prompt_template: str | None = None
    custom_instructions: str | None = None


Member = Annotated[TeamMember | AIAgentMember, Field(discriminator="member_type")]


class Team(BaseModel):
    id: str
    workspace_id: str
    name: str
    type: TeamType
    description: str = ""
    logo_url: str | None = None
    members: list[Member] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Workspace(BaseModel):
    """Root collaboration container for one project.

    Teams are embedded so that "one team per kind" can be enforced with a
    single-document atomic update. Channels are stored separately and listed
    through the workspace's channel index.
    """

    id: str
    project_id: str
    name: str
    description: str | None = None
    teams: list[Team] = Field(default_factory=list)
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def team_of_type(self, team_type: TeamType) -> Team | None:
        return next((t for t in self.teams if t.type == team_type), None)

    def get_team(self, team_id: str) -> Team | None:
        return next((t for t in self.teams if t.id == team_id), None)

    def find_member(self, user_id: str) -> tuple[Team, TeamMember] | None:
        """Locate the member record for a user id, with the team it belongs to."""
        for team in self.teams:
            for member in team.members:
                if member.user_id == user_id:
                    return team, member
        return None


# ==================== Channel ====================


class AIAgentAssignment(BaseModel):
    id: str
    channel_id: str
    agent_id: str
    role: str
    is_active: bool = True
    assigned_at: datetime = Field(default_factory=utc_now)
    assigned_by_id: str


class Channel(BaseModel):
    id: str
    workspace_id: str
    name: str
    description: str = ""
    type: ChannelType = ChannelType.general
    is_private: bool = False
    members: list[str] = Field(default_factory=list)  # User IDs
    pinned_threads: list[str] = Field(default_factory=list)  # Thread IDs
    ai_agents: list[AIAgentAssignment] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# ==================== Thread / Message ====================


class Thread(BaseModel):
    id: str
    channel_id: str
    title: str
    status: ThreadStatus = ThreadStatus.active
    created_by_id: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    # Never decreases; bumped by every accepted message
    last_message_at: datetime = Field(default_factory=utc_now)
    is_pinned: bool = False
    tags: list[str] = Field(default_factory=list)
    participant_ids: list[str] = Field(default_factory=list)
    # Insertion counter for the thread's messages
    message_sequence: int = 0


class UISpecification(BaseModel):
    """Declarative UI description carried by a generative_ui attachment."""

    model_config = ConfigDict(populate_by_name=True)

    component_type: str = Field(alias="componentType")
    props: dict[str, Any] = Field(default_factory=dict)
    children: list[Any] | None = None
    style: dict[str, Any] | None = None
    interaction_handlers: dict[str, Any] | None = Field(default=None, alias="interactionHandlers")


class Attachment(BaseModel):
    id: str
    message_id: str = ""  # Filled in when attached to a message
    type: AttachmentType
    name: str
    url: str = ""
    thumbnail_url: str | None = None
    size: int | None = None
    mime_type: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    ui_specification: UISpecification | None = None


class Mention(BaseModel):
    id: str
    message_id: str = ""
    user_id: str
    user_type: SenderType = SenderType.human
    range: tuple[int, int]  # Start and end indices in the content


class Reaction(BaseModel):
    id: str
    message_id: str
    user_id: str
    emoji: str
    created_at: datetime = Field(default_factory=utc_now)


class GenerationMetadata(BaseModel):
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    temperature: float
    prompt: str | None = None
    iterations: int | None = None
    generation_time: int  # Milliseconds
    confidence: float | None = None


class Message(BaseModel):
    """A message in a thread.

    Ordered by (created_at, sequence). Edits set edited_at and never move the
    message. AI placeholders start as `generating` and are filled in place.
    """

    id: str
    thread_id: str
    sender_id: str
    sender_type: SenderType = SenderType.human
    sender_name: str | None = None
    content: str
    content_type: ContentType = ContentType.markdown
    attachments: list[Attachment] = Field(default_factory=list)
    mentions: list[Mention] = Field(default_factory=list)
    reactions: list[Reaction] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    sequence: int = 0
    edited_at: datetime | None = None
    reply_to_id: str | None = None
    generation_state: GenerationState = GenerationState.final
    generation_metadata: GenerationMetadata | None = None

    @property
    def is_generating(self) -> bool:
        return self.generation_state == GenerationState.generating

    def sort_key(self) -> tuple[datetime, int]:
        return (self.created_at, self.sequence)


# ==================== Presence ====================


class ActiveParticipant(BaseModel):
    user_id: str
    name: str
    avatar: str | None = None
    is_typing: bool = False
    last_activity: datetime
    current_viewing_message_id: str | None = None


class CollaborationStatus(BaseModel):
    thread_id: str
    active_participants: list[ActiveParticipant] = Field(default_factory=list)
    currently_typing: list[str] = Field(default_factory=list)  # User IDs


# ==================== Request models ====================


class CreateTeamRequest(BaseModel):
    name: str | None = None
    description: str = ""
    logo_url: str | None = None


class AddMemberRequest(BaseModel):
    user_id: str | None = None
    name: str = "New Member"
    email: str = ""
    role: str = "member"
    avatar: str | None = None
    is_admin: bool = False
    permissions: set[Permission] = Field(default_factory=set)


class CreateAgentRequest(BaseModel):
    user_id: str | None = None
    name: str = "AI Assistant"
    role: str = "assistant"
    avatar: str | None = "/ai-avatar.png"
    agent_type: str = "general"
    capabilities: set[AgentCapability] | None = None
    model: str | None = None
    is_autonomous: bool = False
    prompt_template: str | None = None
    custom_instructions: str | None = None


class CreateChannelRequest(BaseModel):
    name: str = "new-channel"
    description: str = ""
    type: ChannelType = ChannelType.general
    is_private: bool = False
    members: list[str] = Field(default_factory=list)
