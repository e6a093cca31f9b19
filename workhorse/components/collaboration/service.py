"""Collaboration business logic.

Provides service functions for:
- Workspace directory (workspaces, teams, members, AI agents, channels)
- Threads (create, update, pin)
- Messages (send, edit, delete, reactions, attachments, generation state)

Every mutation consults the permission model before anything is written.
Creates return None when the store rejects the write; updates raise
StoreFailure and leave the previous state authoritative.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from workhorse.components.collaboration import permissions
from workhorse.components.collaboration.models import (
    AddMemberRequest,
    AIAgentAssignment,
    AIAgentMember,
    Attachment,
    AttachmentType,
    Channel,
    ChannelType,
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
    Workspace,
)
from workhorse.components.collaboration.storage_provider import (
    CollaborationStorageProtocol,
    get_collaboration_storage,
)
from workhorse.exceptions import InvalidStateError, NotFoundError, StoreFailure
from workhorse.settings import settings
from workhorse.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TEAMS: dict[TeamType, tuple[str, str]] = {
    TeamType.studio: ("Studio Team", "Internal creative team"),
    TeamType.client: ("Client Team", "Client representatives"),
    TeamType.agent: ("AI Assistance", "AI agents to assist the project"),
}

DEFAULT_ASSISTANT = CreateAgentRequest(
    name="Project Assistant",
    agent_type="project_manager",
    capabilities={"answer_questions", "generate_content", "provide_suggestions"},
    is_autonomous=False,
    custom_instructions="You are a helpful project assistant that helps the team stay organized and on track.",
)


class CollaborationService:
    """Workspace directory plus thread and message store.

    Args:
        storage: Optional storage backend (defaults to the configured provider)
        clock: Source of "now", injectable for tests
    """

    def __init__(
        self,
        storage: CollaborationStorageProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage
        self._clock = clock

    @property
    def storage(self) -> CollaborationStorageProtocol:
        if self._storage is None:
            self._storage = get_collaboration_storage()
        return self._storage

    # ==================== Lookups ====================

    def _require_workspace(self, workspace_id: str) -> Workspace:
        workspace = self.storage.get_workspace(workspace_id)
        if workspace is None:
            raise NotFoundError("Workspace", workspace_id)
        return workspace

    def _require_channel(self, channel_id: str) -> tuple[Workspace, Channel]:
        channel = self.storage.get_channel(channel_id)
        if channel is None:
            raise NotFoundError("Channel", channel_id)
        return self._require_workspace(channel.workspace_id), channel

    def get_thread_context(self, thread_id: str) -> tuple[Workspace, Channel, Thread]:
        """Resolve a thread together with its channel and workspace.

        Raises:
            NotFoundError: if any link of the chain is missing
        """
        thread = self.storage.get_thread(thread_id)
        if thread is None:
            raise NotFoundError("Thread", thread_id)
        workspace, channel = self._require_channel(thread.channel_id)
        return workspace, channel, thread

    def _require_message(self, message_id: str) -> tuple[Workspace, Message]:
        message = self.storage.get_message(message_id)
        if message is None:
            raise NotFoundError("Message", message_id)
        workspace, _, _ = self.get_thread_context(message.thread_id)
        return workspace, message

    # ==================== Workspaces ====================

    def create_workspace(self, project_id: str, name: str, description: str | None = None) -> Workspace | None:
        """Create a workspace and its `general` channel.

        Not keyed by project: calling twice creates two workspaces.

        Returns:
            The workspace, or None if the store rejected either write
        """
        now = self._clock()
        workspace = Workspace(
            id=generate_id("workspace"),
            project_id=project_id,
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        general = Channel(
            id=generate_id("channel"),
            workspace_id=workspace.id,
            name="general",
            description="General discussion for all team members",
            type=ChannelType.general,
            is_private=False,
            created_at=now,
            updated_at=now,
        )

        if not self.storage.save_workspace(workspace):
            logger.error(f"Error creating workspace for project {project_id}")
            return None
        if not self.storage.save_channel(general):
            logger.error(f"Error creating general channel for workspace {workspace.id}")
            self.storage.delete_workspace(workspace.id)
            return None

        logger.info(f"Created workspace {workspace.id} for project {project_id}")
        return workspace

    def bootstrap_workspace(
        self,
        project_id: str,
        name: str,
        description: str | None = None,
        owner: AddMemberRequest | None = None,
    ) -> Workspace | None:
        """Create a workspace with the three default teams.

        The owner, if given, joins the studio team as an admin; the agent team
        gets a default project assistant.
        """
        workspace = self.create_workspace(project_id, name, description)
        if workspace is None:
            return None

        for team_type in TeamType:
            team = self.ensure_team(workspace.id, team_type)
            if team is None:
                continue
            if team_type == TeamType.studio and owner is not None:
                self.add_member(workspace.id, team.id, owner.model_copy(update={"is_admin": True}))
            elif team_type == TeamType.agent:
                self.create_ai_agent(workspace.id, team.id, DEFAULT_ASSISTANT)

        return self.storage.get_workspace(workspace.id)

    def get_workspace(self, workspace_id: str) -> Workspace | None:
        return self.storage.get_workspace(workspace_id)

    def list_workspaces(self, project_id: str | None = None) -> list[Workspace]:
        return self.storage.list_workspaces(project_id)

    def archive_workspace(self, workspace_id: str, actor_id: str | None = None) -> bool:
        """Destroy a workspace and its channels. Threads are kept."""
        workspace = self._require_workspace(workspace_id)
        permissions.require_permission(workspace, actor_id, Permission.manage_workspace)

        for channel in self.storage.list_channels(workspace_id):
            self.storage.delete_channel(channel.id)
        deleted = self.storage.delete_workspace(workspace_id)
        if deleted:
            logger.info(f"Archived workspace {workspace_id}")
        return deleted

    # ==================== Teams & members ====================

    def ensure_team(
        self,
        workspace_id: str,
        team_type: TeamType,
        data: CreateTeamRequest | None = None,
        actor_id: str | None = None,
    ) -> Team | None:
        """Return the workspace's team of `team_type`, creating it if absent."""
        workspace = self._require_workspace(workspace_id)
        existing = workspace.team_of_type(team_type)
        if existing is not None:
            return existing
        permissions.require_permission(workspace, actor_id, Permission.manage_workspace)

        data = data or CreateTeamRequest()
        default_name, default_description = DEFAULT_TEAMS[team_type]
        now = self._clock()
        candidate = Team(
            id=generate_id("team"),
            workspace_id=workspace_id,
            name=data.name or default_name,
            type=team_type,
            description=data.description or default_description,
            logo_url=data.logo_url,
            created_at=now,
            updated_at=now,
        )

        def mutate(ws: Workspace) -> Team:
            current = ws.team_of_type(team_type)
            if current is not None:
                return current
            ws.teams.append(candidate)
            ws.updated_at = now
            return candidate

        try:
            team = self.storage.update_workspace(workspace_id, mutate)
        except StoreFailure as e:
            logger.error(f"Error creating {team_type.value} team in workspace {workspace_id}: {e}")
            return None

        if team.id == candidate.id:
            logger.info(f"Created {team_type.value} team {team.id} in workspace {workspace_id}")
        return team

    def get_team(self, workspace_id: str, team_id: str) -> Team | None:
        workspace = self.storage.get_workspace(workspace_id)
        return workspace.get_team(team_id) if workspace else None

    def find_member(self, workspace_id: str, user_id: str) -> TeamMember | None:
        workspace = self.storage.get_workspace(workspace_id)
        if workspace is None:
            return None
        found = workspace.find_member(user_id)
        return found[1] if found else None

    def _insert_member(self, workspace_id: str, team_id: str, member: TeamMember) -> TeamMember | None:
        now = member.joined_at

        def mutate(ws: Workspace) -> TeamMember:
            team = ws.get_team(team_id)
            if team is None:
                raise NotFoundError("Team", team_id)
            found = ws.find_member(member.user_id)
            if found is not None:
                if found[0].id == team_id:
                    return found[1]
                raise InvalidStateError(f"User {member.user_id} already belongs to team {found[0].id}")
            team.members.append(member)
            team.updated_at = now
            ws.updated_at = now
            return member

        try:
            return self.storage.update_workspace(workspace_id, mutate)
        except StoreFailure as e:
            logger.error(f"Error adding member {member.user_id} to team {team_id}: {e}")
            return None

    def add_member(
        self,
        workspace_id: str,
        team_id: str,
        data: AddMemberRequest,
        actor_id: str | None = None,
    ) -> TeamMember | None:
        """Add a human member to a team.

        Raises:
            NotFoundError: workspace or team missing
            InvalidStateError: the user already belongs to another team
        """
        workspace = self._require_workspace(workspace_id)
        permissions.require_permission(workspace, actor_id, Permission.invite_members)

        member_id = generate_id("member")
        now = self._clock()
        member = TeamMember(
            id=member_id,
            team_id=team_id,
            user_id=data.user_id or member_id,
            name=data.name,
            email=data.email,
            role=data.role,
            avatar=data.avatar,
            is_admin=data.is_admin,
            permissions=data.permissions,
            joined_at=now,
            last_active_at=now,
        )
        added = self._insert_member(workspace_id, team_id, member)
        if added is not None and added.id == member_id:
            logger.info(f"Added member {added.user_id} to team {team_id}")
        return added

    def create_ai_agent(
        self,
        workspace_id: str,
        team_id: str,
        data: CreateAgentRequest | None = None,
        actor_id: str | None = None,
    ) -> AIAgentMember | None:
        """Add an automated member. Only agent teams may hold one.

        Raises:
            InvalidStateError: the team is not of kind `agent`
        """
        workspace = self._require_workspace(workspace_id)
        permissions.require_permission(workspace, actor_id, Permission.invite_members)
        team = workspace.get_team(team_id)
        if team is None:
            raise NotFoundError("Team", team_id)
        if team.type != TeamType.agent:
            raise InvalidStateError(f"AI agents can only join agent teams, team {team_id} is {team.type.value}")

        data = data or CreateAgentRequest()
        agent_id = generate_id("agent")
        now = self._clock()
        agent = AIAgentMember(
            id=agent_id,
            team_id=team_id,
            user_id=data.user_id or agent_id,
            name=data.name,
            email=f"ai-{agent_id.split('_')[-1][:8]}@workhorse.ai",
            role=data.role,
            avatar=data.avatar,
            is_admin=False,
            joined_at=now,
            last_active_at=now,
            agent_type=data.agent_type,
            model=data.model or settings.generation_model,
            is_autonomous=data.is_autonomous,
            prompt_template=data.prompt_template,
            custom_instructions=data.custom_instructions,
        )
        if data.capabilities is not None:
            agent.capabilities = set(data.capabilities)

        added = self._insert_member(workspace_id, team_id, agent)
        if added is not None and added.id == agent_id:
            logger.info(f"Created AI agent {added.user_id} ({agent.agent_type}) in team {team_id}")
        return added

    # ==================== Channels ====================

    def create_channel(
        self,
        workspace_id: str,
        data: CreateChannelRequest,
        actor_id: str | None = None,
    ) -> Channel | None:
        workspace = self._require_workspace(workspace_id)
        permissions.require_permission(workspace, actor_id, Permission.create_channel)

        now = self._clock()
        channel = Channel(
            id=generate_id("channel"),
            workspace_id=workspace_id,
            name=data.name,
            description=data.description,
            type=data.type,
            is_private=data.is_private,
            members=list(dict.fromkeys(data.members)),
            created_at=now,
            updated_at=now,
        )
        if not self.storage.save_channel(channel):
            logger.error(f"Error creating channel {data.name} in workspace {workspace_id}")
            return None
        logger.info(f"Created channel {channel.id} ({channel.type.value}) in workspace {workspace_id}")
        return channel

    def get_channel(self, channel_id: str) -> Channel | None:
        return self.storage.get_channel(channel_id)

    def list_channels(self, workspace_id: str) -> list[Channel]:
        return self.storage.list_channels(workspace_id)

    def join_channel(self, channel_id: str, user_id: str) -> Channel:
        """Add a user to a channel's membership. Joining twice is a no-op."""
        workspace, _ = self._require_channel(channel_id)
        permissions.require_permission(workspace, user_id, Permission.join_channel)
        now = self._clock()

        def mutate(channel: Channel) -> Channel:
            if user_id not in channel.members:
                channel.members.append(user_id)
                channel.updated_at = now
            return channel

        return self.storage.update_channel(channel_id, mutate)

    def assign_agent_to_channel(
        self,
        channel_id: str,
        agent_id: str,
        role: str,
        assigned_by_id: str | None,
    ) -> AIAgentAssignment | None:
        """Put an automated member of the workspace on duty in a channel.

        Raises:
            NotFoundError: channel, or agent not in the workspace
            InvalidStateError: the member is not an automated member of the agent team
        """
        workspace, _ = self._require_channel(channel_id)
        permissions.require_permission(workspace, assigned_by_id, Permission.assign_ai_agent)
        if workspace.find_member(agent_id) is None:
            raise NotFoundError("Agent", agent_id)
        if permissions.find_agent(workspace, agent_id) is None:
            raise InvalidStateError(f"Member {agent_id} is not an AI agent of workspace {workspace.id}")

        now = self._clock()
        candidate = AIAgentAssignment(
            id=generate_id("assignment"),
            channel_id=channel_id,
            agent_id=agent_id,
            role=role,
            assigned_at=now,
            assigned_by_id=assigned_by_id or "system",
        )

        def mutate(channel: Channel) -> AIAgentAssignment:
            for assignment in channel.ai_agents:
                if assignment.agent_id == agent_id and assignment.is_active:
                    return assignment
            channel.ai_agents.append(candidate)
            channel.updated_at = now
            return candidate

        try:
            assignment = self.storage.update_channel(channel_id, mutate)
        except StoreFailure as e:
            logger.error(f"Error assigning agent {agent_id} to channel {channel_id}: {e}")
            return None
        if assignment.id == candidate.id:
            logger.info(f"Assigned agent {agent_id} to channel {channel_id} as {role}")
        return assignment

    # ==================== Threads ====================

    def create_thread(self, channel_id: str, title: str, created_by_id: str) -> Thread | None:
        workspace, _ = self._require_channel(channel_id)
        permissions.require_permission(workspace, created_by_id, Permission.create_thread)

        now = self._clock()
        thread = Thread(
            id=generate_id("thread"),
            channel_id=channel_id,
            title=title,
            status=ThreadStatus.active,
            created_by_id=created_by_id,
            created_at=now,
            updated_at=now,
            last_message_at=now,
            participant_ids=[created_by_id],
        )
        if not self.storage.save_thread(thread):
            logger.error(f"Error creating thread in channel {channel_id}")
            return None
        logger.info(f"Created thread {thread.id} in channel {channel_id}")
        return thread

    def get_thread(self, thread_id: str) -> Thread | None:
        return self.storage.get_thread(thread_id)

    def list_threads(self, channel_id: str) -> list[Thread]:
        """Pinned threads first, then most recently active."""
        threads = self.storage.list_threads(channel_id)
        threads.sort(key=lambda t: t.last_message_at, reverse=True)
        threads.sort(key=lambda t: not t.is_pinned)
        return threads

    def update_thread(
        self,
        thread_id: str,
        actor_id: str | None,
        title: str | None = None,
        status: ThreadStatus | None = None,
        tags: list[str] | None = None,
    ) -> Thread:
        workspace, _, thread = self.get_thread_context(thread_id)
        if actor_id not in thread.participant_ids:
            permissions.require_any_permission(
                workspace, actor_id, Permission.edit_any_message, Permission.pin_thread
            )
        now = self._clock()

        def mutate(t: Thread) -> Thread:
            if title is not None:
                t.title = title
            if status is not None:
                t.status = status
            if tags is not None:
                t.tags = list(dict.fromkeys(tags))
            t.updated_at = now
            return t

        updated = self.storage.update_thread(thread_id, mutate)
        if status is not None:
            logger.info(f"Thread {thread_id} status -> {status.value}")
        return updated

    def pin_thread(self, thread_id: str, actor_id: str | None, pinned: bool = True) -> Thread:
        workspace, channel, _ = self.get_thread_context(thread_id)
        permissions.require_permission(workspace, actor_id, Permission.pin_thread)
        now = self._clock()

        def mutate_thread(t: Thread) -> Thread:
            if t.is_pinned != pinned:
                t.is_pinned = pinned
                t.updated_at = now
            return t

        def mutate_channel(c: Channel) -> None:
            if pinned and thread_id not in c.pinned_threads:
                c.pinned_threads.append(thread_id)
                c.updated_at = now
            elif not pinned and thread_id in c.pinned_threads:
                c.pinned_threads.remove(thread_id)
                c.updated_at = now

        thread = self.storage.update_thread(thread_id, mutate_thread)
        self.storage.update_channel(channel.id, mutate_channel)
        return thread

    # ==================== Messages ====================

    @staticmethod
    def _place(message: Message, thread: Thread) -> None:
        """Sequence a new message in its thread and bump the thread clock."""
        thread.message_sequence += 1
        message.sequence = thread.message_sequence
        # Keep timestamps consistent with insertion order
        if message.created_at < thread.last_message_at:
            message.created_at = thread.last_message_at
        thread.last_message_at = message.created_at
        thread.updated_at = message.created_at
        if message.sender_id not in thread.participant_ids:
            thread.participant_ids.append(message.sender_id)

    def _append(self, message: Message) -> Message | None:
        try:
            stored, _ = self.storage.append_message(message, self._place)
        except StoreFailure as e:
            logger.error(f"Error sending message to thread {message.thread_id}: {e}")
            return None
        return stored

    def send_message(
        self,
        thread_id: str,
        content: str,
        sender_id: str,
        sender_type: SenderType = SenderType.human,
        content_type: ContentType = ContentType.markdown,
        reply_to_id: str | None = None,
        mentions: list[Mention] | None = None,
        attachments: list[Attachment] | None = None,
        sender_name: str | None = None,
    ) -> Message | None:
        """Append a final message to a thread.

        Returns:
            The stored message, or None if the store rejected it

        Raises:
            NotFoundError: thread (or reply target) missing
            PermissionDeniedError: sender lacks `send_message`
        """
        workspace, _, _ = self.get_thread_context(thread_id)
        permissions.require_permission(workspace, sender_id, Permission.send_message)

        if reply_to_id is not None:
            target = self.storage.get_message(reply_to_id)
            if target is None:
                raise NotFoundError("Message", reply_to_id)
            if target.thread_id != thread_id:
                raise InvalidStateError(f"Reply target {reply_to_id} belongs to another thread")

        message_id = generate_id("message")
        message = Message(
            id=message_id,
            thread_id=thread_id,
            sender_id=sender_id,
            sender_type=sender_type,
            sender_name=sender_name,
            content=content,
            content_type=content_type,
            attachments=[a.model_copy(update={"message_id": message_id}) for a in attachments or []],
            mentions=[m.model_copy(update={"message_id": message_id}) for m in mentions or []],
            created_at=self._clock(),
            reply_to_id=reply_to_id,
            generation_state=GenerationState.final,
        )
        stored = self._append(message)
        if stored is not None:
            logger.debug(f"Message {stored.id} sent to thread {thread_id} by {sender_id}")
        return stored

    def get_message(self, message_id: str) -> Message | None:
        return self.storage.get_message(message_id)

    def list_messages(self, thread_id: str) -> list[Message]:
        """A thread's messages ordered by (created_at, sequence)."""
        return self.storage.list_messages(thread_id)

    def edit_message(self, message_id: str, actor_id: str | None, content: str) -> Message:
        workspace, message = self._require_message(message_id)
        if actor_id == message.sender_id:
            permissions.require_any_permission(
                workspace, actor_id, Permission.edit_own_message, Permission.edit_any_message
            )
        else:
            permissions.require_permission(workspace, actor_id, Permission.edit_any_message)
        now = self._clock()

        def mutate(m: Message) -> Message:
            if m.is_generating:
                raise InvalidStateError(f"Message {message_id} is still generating")
            m.content = content
            m.edited_at = now
            return m

        return self.storage.update_message(message_id, mutate)

    def delete_message(self, message_id: str, actor_id: str | None) -> bool:
        workspace, message = self._require_message(message_id)
        if actor_id == message.sender_id:
            permissions.require_any_permission(
                workspace, actor_id, Permission.delete_own_message, Permission.delete_any_message
            )
        else:
            permissions.require_permission(workspace, actor_id, Permission.delete_any_message)

        deleted = self.storage.delete_message(message_id)
        if deleted:
            logger.info(f"Deleted message {message_id} from thread {message.thread_id}")
        return deleted

    def add_reaction(self, message_id: str, user_id: str, emoji: str) -> Message:
        """Toggle `emoji` from `user_id` on a message."""
        workspace, _ = self._require_message(message_id)
        permissions.require_permission(workspace, user_id, Permission.send_message)
        reaction = Reaction(
            id=generate_id("reaction"), message_id=message_id, user_id=user_id, emoji=emoji, created_at=self._clock()
        )

        def mutate(m: Message) -> Message:
            for existing in m.reactions:
                if existing.user_id == user_id and existing.emoji == emoji:
                    m.reactions.remove(existing)
                    return m
            m.reactions.append(reaction)
            return m

        return self.storage.update_message(message_id, mutate)

    def add_attachment(self, message_id: str, actor_id: str | None, attachment: Attachment) -> Message:
        workspace, _ = self._require_message(message_id)
        needed = Permission.generate_ui if attachment.type == AttachmentType.generative_ui else Permission.upload_file
        permissions.require_permission(workspace, actor_id, needed)
        attached = attachment.model_copy(update={"message_id": message_id})

        def mutate(m: Message) -> Message:
            if all(a.id != attached.id for a in m.attachments):
                m.attachments.append(attached)
            return m

        return self.storage.update_message(message_id, mutate)

    # ==================== Generated messages ====================

    def create_placeholder(
        self,
        thread_id: str,
        agent_id: str,
        sender_name: str | None = None,
        content: str | None = None,
    ) -> Message | None:
        """Insert a `generating` message from an automated member."""
        workspace, _, _ = self.get_thread_context(thread_id)
        permissions.require_permission(workspace, agent_id, Permission.generate_content)

        message = Message(
            id=generate_id("message"),
            thread_id=thread_id,
            sender_id=agent_id,
            sender_type=SenderType.ai,
            sender_name=sender_name,
            content=content if content is not None else settings.generation_placeholder_text,
            content_type=ContentType.markdown,
            created_at=self._clock(),
            generation_state=GenerationState.generating,
        )
        stored = self._append(message)
        if stored is not None:
            logger.info(f"Placeholder {stored.id} inserted in thread {thread_id} for agent {agent_id}")
        return stored

    def complete_generation(self, message_id: str, content: str, metadata: GenerationMetadata) -> Message | None:
        """Fill a `generating` message in place and mark it final.

        The thread's last_message_at is bumped now, unless the thread was
        archived meanwhile. Completing a message that is not `generating`
        changes nothing.

        Returns:
            The final message, or None if it was not `generating`
        """
        now = self._clock()

        def mutate(message: Message, thread: Thread) -> tuple[Message | None, ThreadStatus]:
            if message.generation_state != GenerationState.generating:
                return None, thread.status
            message.content = content
            message.generation_state = GenerationState.final
            message.generation_metadata = metadata
            message.edited_at = now
            if thread.status != ThreadStatus.archived:
                bumped = max(now, thread.last_message_at)
                thread.last_message_at = bumped
                thread.updated_at = bumped
            return message, thread.status

        completed, thread_status = self.storage.update_message_and_thread(message_id, mutate)
        if completed is None:
            logger.warning(f"Ignoring completion of message {message_id}: not generating")
        elif thread_status == ThreadStatus.archived:
            logger.info(f"Late completion of message {completed.id} on archived thread {completed.thread_id}")
        else:
            logger.info(f"Completed generated message {completed.id} in thread {completed.thread_id}")
        return completed

    def mark_generation_failed(self, message_id: str, reason: str | None = None) -> Message | None:
        """Move a stuck `generating` message to `failed`. No-op otherwise."""
        now = self._clock()

        def mutate(message: Message) -> Message | None:
            if message.generation_state != GenerationState.generating:
                return None
            message.generation_state = GenerationState.failed
            message.edited_at = now
            return message

        failed = self.storage.update_message(message_id, mutate)
        if failed is not None:
            logger.warning(f"Generation of message {message_id} marked failed" + (f": {reason}" if reason else ""))
        return failed

    def list_pending_generations(self, thread_id: str, older_than: datetime | None = None) -> list[Message]:
        """`generating` messages in a thread, optionally only those created before `older_than`."""
        return [
            m
            for m in self.storage.list_messages(thread_id)
            if m.is_generating and (older_than is None or m.created_at < older_than)
        ]


# Singleton instance
_collaboration_service: CollaborationService | None = None


def get_collaboration_service() -> CollaborationService:
    global _collaboration_service
    if _collaboration_service is None:
        _collaboration_service = CollaborationService()
    return _collaboration_service


def reset_collaboration_service() -> None:
    """Drop the singleton (for testing)."""
    global _collaboration_service
    _collaboration_service = None
