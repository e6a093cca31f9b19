"""
Unit tests for CollaborationService

Every test runs against both the in-memory and the Redis (fakeredis) backend.

Tests cover:
- Workspace creation, bootstrap and archive
- Team and member directory rules (one team per kind, agents in agent teams)
- Channel membership and agent assignment
- Thread lifecycle, pinning and ordering
- Message send, reply, edit, delete, reactions and attachments
- Capability checks with no partial effect on denial
"""

import pytest

from workhorse.components.collaboration.models import (
    AddMemberRequest,
    AIAgentMember,
    Attachment,
    AttachmentType,
    ContentType,
    CreateAgentRequest,
    CreateChannelRequest,
    CreateTeamRequest,
    Permission,
    SenderType,
    TeamType,
    ThreadStatus,
    UISpecification,
)
from workhorse.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from workhorse.settings import settings


class TestWorkspaceCreation:
    """Test workspace creation and bootstrap"""

    def test_workspace_has_single_general_channel(self, service):
        """Scenario: a new workspace has exactly one channel named general"""
        workspace = service.create_workspace("project_p1", "P1 Workspace")

        assert workspace is not None
        channels = service.list_channels(workspace.id)
        assert len(channels) == 1
        assert channels[0].name == "general"
        assert channels[0].workspace_id == workspace.id

    def test_ensure_team_twice_returns_same_team(self, service):
        """Scenario: ensure_team for the same kind twice yields one team"""
        workspace = service.create_workspace("project_p1", "P1 Workspace")

        first = service.ensure_team(workspace.id, TeamType.client, CreateTeamRequest(name="Acme Corp"))
        second = service.ensure_team(workspace.id, TeamType.client, CreateTeamRequest(name="Other Name"))

        assert first.id == second.id
        assert second.name == "Acme Corp"
        stored = service.get_workspace(workspace.id)
        assert [t.type for t in stored.teams].count(TeamType.client) == 1

    def test_ensure_team_default_names(self, service):
        workspace = service.create_workspace("project_p1", "P1 Workspace")
        team = service.ensure_team(workspace.id, TeamType.agent)
        assert team.name == "AI Assistance"
        assert service.get_team(workspace.id, team.id) == team

    def test_create_workspace_not_keyed_by_project(self, service):
        first = service.create_workspace("project_p1", "One")
        second = service.create_workspace("project_p1", "Two")

        assert first.id != second.id
        assert {w.id for w in service.list_workspaces("project_p1")} == {first.id, second.id}
        assert service.list_workspaces("project_other") == []

    def test_bootstrap_workspace(self, workspace_setup):
        workspace = workspace_setup.workspace

        assert {t.type for t in workspace.teams} == set(TeamType)
        studio = workspace.team_of_type(TeamType.studio)
        owner = next(m for m in studio.members if m.user_id == "user_studio")
        assert owner.is_admin

        agents = workspace.team_of_type(TeamType.agent).members
        assert len(agents) == 1
        assistant = agents[0]
        assert isinstance(assistant, AIAgentMember)
        assert assistant.name == "Project Assistant"
        assert assistant.model == settings.generation_model
        assert assistant.email.startswith("ai-") and assistant.email.endswith("@workhorse.ai")

    def test_get_missing_workspace(self, service):
        assert service.get_workspace("workspace_missing") is None
        with pytest.raises(NotFoundError):
            service.ensure_team("workspace_missing", TeamType.client)

    def test_archive_workspace(self, service, workspace_setup):
        workspace_id = workspace_setup.workspace.id

        with pytest.raises(PermissionDeniedError):
            service.archive_workspace(workspace_id, workspace_setup.client_user)
        assert service.get_workspace(workspace_id) is not None

        assert service.archive_workspace(workspace_id, workspace_setup.studio_user)
        assert service.get_workspace(workspace_id) is None
        assert service.get_channel(workspace_setup.general.id) is None


class TestMembers:
    """Test member and agent directory rules"""

    def test_add_member_requires_invite_members(self, service, workspace_setup):
        workspace = workspace_setup.workspace
        client_team = workspace.team_of_type(TeamType.client)

        with pytest.raises(PermissionDeniedError):
            service.add_member(
                workspace.id, client_team.id, AddMemberRequest(user_id="user_new"), workspace_setup.client_user
            )
        assert service.find_member(workspace.id, "user_new") is None

    def test_add_member_is_idempotent_within_team(self, service, workspace_setup):
        workspace = workspace_setup.workspace
        client_team = workspace.team_of_type(TeamType.client)

        again = service.add_member(workspace.id, client_team.id, AddMemberRequest(user_id="user_client"))

        assert again.user_id == "user_client"
        stored = service.get_team(workspace.id, client_team.id)
        assert [m.user_id for m in stored.members].count("user_client") == 1

    def test_add_member_rejects_second_team(self, service, workspace_setup):
        workspace = workspace_setup.workspace
        studio_team = workspace.team_of_type(TeamType.studio)

        with pytest.raises(InvalidStateError):
            service.add_member(workspace.id, studio_team.id, AddMemberRequest(user_id="user_client"))

    def test_add_member_unknown_team(self, service, workspace_setup):
        with pytest.raises(NotFoundError):
            service.add_member(workspace_setup.workspace.id, "team_missing", AddMemberRequest(user_id="x"))

    def test_agent_only_in_agent_team(self, service, workspace_setup):
        workspace = workspace_setup.workspace
        client_team = workspace.team_of_type(TeamType.client)

        with pytest.raises(InvalidStateError):
            service.create_ai_agent(workspace.id, client_team.id, CreateAgentRequest(name="Rogue Bot"))

        for team in service.get_workspace(workspace.id).teams:
            if team.type != TeamType.agent:
                assert not any(isinstance(m, AIAgentMember) for m in team.members)

    def test_create_agent_with_custom_fields(self, service, workspace_setup):
        workspace = workspace_setup.workspace
        agent_team = workspace.team_of_type(TeamType.agent)

        agent = service.create_ai_agent(
            workspace.id,
            agent_team.id,
            CreateAgentRequest(
                name="Design Critic",
                agent_type="reviewer",
                capabilities={"review_content"},
                model="gpt-4o-mini",
                custom_instructions="Be blunt.",
            ),
        )

        assert agent.model == "gpt-4o-mini"
        assert agent.role == "assistant"
        assert {c.value for c in agent.capabilities} == {"review_content"}
        stored = service.find_member(workspace.id, agent.user_id)
        assert isinstance(stored, AIAgentMember)
        assert stored.custom_instructions == "Be blunt."


class TestChannels:
    """Test channel operations"""

    def test_create_channel(self, service, workspace_setup):
        workspace = workspace_setup.workspace

        channel = service.create_channel(
            workspace.id, CreateChannelRequest(name="design-review", type="design"), workspace_setup.studio_user
        )

        assert channel is not None
        assert {c.id for c in service.list_channels(workspace.id)} == {workspace_setup.general.id, channel.id}

    def test_create_channel_denied(self, service, workspace_setup):
        workspace = workspace_setup.workspace
        with pytest.raises(PermissionDeniedError):
            service.create_channel(workspace.id, CreateChannelRequest(name="x"), workspace_setup.client_user)
        assert len(service.list_channels(workspace.id)) == 1

    def test_join_channel_idempotent(self, service, workspace_setup):
        channel_id = workspace_setup.general.id

        service.join_channel(channel_id, workspace_setup.client_user)
        channel = service.join_channel(channel_id, workspace_setup.client_user)

        assert channel.members.count(workspace_setup.client_user) == 1

    def test_join_channel_denied(self, service, workspace_setup):
        with pytest.raises(PermissionDeniedError):
            service.join_channel(workspace_setup.general.id, workspace_setup.studio_user)

    def test_assign_agent(self, service, workspace_setup):
        channel_id = workspace_setup.general.id

        first = service.assign_agent_to_channel(channel_id, workspace_setup.agent_id, "moderator", None)
        second = service.assign_agent_to_channel(channel_id, workspace_setup.agent_id, "moderator", None)

        assert first.id == second.id
        channel = service.get_channel(channel_id)
        assert len(channel.ai_agents) == 1
        assert channel.ai_agents[0].assigned_by_id == "system"

    def test_assign_agent_rules(self, service, workspace_setup):
        channel_id = workspace_setup.general.id

        with pytest.raises(PermissionDeniedError):
            service.assign_agent_to_channel(channel_id, workspace_setup.agent_id, "helper", workspace_setup.studio_user)
        with pytest.raises(NotFoundError):
            service.assign_agent_to_channel(channel_id, "agent_missing", "helper", None)
        with pytest.raises(InvalidStateError):
            service.assign_agent_to_channel(channel_id, workspace_setup.client_user, "helper", None)


class TestThreads:
    """Test thread lifecycle"""

    def test_send_message_bumps_thread(self, service, workspace_setup):
        """Scenario: last_message_at equals the new message's created_at"""
        thread = service.create_thread(workspace_setup.general.id, "Kickoff", workspace_setup.client_user)

        message = service.send_message(thread.id, "hi", workspace_setup.client_user, SenderType.human)

        stored = service.get_thread(thread.id)
        assert stored.last_message_at == message.created_at
        assert len(service.list_messages(thread.id)) == 1
        assert message.sequence == 1

    def test_create_thread_denied(self, service, workspace_setup):
        with pytest.raises(PermissionDeniedError):
            service.create_thread(workspace_setup.general.id, "Nope", workspace_setup.studio_user)
        assert service.list_threads(workspace_setup.general.id) == []

    def test_list_threads_pinned_then_recent(self, service, workspace_setup, clock):
        channel_id = workspace_setup.general.id
        user = workspace_setup.client_user
        older = service.create_thread(channel_id, "Older", user)
        clock.advance(60)
        newer = service.create_thread(channel_id, "Newer", user)
        clock.advance(60)
        quiet = service.create_thread(channel_id, "Quiet", user)
        clock.advance(60)
        service.send_message(newer.id, "bump", user)

        service.pin_thread(older.id, workspace_setup.studio_user)

        assert [t.id for t in service.list_threads(channel_id)] == [older.id, newer.id, quiet.id]
        assert older.id in service.get_channel(channel_id).pinned_threads

    def test_unpin_thread(self, service, workspace_setup):
        channel_id = workspace_setup.general.id
        thread = service.create_thread(channel_id, "Topic", workspace_setup.client_user)

        service.pin_thread(thread.id, workspace_setup.studio_user)
        unpinned = service.pin_thread(thread.id, workspace_setup.studio_user, pinned=False)

        assert not unpinned.is_pinned
        assert thread.id not in service.get_channel(channel_id).pinned_threads

    def test_pin_thread_denied(self, service, workspace_setup):
        thread = service.create_thread(workspace_setup.general.id, "Topic", workspace_setup.client_user)
        with pytest.raises(PermissionDeniedError):
            service.pin_thread(thread.id, workspace_setup.client_user)
        assert not service.get_thread(thread.id).is_pinned

    def test_update_thread_by_participant(self, service, workspace_setup):
        thread = service.create_thread(workspace_setup.general.id, "Topic", workspace_setup.client_user)

        updated = service.update_thread(
            thread.id, workspace_setup.client_user, status=ThreadStatus.resolved, tags=["brand", "brand", "q3"]
        )

        assert updated.status == ThreadStatus.resolved
        assert updated.tags == ["brand", "q3"]

    def test_update_thread_by_outsider(self, service, workspace_setup):
        workspace = workspace_setup.workspace
        client_team = workspace.team_of_type(TeamType.client)
        service.add_member(workspace.id, client_team.id, AddMemberRequest(user_id="user_other"))
        thread = service.create_thread(workspace_setup.general.id, "Topic", workspace_setup.client_user)

        with pytest.raises(PermissionDeniedError):
            service.update_thread(thread.id, "user_other", title="Hijacked")

        # Pin holders may curate any thread
        updated = service.update_thread(thread.id, workspace_setup.studio_user, title="Renamed")
        assert updated.title == "Renamed"

    def test_thread_missing(self, service):
        with pytest.raises(NotFoundError):
            service.send_message("thread_missing", "hello", "user_client")


class TestMessages:
    """Test message operations"""

    @pytest.fixture
    def thread(self, service, workspace_setup):
        return service.create_thread(workspace_setup.general.id, "Kickoff", workspace_setup.client_user)

    @pytest.fixture
    def editor(self, service, workspace_setup) -> str:
        """A client member granted edit/delete of their own messages."""
        workspace = workspace_setup.workspace
        client_team = workspace.team_of_type(TeamType.client)
        member = service.add_member(
            workspace.id,
            client_team.id,
            AddMemberRequest(
                user_id="user_editor",
                name="Eddie",
                permissions={Permission.edit_own_message, Permission.delete_own_message},
            ),
        )
        return member.user_id

    def test_send_denied_creates_nothing(self, service, workspace_setup, thread):
        """Scenario: sender without send_message is rejected"""
        with pytest.raises(PermissionDeniedError):
            service.send_message(thread.id, "hi", workspace_setup.studio_user)

        assert service.list_messages(thread.id) == []
        assert service.get_thread(thread.id).message_sequence == 0

    def test_sender_joins_participants(self, service, workspace_setup, thread, editor):
        service.send_message(thread.id, "hello", editor, content_type=ContentType.text)

        stored = service.get_thread(thread.id)
        assert stored.participant_ids == [workspace_setup.client_user, editor]

    def test_reply_to(self, service, workspace_setup, thread):
        user = workspace_setup.client_user
        original = service.send_message(thread.id, "question?", user)

        reply = service.send_message(thread.id, "answer", user, reply_to_id=original.id)
        assert reply.reply_to_id == original.id

        with pytest.raises(NotFoundError):
            service.send_message(thread.id, "answer", user, reply_to_id="message_missing")

        other = service.create_thread(workspace_setup.general.id, "Other", user)
        with pytest.raises(InvalidStateError):
            service.send_message(other.id, "cross", user, reply_to_id=original.id)
        assert service.list_messages(other.id) == []

    def test_edit_own_message(self, service, thread, editor):
        message = service.send_message(thread.id, "draft", editor)

        edited = service.edit_message(message.id, editor, "final copy")

        assert edited.content == "final copy"
        assert edited.edited_at is not None
        assert edited.created_at == message.created_at
        assert edited.sequence == message.sequence

    def test_edit_requires_capability(self, service, workspace_setup, thread, editor):
        own = service.send_message(thread.id, "mine", workspace_setup.client_user)
        with pytest.raises(PermissionDeniedError):
            service.edit_message(own.id, workspace_setup.client_user, "changed")

        others = service.send_message(thread.id, "yours", workspace_setup.client_user)
        with pytest.raises(PermissionDeniedError):
            service.edit_message(others.id, editor, "changed")
        assert service.get_message(others.id).content == "yours"

    def test_delete_message(self, service, thread, editor):
        message = service.send_message(thread.id, "oops", editor)

        assert service.delete_message(message.id, editor)
        assert service.get_message(message.id) is None
        assert service.list_messages(thread.id) == []

    def test_delete_others_message_denied(self, service, workspace_setup, thread, editor):
        message = service.send_message(thread.id, "keep", workspace_setup.client_user)
        with pytest.raises(PermissionDeniedError):
            service.delete_message(message.id, editor)
        assert service.get_message(message.id) is not None

    def test_reaction_toggles(self, service, workspace_setup, thread):
        user = workspace_setup.client_user
        message = service.send_message(thread.id, "ship it", user)

        reacted = service.add_reaction(message.id, user, "👍")
        assert [(r.user_id, r.emoji) for r in reacted.reactions] == [(user, "👍")]

        cleared = service.add_reaction(message.id, user, "👍")
        assert cleared.reactions == []

    def test_add_attachment(self, service, workspace_setup, thread):
        message = service.send_message(thread.id, "see attached", workspace_setup.client_user)
        upload = Attachment(id="att_1", type=AttachmentType.file, name="brief.pdf")
        with pytest.raises(PermissionDeniedError):
            service.add_attachment(message.id, workspace_setup.client_user, upload)

        widget = Attachment(
            id="att_2",
            type=AttachmentType.generative_ui,
            name="Chart Component",
            ui_specification=UISpecification(component_type="chart"),
        )
        updated = service.add_attachment(message.id, workspace_setup.agent_id, widget)
        assert [a.id for a in updated.attachments] == ["att_2"]
        assert updated.attachments[0].message_id == message.id
        assert updated.attachments[0].ui_specification.component_type == "chart"

    def test_attachments_on_send(self, service, workspace_setup, thread):
        attachment = Attachment(id="att_3", type=AttachmentType.link, name="Moodboard", url="https://example.com")

        message = service.send_message(thread.id, "link", workspace_setup.client_user, attachments=[attachment])

        stored = service.get_message(message.id)
        assert stored.attachments[0].message_id == message.id

    def test_edit_generating_message_rejected(self, service, workspace_setup, thread):
        placeholder = service.create_placeholder(thread.id, workspace_setup.agent_id, "Project Assistant")

        with pytest.raises(InvalidStateError):
            service.edit_message(placeholder.id, None, "human override")
        assert service.get_message(placeholder.id).content == settings.generation_placeholder_text
