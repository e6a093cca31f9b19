"""
Unit tests for store rejections

Tests cover:
- Creates returning None and leaving nothing behind when a write is rejected
- create_workspace rolling back the workspace when the general channel fails
- Updates raising StoreFailure and keeping the previous state
- Redis creates writing document and index together or not at all
"""

import pytest

from workhorse.components.collaboration.models import AddMemberRequest, TeamType
from workhorse.components.collaboration.redis_storage import CollaborationRedisStorage
from workhorse.components.collaboration.service import CollaborationService
from workhorse.components.collaboration.storage import CollaborationStorage
from workhorse.components.workflow.models import CreateProjectRequest
from workhorse.components.workflow.projects import ProjectService
from workhorse.components.workflow.redis_storage import WorkflowRedisStorage
from workhorse.db.redis_cache import RedisCache
from workhorse.db.redis_db import RedisKeyPrefix
from workhorse.exceptions import StoreFailure


class RejectingStorage(CollaborationStorage):
    """In-memory storage that rejects the operations named in `reject`."""

    def __init__(self):
        super().__init__()
        self.reject: set[str] = set()

    def _check(self, operation: str) -> None:
        if operation in self.reject:
            raise StoreFailure(f"{operation} rejected")

    def save_workspace(self, workspace):
        return "save_workspace" not in self.reject and super().save_workspace(workspace)

    def save_channel(self, channel):
        return "save_channel" not in self.reject and super().save_channel(channel)

    def save_thread(self, thread):
        return "save_thread" not in self.reject and super().save_thread(thread)

    def update_workspace(self, workspace_id, mutate):
        self._check("update_workspace")
        return super().update_workspace(workspace_id, mutate)

    def append_message(self, message, place):
        self._check("append_message")
        return super().append_message(message, place)

    def update_message(self, message_id, mutate):
        self._check("update_message")
        return super().update_message(message_id, mutate)


@pytest.fixture
def rejecting_storage() -> RejectingStorage:
    return RejectingStorage()


@pytest.fixture
def rejecting_service(rejecting_storage, clock) -> CollaborationService:
    return CollaborationService(storage=rejecting_storage, clock=clock)


@pytest.fixture
def open_thread(rejecting_service):
    """A bootstrapped workspace with one client-created thread."""
    workspace = rejecting_service.bootstrap_workspace("project_fail", "Failures")
    client_team = workspace.team_of_type(TeamType.client)
    rejecting_service.add_member(workspace.id, client_team.id, AddMemberRequest(user_id="user_client"))
    general = rejecting_service.list_channels(workspace.id)[0]
    thread = rejecting_service.create_thread(general.id, "Kickoff", "user_client")
    return workspace, general, thread


class TestRejectedCreates:
    """Test creates when the store refuses a write"""

    def test_workspace_write_rejected(self, rejecting_service, rejecting_storage):
        rejecting_storage.reject.add("save_workspace")

        assert rejecting_service.create_workspace("project_fail", "Failures") is None
        assert rejecting_service.list_workspaces() == []

    def test_general_channel_rejected_rolls_back_workspace(self, rejecting_service, rejecting_storage):
        """A workspace without its general channel is never left behind"""
        rejecting_storage.reject.add("save_channel")

        assert rejecting_service.create_workspace("project_fail", "Failures") is None
        assert rejecting_service.list_workspaces() == []
        assert rejecting_service.list_workspaces("project_fail") == []

    def test_bootstrap_rejected(self, rejecting_service, rejecting_storage):
        rejecting_storage.reject.add("save_channel")

        assert rejecting_service.bootstrap_workspace("project_fail", "Failures") is None
        assert rejecting_service.list_workspaces() == []

    def test_ensure_team_rejected(self, rejecting_service, rejecting_storage):
        workspace = rejecting_service.create_workspace("project_fail", "Failures")
        rejecting_storage.reject.add("update_workspace")

        assert rejecting_service.ensure_team(workspace.id, TeamType.client) is None
        assert rejecting_service.get_workspace(workspace.id).teams == []

    def test_thread_rejected(self, rejecting_service, rejecting_storage, open_thread):
        _, general, existing = open_thread
        rejecting_storage.reject.add("save_thread")

        assert rejecting_service.create_thread(general.id, "Never stored", "user_client") is None
        assert [t.id for t in rejecting_service.list_threads(general.id)] == [existing.id]

    def test_message_rejected(self, rejecting_service, rejecting_storage, open_thread):
        _, _, thread = open_thread
        rejecting_service.send_message(thread.id, "first", "user_client")
        before = rejecting_service.get_thread(thread.id)
        rejecting_storage.reject.add("append_message")

        assert rejecting_service.send_message(thread.id, "lost", "user_client") is None
        assert [m.content for m in rejecting_service.list_messages(thread.id)] == ["first"]
        assert rejecting_service.get_thread(thread.id) == before


class TestRejectedUpdates:
    """Test updates when the store refuses a write"""

    def test_edit_raises_and_keeps_content(self, rejecting_service, rejecting_storage, open_thread):
        _, _, thread = open_thread
        message = rejecting_service.send_message(thread.id, "original text", "user_client")
        rejecting_storage.reject.add("update_message")

        with pytest.raises(StoreFailure):
            rejecting_service.edit_message(message.id, None, "new text")
        assert rejecting_service.get_message(message.id).content == "original text"


class TestRedisIndexedCreates:
    """Test that Redis creates never leave a document without its index"""

    def test_thread_index_failure_leaves_no_document(self, fake_redis_client, clock):
        storage = CollaborationRedisStorage(cache=RedisCache(client=fake_redis_client))
        service = CollaborationService(storage=storage, clock=clock)
        workspace = service.bootstrap_workspace("project_fail", "Failures")
        client_team = workspace.team_of_type(TeamType.client)
        service.add_member(workspace.id, client_team.id, AddMemberRequest(user_id="user_client"))
        general = service.list_channels(workspace.id)[0]

        # A string where the thread index set should be makes SADD fail inside EXEC
        fake_redis_client.set(RedisKeyPrefix.channel_threads_key(general.id), "not-a-set")

        assert service.create_thread(general.id, "Never stored", "user_client") is None
        assert list(fake_redis_client.scan_iter(match=f"{RedisKeyPrefix.thread_key('')}*")) == []

    def test_general_channel_failure_rolls_back_redis_workspace(self, fake_redis_client, clock, monkeypatch):
        storage = CollaborationRedisStorage(cache=RedisCache(client=fake_redis_client))
        service = CollaborationService(storage=storage, clock=clock)
        monkeypatch.setattr(storage, "save_channel", lambda channel: False)

        assert service.create_workspace("project_fail", "Failures") is None
        assert service.list_workspaces() == []
        assert list(fake_redis_client.scan_iter(match=f"{RedisKeyPrefix.workspace_key('')}*")) == []

    def test_project_index_failure(self, fake_redis_client, clock):
        projects = ProjectService(storage=WorkflowRedisStorage(cache=RedisCache(client=fake_redis_client)), clock=clock)
        fake_redis_client.set(RedisKeyPrefix.project_index_key(), "not-a-set")

        with pytest.raises(StoreFailure):
            projects.create_project(CreateProjectRequest(name="Doomed"))
        assert list(fake_redis_client.scan_iter(match=f"{RedisKeyPrefix.project_key('')}*")) == []
