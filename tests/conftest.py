"""
pytest configuration file

This file contains shared fixtures for all tests.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import fakeredis
import pytest

from workhorse.components.collaboration.models import AddMemberRequest, Channel, TeamType, Workspace
from workhorse.components.collaboration.redis_storage import CollaborationRedisStorage
from workhorse.components.collaboration.service import CollaborationService
from workhorse.components.collaboration.storage import CollaborationStorage
from workhorse.components.workflow.projects import ProjectService
from workhorse.components.workflow.redis_storage import WorkflowRedisStorage
from workhorse.components.workflow.storage import WorkflowStorage
from workhorse.db.redis_cache import RedisCache


class FakeClock:
    """Deterministic clock: returns `now`, advanced explicitly by tests."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def fake_redis_client():
    """
    Create a fakeredis client for unit tests.

    This provides an in-memory Redis implementation that allows
    unit tests to run without a real Redis server.
    """
    server = fakeredis.FakeServer()
    client = fakeredis.FakeRedis(server=server, decode_responses=True)
    yield client
    client.close()


@pytest.fixture
def redis_cache(fake_redis_client) -> RedisCache:
    return RedisCache(client=fake_redis_client)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(params=["memory", "redis"])
def collaboration_storage(request, fake_redis_client):
    """Collaboration storage, once per backend."""
    if request.param == "memory":
        return CollaborationStorage()
    return CollaborationRedisStorage(cache=RedisCache(client=fake_redis_client))


@pytest.fixture
def service(collaboration_storage, clock) -> CollaborationService:
    return CollaborationService(storage=collaboration_storage, clock=clock)


@pytest.fixture(params=["memory", "redis"])
def workflow_storage(request, fake_redis_client):
    """Workflow storage, once per backend."""
    if request.param == "memory":
        return WorkflowStorage()
    return WorkflowRedisStorage(cache=RedisCache(client=fake_redis_client))


@pytest.fixture
def project_service(workflow_storage, clock) -> ProjectService:
    return ProjectService(storage=workflow_storage, clock=clock)


@dataclass
class WorkspaceSetup:
    """A bootstrapped workspace with one studio user, one client user and the default agent."""

    workspace: Workspace
    general: Channel
    studio_user: str
    client_user: str
    agent_id: str


@pytest.fixture
def workspace_setup(service) -> WorkspaceSetup:
    workspace = service.bootstrap_workspace(
        "project_acme",
        "Acme Rebrand",
        owner=AddMemberRequest(user_id="user_studio", name="Sam Studio"),
    )
    client_team = workspace.team_of_type(TeamType.client)
    service.add_member(workspace.id, client_team.id, AddMemberRequest(user_id="user_client", name="Cleo Client"))
    agent = workspace.team_of_type(TeamType.agent).members[0]
    return WorkspaceSetup(
        workspace=service.get_workspace(workspace.id),
        general=service.list_channels(workspace.id)[0],
        studio_user="user_studio",
        client_user="user_client",
        agent_id=agent.user_id,
    )
