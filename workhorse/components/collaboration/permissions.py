"""Capability checks for workspace, channel, thread and message mutations.

A member holds a capability when the workspace's default set for the
member's team kind contains it, or when the member carries an explicit
grant. An actor id of None denotes a system call (provisioning, bootstrap)
and is always allowed.
"""

import logging

from workhorse.components.collaboration.models import (
    AIAgentMember,
    Permission,
    Team,
    TeamMember,
    TeamType,
    Workspace,
)
from workhorse.exceptions import PermissionDeniedError

logger = logging.getLogger(__name__)


def effective_permissions(workspace: Workspace, team: Team, member: TeamMember) -> set[Permission]:
    """Team kind defaults plus the member's explicit grants."""
    defaults = workspace.settings.default_permissions.get(team.type, set())
    return set(defaults) | set(member.permissions)


def has_permission(workspace: Workspace, user_id: str | None, permission: Permission) -> bool:
    if user_id is None:
        return True
    found = workspace.find_member(user_id)
    if found is None:
        return False
    team, member = found
    return permission in effective_permissions(workspace, team, member)


def require_permission(workspace: Workspace, user_id: str | None, permission: Permission) -> None:
    """Raise PermissionDeniedError unless `user_id` holds `permission` in `workspace`."""
    if not has_permission(workspace, user_id, permission):
        logger.warning(f"Permission denied: user={user_id} permission={permission.value} workspace={workspace.id}")
        raise PermissionDeniedError(user_id, permission.value)


def require_any_permission(workspace: Workspace, user_id: str | None, *permissions: Permission) -> None:
    if any(has_permission(workspace, user_id, p) for p in permissions):
        return
    names = " | ".join(p.value for p in permissions)
    logger.warning(f"Permission denied: user={user_id} permission={names} workspace={workspace.id}")
    raise PermissionDeniedError(user_id, names)


def find_agent(workspace: Workspace, agent_id: str) -> AIAgentMember | None:
    """Return the automated member with this user id, if it sits in the agent team."""
    found = workspace.find_member(agent_id)
    if found is None:
        return None
    team, member = found
    if team.type != TeamType.agent or not isinstance(member, AIAgentMember):
        return None
    return member
