"""Error kinds raised by the collaboration and workflow core.

NotFoundError, PermissionDeniedError and InvalidStateError are deterministic
and never retried. ProviderFailure is left to the caller to retry or fall back.
StoreFailure means the prior state of the entity is still authoritative.
"""


class WorkhorseError(Exception):
    """Base class for all core errors."""


class NotFoundError(WorkhorseError):
    """A referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class PermissionDeniedError(WorkhorseError):
    """The acting member lacks a capability."""

    def __init__(self, actor_id: str | None, permission: str):
        self.actor_id = actor_id
        self.permission = permission
        super().__init__(f"{actor_id or 'anonymous'} lacks permission '{permission}'")


class InvalidStateError(WorkhorseError):
    """The requested transition is not allowed from the current state."""


class ProviderFailure(WorkhorseError):
    """The generation provider failed or timed out."""


class StoreFailure(WorkhorseError):
    """The storage layer rejected a write."""
