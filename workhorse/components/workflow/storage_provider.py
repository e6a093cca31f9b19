"""Unified storage provider for workflow entities.

Automatically selects between in-memory storage (for local-dev)
and Redis storage (for multi-instance production).

Usage:
    from workhorse.components.workflow.storage_provider import get_workflow_storage

    storage = get_workflow_storage()
    storage.save_project(project)
    phases = storage.list_phases(project.id)
"""

import logging
from collections.abc import Callable
from typing import Protocol, TypeVar

from workhorse.components.workflow.models import Artifact, PhaseType, Project, ProjectPhase
from workhorse.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class WorkflowStorageProtocol(Protocol):
    """Protocol defining the workflow storage interface."""

    def save_project(self, project: Project) -> bool: ...
    def get_project(self, project_id: str) -> Project | None: ...
    def list_projects(self) -> list[Project]: ...
    def update_project(self, project_id: str, mutate: Callable[[Project], T]) -> T: ...
    def delete_project(self, project_id: str) -> bool: ...

    def create_phases(self, phases: list[ProjectPhase]) -> bool: ...
    def get_phase(self, project_id: str, phase_type: PhaseType) -> ProjectPhase | None: ...
    def list_phases(self, project_id: str) -> list[ProjectPhase]: ...
    def update_phase(
        self, project_id: str, phase_type: PhaseType, mutate: Callable[[ProjectPhase], T]
    ) -> T: ...

    def save_artifact(self, artifact: Artifact) -> bool: ...
    def get_artifact(self, artifact_id: str) -> Artifact | None: ...
    def list_artifacts(self, project_id: str) -> list[Artifact]: ...
    def update_artifact(self, artifact_id: str, mutate: Callable[[Artifact], T]) -> T: ...
    def delete_artifact(self, artifact_id: str) -> bool: ...

    def clear_all(self) -> None: ...


# Singleton storage instance
_workflow_storage: WorkflowStorageProtocol | None = None
_storage_type: str | None = None


def get_workflow_storage() -> WorkflowStorageProtocol:
    """Get the appropriate workflow storage based on configuration.

    Returns:
        WorkflowStorage for local-dev with use_memory_store=true
        WorkflowRedisStorage for production (multi-instance)
    """
    global _workflow_storage, _storage_type

    if _workflow_storage is not None:
        return _workflow_storage

    if settings.use_memory_store:
        _storage_type = "memory"
        from workhorse.components.workflow.storage import workflow_storage
        _workflow_storage = workflow_storage
        logger.info("WorkflowStorage: Using in-memory storage (single instance only)")
    else:
        _storage_type = "redis"
        from workhorse.components.workflow.redis_storage import get_workflow_redis_storage
        _workflow_storage = get_workflow_redis_storage()
        logger.info("WorkflowStorage: Using Redis storage (multi-instance safe)")

    return _workflow_storage


def get_storage_type() -> str:
    """Get the current storage type ('memory' or 'redis')."""
    if _storage_type is None:
        get_workflow_storage()  # Initialize storage
    return _storage_type or "unknown"


def reset_workflow_storage() -> None:
    """Reset the storage singleton (for testing)."""
    global _workflow_storage, _storage_type
    _workflow_storage = None
    _storage_type = None
