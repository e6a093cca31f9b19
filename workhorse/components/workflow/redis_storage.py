"""Redis-backed storage for workflow entities.

Provides distributed storage for multi-instance deployments:
- Projects (indexed in a global set)
- Project phases, one document per (project, phase type)
- Artifacts, indexed per project

Architecture (Single DB + Key Prefix Pattern):
- Single db=0, Redis Cluster compatible
- Key format: workhorse:workflow:phase:{project_id}:{phase_type}
- Updates are WATCH/MULTI/EXEC read-modify-writes via RedisCache.transaction
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel
from redis.client import Pipeline

from workhorse.components.workflow.models import PHASE_ORDER, Artifact, PhaseType, Project, ProjectPhase
from workhorse.db.redis_cache import RedisCache, get_redis_cache
from workhorse.db.redis_db import RedisKeyPrefix
from workhorse.exceptions import NotFoundError
from workhorse.settings import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class WorkflowRedisStorage:
    """Redis-backed storage for workflow data.

    Designed for multi-instance deployments where all pods share the same Redis.
    """

    def __init__(self, cache: RedisCache | None = None):
        """Initialize with optional cache instance (for testing)."""
        self._cache = cache

    @property
    def cache(self) -> RedisCache:
        """Lazy initialization of Redis cache."""
        if self._cache is None:
            self._cache = get_redis_cache()
        return self._cache

    @property
    def _ttl(self) -> int | None:
        return settings.entity_ttl_seconds or None

    def _write(self, pipe: Pipeline, key: str, entity: BaseModel) -> None:
        pipe.set(key, self.cache.dump(entity.model_dump(mode="json")), ex=self._ttl)

    def _update(self, key: str, model: type[M], entity: str, entity_id: str, mutate: Callable[[M], T]) -> T:
        def apply(pipe: Pipeline):
            data = self.cache.load(pipe, key)
            if data is None:
                raise NotFoundError(entity, entity_id)
            current = model.model_validate(data)
            updated = current.model_copy(deep=True)
            result = mutate(updated)
            if updated == current:
                return result, None
            return result, lambda p: self._write(p, key, updated)

        return self.cache.transaction([key], apply)

    # ==================== Project Operations ====================

    def save_project(self, project: Project) -> bool:
        success = self.cache.set_indexed(
            RedisKeyPrefix.project_key(project.id),
            project.model_dump(mode="json"),
            RedisKeyPrefix.project_index_key(),
            project.id,
            expire_seconds=self._ttl,
        )
        if success:
            logger.debug(f"Saved project: {project.id}")
        return success

    def get_project(self, project_id: str) -> Project | None:
        data = self.cache.get(RedisKeyPrefix.project_key(project_id))
        if data:
            return Project.model_validate(data)
        return None

    def list_projects(self) -> list[Project]:
        """List all projects, newest first."""
        index_key = RedisKeyPrefix.project_index_key()
        project_ids = sorted(self.cache.smembers(index_key))
        documents = self.cache.get_many([RedisKeyPrefix.project_key(i) for i in project_ids])
        projects = []
        for project_id, data in zip(project_ids, documents):
            if data:
                projects.append(Project.model_validate(data))
            else:
                # Clean up stale index entry
                self.cache.srem(index_key, project_id)
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    def update_project(self, project_id: str, mutate: Callable[[Project], T]) -> T:
        return self._update(RedisKeyPrefix.project_key(project_id), Project, "Project", project_id, mutate)

    def delete_project(self, project_id: str) -> bool:
        deleted = self.cache.delete(RedisKeyPrefix.project_key(project_id))
        if deleted:
            self.cache.srem(RedisKeyPrefix.project_index_key(), project_id)
            self.cache.delete(*[RedisKeyPrefix.phase_key(project_id, t.value) for t in PHASE_ORDER])
            logger.debug(f"Deleted project: {project_id}")
        return deleted

    # ==================== Phase Operations ====================

    def create_phases(self, phases: list[ProjectPhase]) -> bool:
        """Store a project's phase records unless any of them already exists."""
        keys = [RedisKeyPrefix.phase_key(p.project_id, p.phase_type.value) for p in phases]

        def apply(pipe: Pipeline):
            if any(pipe.exists(key) for key in keys):
                return False, None

            def write(p: Pipeline) -> None:
                for key, phase in zip(keys, phases):
                    self._write(p, key, phase)

            return True, write

        return self.cache.transaction(keys, apply)

    def get_phase(self, project_id: str, phase_type: PhaseType) -> ProjectPhase | None:
        data = self.cache.get(RedisKeyPrefix.phase_key(project_id, phase_type.value))
        if data:
            return ProjectPhase.model_validate(data)
        return None

    def list_phases(self, project_id: str) -> list[ProjectPhase]:
        """A project's phases in phase order."""
        documents = self.cache.get_many([RedisKeyPrefix.phase_key(project_id, t.value) for t in PHASE_ORDER])
        return [ProjectPhase.model_validate(data) for data in documents if data]

    def update_phase(self, project_id: str, phase_type: PhaseType, mutate: Callable[[ProjectPhase], T]) -> T:
        return self._update(
            RedisKeyPrefix.phase_key(project_id, phase_type.value),
            ProjectPhase,
            "Phase",
            f"{project_id}/{phase_type.value}",
            mutate,
        )

    # ==================== Artifact Operations ====================

    def save_artifact(self, artifact: Artifact) -> bool:
        success = self.cache.set_indexed(
            RedisKeyPrefix.artifact_key(artifact.id),
            artifact.model_dump(mode="json"),
            RedisKeyPrefix.project_artifacts_key(artifact.project_id),
            artifact.id,
            expire_seconds=self._ttl,
        )
        if success:
            logger.debug(f"Saved artifact: {artifact.id}")
        return success

    def get_artifact(self, artifact_id: str) -> Artifact | None:
        data = self.cache.get(RedisKeyPrefix.artifact_key(artifact_id))
        if data:
            return Artifact.model_validate(data)
        return None

    def list_artifacts(self, project_id: str) -> list[Artifact]:
        """A project's artifacts, newest first."""
        index_key = RedisKeyPrefix.project_artifacts_key(project_id)
        artifact_ids = sorted(self.cache.smembers(index_key))
        documents = self.cache.get_many([RedisKeyPrefix.artifact_key(i) for i in artifact_ids])
        artifacts = []
        for artifact_id, data in zip(artifact_ids, documents):
            if data:
                artifacts.append(Artifact.model_validate(data))
            else:
                self.cache.srem(index_key, artifact_id)
        return sorted(artifacts, key=lambda a: a.created_at, reverse=True)

    def update_artifact(self, artifact_id: str, mutate: Callable[[Artifact], T]) -> T:
        return self._update(RedisKeyPrefix.artifact_key(artifact_id), Artifact, "Artifact", artifact_id, mutate)

    def delete_artifact(self, artifact_id: str) -> bool:
        artifact = self.get_artifact(artifact_id)
        if artifact is None:
            return False
        deleted = self.cache.delete(RedisKeyPrefix.artifact_key(artifact_id))
        if deleted:
            self.cache.srem(RedisKeyPrefix.project_artifacts_key(artifact.project_id), artifact_id)
            logger.debug(f"Deleted artifact: {artifact_id}")
        return deleted

    # ==================== Utility ====================

    def clear_all(self) -> None:
        """Clear all workflow data (useful for testing)."""
        client = self.cache.client
        for prefix in (
            RedisKeyPrefix.WORKFLOW_PROJECT,
            RedisKeyPrefix.WORKFLOW_PHASE,
            RedisKeyPrefix.WORKFLOW_ARTIFACT,
            RedisKeyPrefix.WORKFLOW_INDEX,
        ):
            keys = list(client.scan_iter(match=f"{prefix.value}:*"))
            if keys:
                client.delete(*keys)
        logger.info("Cleared all workflow data from Redis")


# Singleton instance
_workflow_redis_storage: WorkflowRedisStorage | None = None


def get_workflow_redis_storage() -> WorkflowRedisStorage:
    """Get singleton workflow Redis storage instance."""
    global _workflow_redis_storage
    if _workflow_redis_storage is None:
        _workflow_redis_storage = WorkflowRedisStorage()
    return _workflow_redis_storage
