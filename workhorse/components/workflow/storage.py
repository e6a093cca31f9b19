"""Thread-safe in-memory storage for workflow entities.

Provides storage for:
- Projects
- Project phases (four per project, keyed by phase type)
- Artifacts
"""

import threading
from collections.abc import Callable
from typing import TypeVar

from workhorse.components.workflow.models import PHASE_ORDER, Artifact, PhaseType, Project, ProjectPhase
from workhorse.exceptions import NotFoundError

T = TypeVar("T")


class WorkflowStorage:
    """Thread-safe in-memory storage for workflow data.

    Uses a reentrant lock (RLock) to ensure thread safety for all operations.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._projects: dict[str, Project] = {}
        self._phases: dict[tuple[str, PhaseType], ProjectPhase] = {}
        self._artifacts: dict[str, Artifact] = {}

    # Project operations
    def save_project(self, project: Project) -> bool:
        with self._lock:
            self._projects[project.id] = project.model_copy(deep=True)
            return True

    def get_project(self, project_id: str) -> Project | None:
        with self._lock:
            project = self._projects.get(project_id)
            return project.model_copy(deep=True) if project else None

    def list_projects(self) -> list[Project]:
        """List all projects, newest first."""
        with self._lock:
            projects = [p.model_copy(deep=True) for p in self._projects.values()]
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    def update_project(self, project_id: str, mutate: Callable[[Project], T]) -> T:
        with self._lock:
            current = self._projects.get(project_id)
            if current is None:
                raise NotFoundError("Project", project_id)
            updated = current.model_copy(deep=True)
            result = mutate(updated)
            if updated != current:
                self._projects[project_id] = updated
            return result

    def delete_project(self, project_id: str) -> bool:
        with self._lock:
            if self._projects.pop(project_id, None) is None:
                return False
            for phase_type in PHASE_ORDER:
                self._phases.pop((project_id, phase_type), None)
            return True

    # Phase operations
    def create_phases(self, phases: list[ProjectPhase]) -> bool:
        """Store a project's phase records unless any of them already exists."""
        with self._lock:
            if any((p.project_id, p.phase_type) in self._phases for p in phases):
                return False
            for phase in phases:
                self._phases[(phase.project_id, phase.phase_type)] = phase.model_copy(deep=True)
            return True

    def get_phase(self, project_id: str, phase_type: PhaseType) -> ProjectPhase | None:
        with self._lock:
            phase = self._phases.get((project_id, phase_type))
            return phase.model_copy(deep=True) if phase else None

    def list_phases(self, project_id: str) -> list[ProjectPhase]:
        """A project's phases in phase order."""
        with self._lock:
            return [
                self._phases[(project_id, t)].model_copy(deep=True)
                for t in PHASE_ORDER
                if (project_id, t) in self._phases
            ]

    def update_phase(self, project_id: str, phase_type: PhaseType, mutate: Callable[[ProjectPhase], T]) -> T:
        with self._lock:
            current = self._phases.get((project_id, phase_type))
            if current is None:
                raise NotFoundError("Phase", f"{project_id}/{phase_type.value}")
            updated = current.model_copy(deep=True)
            result = mutate(updated)
            if updated != current:
                self._phases[(project_id, phase_type)] = updated
            return result

    # Artifact operations
    def save_artifact(self, artifact: Artifact) -> bool:
        with self._lock:
            self._artifacts[artifact.id] = artifact.model_copy(deep=True)
            return True

    def get_artifact(self, artifact_id: str) -> Artifact | None:
        with self._lock:
            artifact = self._artifacts.get(artifact_id)
            return artifact.model_copy(deep=True) if artifact else None

    def list_artifacts(self, project_id: str) -> list[Artifact]:
        """A project's artifacts, newest first."""
        with self._lock:
            artifacts = [a.model_copy(deep=True) for a in self._artifacts.values() if a.project_id == project_id]
        return sorted(artifacts, key=lambda a: a.created_at, reverse=True)

    def update_artifact(self, artifact_id: str, mutate: Callable[[Artifact], T]) -> T:
        with self._lock:
            current = self._artifacts.get(artifact_id)
            if current is None:
                raise NotFoundError("Artifact", artifact_id)
            updated = current.model_copy(deep=True)
            result = mutate(updated)
            if updated != current:
                self._artifacts[artifact_id] = updated
            return result

    def delete_artifact(self, artifact_id: str) -> bool:
        with self._lock:
            return self._artifacts.pop(artifact_id, None) is not None

    # Utility
    def clear_all(self) -> None:
        """Clear all data (useful for testing)."""
        with self._lock:
            self._projects.clear()
            self._phases.clear()
            self._artifacts.clear()


# Singleton instance
workflow_storage = WorkflowStorage()
