"""Project service: creates projects with their phases and first artifacts."""

import logging
from collections.abc import Callable
from datetime import datetime

from workhorse.components.workflow.artifacts import ArtifactService
from workhorse.components.workflow.models import (
    PHASE_ORDER,
    CreateProjectRequest,
    Project,
    ProjectDetails,
    ProjectStatus,
)
from workhorse.components.workflow.phases import PhaseEngine
from workhorse.components.workflow.storage_provider import WorkflowStorageProtocol, get_workflow_storage
from workhorse.exceptions import NotFoundError, StoreFailure
from workhorse.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(
        self,
        storage: WorkflowStorageProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage or get_workflow_storage()
        self._clock = clock
        self.phases = PhaseEngine(self._storage, clock)
        self.artifacts = ArtifactService(self._storage, clock)

    @property
    def storage(self) -> WorkflowStorageProtocol:
        return self._storage

    def create_project(self, request: CreateProjectRequest, created_by_id: str | None = None) -> Project:
        """Store a project, start its discovery phase and seed discovery artifacts.

        Raises:
            StoreFailure: the store rejected a write
        """
        now = self._clock()
        project = Project(
            id=generate_id("project"),
            name=request.name,
            description=request.description,
            client_id=request.client_id,
            status=ProjectStatus.active,
            current_phase=PHASE_ORDER[0],
            start_date=request.start_date,
            due_date=request.due_date,
            created_at=now,
            updated_at=now,
        )
        if not self.storage.save_project(project):
            raise StoreFailure(f"Failed to store project {request.name}")
        logger.info(f"Created project {project.id}: {project.name}")

        self.phases.initialize(project.id)
        self.artifacts.initialize_phase_artifacts(project.id, PHASE_ORDER[0], created_by_id)
        return self.storage.get_project(project.id) or project

    def get_project(self, project_id: str) -> Project | None:
        return self.storage.get_project(project_id)

    def list_projects(self) -> list[Project]:
        return self.storage.list_projects()

    def update_project_status(self, project_id: str, status: ProjectStatus) -> Project:
        now = self._clock()

        def mutate(project: Project) -> Project:
            project.status = status
            project.updated_at = now
            return project

        updated = self.storage.update_project(project_id, mutate)
        logger.info(f"Project {project_id} status -> {status.value}")
        return updated

    def delete_project(self, project_id: str) -> bool:
        for artifact in self.storage.list_artifacts(project_id):
            self.storage.delete_artifact(artifact.id)
        deleted = self.storage.delete_project(project_id)
        if deleted:
            logger.info(f"Deleted project {project_id}")
        return deleted

    def advance_phase(self, project_id: str) -> Project:
        """Complete the project's current phase (which starts the next one)."""
        project = self.storage.get_project(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        self.phases.complete_phase(project_id, project.current_phase)
        return self.storage.get_project(project_id) or project

    def get_project_with_details(self, project_id: str) -> ProjectDetails:
        project = self.storage.get_project(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return ProjectDetails(
            project=project,
            phases=self.phases.get_project_phases(project_id),
            artifacts=self.artifacts.get_project_artifacts(project_id),
        )
