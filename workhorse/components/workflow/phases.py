"""Forward-only phase state machine.

    discovery -> definition -> design -> development

Each phase goes not_started -> in_progress [-> review] -> completed.
Completing a phase starts the next one; completing development completes
the project. Phases are never skipped or reopened.

Completing a phase and starting the next are two writes. Between them an
observer may see "phase N completed, phase N+1 not started"; it never sees
two phases in progress.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from workhorse.components.workflow.models import (
    PHASE_ORDER,
    PhaseStatus,
    PhaseType,
    Project,
    ProjectPhase,
    ProjectStatus,
)
from workhorse.components.workflow.storage_provider import WorkflowStorageProtocol, get_workflow_storage
from workhorse.exceptions import InvalidStateError, NotFoundError
from workhorse.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


class PhaseEngine:
    def __init__(
        self,
        storage: WorkflowStorageProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage
        self._clock = clock

    @property
    def storage(self) -> WorkflowStorageProtocol:
        if self._storage is None:
            self._storage = get_workflow_storage()
        return self._storage

    def _require_project(self, project_id: str) -> Project:
        project = self.storage.get_project(project_id)
        if project is None:
            raise NotFoundError("Project", project_id)
        return project

    def _require_phase(self, project_id: str, phase_type: PhaseType) -> ProjectPhase:
        phase = self.storage.get_phase(project_id, phase_type)
        if phase is None:
            raise NotFoundError("Phase", f"{project_id}/{phase_type.value}")
        return phase

    # ==================== Reads ====================

    def get_project_phases(self, project_id: str) -> list[ProjectPhase]:
        return self.storage.list_phases(project_id)

    def get_phase(self, project_id: str, phase_type: PhaseType) -> ProjectPhase | None:
        return self.storage.get_phase(project_id, phase_type)

    # ==================== Transitions ====================

    def initialize(self, project_id: str) -> list[ProjectPhase]:
        """Create the four phase records and start discovery.

        Raises:
            NotFoundError: project missing
            InvalidStateError: phases already exist for the project
        """
        self._require_project(project_id)
        now = self._clock()
        phases = [
            ProjectPhase(
                id=generate_id("phase"),
                project_id=project_id,
                phase_type=phase_type,
                status=PhaseStatus.not_started,
                created_at=now,
                updated_at=now,
            )
            for phase_type in PHASE_ORDER
        ]
        if not self.storage.create_phases(phases):
            raise InvalidStateError(f"Phases already initialized for project {project_id}")

        logger.info(f"Initialized phases for project {project_id}")
        self.start_phase(project_id, PHASE_ORDER[0])
        return self.storage.list_phases(project_id)

    def start_phase(self, project_id: str, phase_type: PhaseType) -> ProjectPhase:
        """Make `phase_type` the project's current phase and put it in progress.

        Raises:
            InvalidStateError: the phase was already started, or an earlier
                phase is not completed
        """
        self._require_project(project_id)
        phase = self._require_phase(project_id, phase_type)
        if phase.status != PhaseStatus.not_started:
            raise InvalidStateError(f"Phase {phase_type.value} of project {project_id} is already {phase.status.value}")
        for earlier in PHASE_ORDER[: phase_type.order]:
            if self._require_phase(project_id, earlier).status != PhaseStatus.completed:
                raise InvalidStateError(
                    f"Cannot start {phase_type.value}: {earlier.value} is not completed for project {project_id}"
                )

        now = self._clock()

        def advance_project(project: Project) -> None:
            if project.current_phase.order > phase_type.order:
                raise InvalidStateError(
                    f"Project {project_id} is already in {project.current_phase.value}, cannot move back"
                )
            project.current_phase = phase_type
            project.updated_at = now

        def start(p: ProjectPhase) -> ProjectPhase:
            if p.status != PhaseStatus.not_started:
                raise InvalidStateError(f"Phase {phase_type.value} of project {project_id} is already {p.status.value}")
            p.status = PhaseStatus.in_progress
            p.start_date = now
            p.updated_at = now
            return p

        self.storage.update_project(project_id, advance_project)
        started = self.storage.update_phase(project_id, phase_type, start)
        logger.info(f"Project {project_id}: started phase {phase_type.value}")
        return started

    def submit_phase_for_review(self, project_id: str, phase_type: PhaseType) -> ProjectPhase:
        now = self._clock()

        def submit(p: ProjectPhase) -> ProjectPhase:
            if p.status != PhaseStatus.in_progress:
                raise InvalidStateError(f"Phase {phase_type.value} of project {project_id} is {p.status.value}")
            p.status = PhaseStatus.review
            p.updated_at = now
            return p

        reviewed = self.storage.update_phase(project_id, phase_type, submit)
        logger.info(f"Project {project_id}: phase {phase_type.value} submitted for review")
        return reviewed

    def complete_phase(self, project_id: str, phase_type: PhaseType) -> ProjectPhase:
        """Complete a running phase and start the next, or complete the project.

        Returns:
            The completed phase

        Raises:
            InvalidStateError: the phase is not in progress or in review
        """
        self._require_project(project_id)
        now = self._clock()

        def complete(p: ProjectPhase) -> ProjectPhase:
            if p.status not in (PhaseStatus.in_progress, PhaseStatus.review):
                raise InvalidStateError(
                    f"Cannot complete phase {phase_type.value} of project {project_id}: it is {p.status.value}"
                )
            p.status = PhaseStatus.completed
            p.completion_date = now
            p.updated_at = now
            return p

        def flag(project: Project) -> None:
            project.mark_phase_complete(phase_type)
            project.updated_at = now

        completed = self.storage.update_phase(project_id, phase_type, complete)
        self.storage.update_project(project_id, flag)
        logger.info(f"Project {project_id}: completed phase {phase_type.value}")

        next_phase = phase_type.next_phase
        if next_phase is not None:
            self.start_phase(project_id, next_phase)
        else:

            def finish(project: Project) -> None:
                project.status = ProjectStatus.completed
                project.updated_at = now

            self.storage.update_project(project_id, finish)
            logger.info(f"Project {project_id} completed")
        return completed
