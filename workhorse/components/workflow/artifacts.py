"""Artifact service.

Artifact types are restricted per phase (PHASE_ARTIFACT_TYPES). Status
moves freely between draft, review, approved and archived; the version is
bumped whenever content or the file reference changes.
"""

import copy
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from workhorse.components.workflow.models import (
    PHASE_ARTIFACT_TYPES,
    Artifact,
    ArtifactStatus,
    ArtifactType,
    CreateArtifactRequest,
    PhaseType,
    UpdateArtifactRequest,
)
from workhorse.components.workflow.storage_provider import WorkflowStorageProtocol, get_workflow_storage
from workhorse.exceptions import InvalidStateError, NotFoundError, StoreFailure
from workhorse.utils import generate_id, utc_now

logger = logging.getLogger(__name__)

DEFAULT_CONTENT: dict[ArtifactType, dict[str, Any]] = {
    ArtifactType.creative_brief: {
        "projectObjectives": "",
        "targetAudience": "",
        "keyMessages": [],
        "brandGuidelines": "",
        "deliverables": [],
        "timeline": {"milestones": []},
    },
    ArtifactType.brand_strategy: {
        "brandStory": "",
        "brandPersonality": [],
        "brandVoice": "",
        "brandPromise": "",
        "competitiveAnalysis": {"competitors": []},
    },
    ArtifactType.wireframes: {"screens": []},
    ArtifactType.visual_design: {
        "designDirection": "",
        "colorPalette": [],
        "typography": {"primary": "", "secondary": "", "usageGuidelines": ""},
        "compositions": [],
    },
    ArtifactType.design_system: {"components": [], "patterns": []},
}


def get_default_content(artifact_type: ArtifactType) -> dict[str, Any]:
    """Starting content for an artifact type; empty for types without a template."""
    return copy.deepcopy(DEFAULT_CONTENT.get(artifact_type, {}))


def default_artifact_name(artifact_type: ArtifactType) -> str:
    return artifact_type.value.replace("_", " ").title()


def validate_artifact_type(phase: PhaseType, artifact_type: ArtifactType) -> None:
    if artifact_type not in PHASE_ARTIFACT_TYPES[phase]:
        raise InvalidStateError(f"Artifact type {artifact_type.value} is not allowed in phase {phase.value}")


class ArtifactService:
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

    def create_artifact(self, request: CreateArtifactRequest) -> Artifact:
        """Create an artifact in a project phase.

        Raises:
            NotFoundError: project missing
            InvalidStateError: type not allowed in the phase
            StoreFailure: the store rejected the write
        """
        if self.storage.get_project(request.project_id) is None:
            raise NotFoundError("Project", request.project_id)
        validate_artifact_type(request.phase, request.artifact_type)

        now = self._clock()
        artifact = Artifact(
            id=generate_id("artifact"),
            project_id=request.project_id,
            phase=request.phase,
            artifact_type=request.artifact_type,
            name=request.name or default_artifact_name(request.artifact_type),
            description=request.description,
            content=request.content if request.content is not None else get_default_content(request.artifact_type),
            file_url=request.file_url,
            status=request.status,
            version=1,
            created_by_id=request.created_by_id,
            created_at=now,
            updated_at=now,
        )
        if not self.storage.save_artifact(artifact):
            raise StoreFailure(f"Failed to store artifact {artifact.artifact_type.value} for {request.project_id}")
        logger.info(f"Created artifact {artifact.id} ({artifact.artifact_type.value}) in {request.project_id}")
        return artifact

    def get_artifact(self, artifact_id: str) -> Artifact | None:
        return self.storage.get_artifact(artifact_id)

    def get_project_artifacts(self, project_id: str) -> list[Artifact]:
        """All of a project's artifacts, newest first."""
        return self.storage.list_artifacts(project_id)

    def get_phase_artifacts(self, project_id: str, phase: PhaseType) -> list[Artifact]:
        return [a for a in self.storage.list_artifacts(project_id) if a.phase == phase]

    def update_artifact(self, artifact_id: str, request: UpdateArtifactRequest) -> Artifact:
        updates = request.model_dump(exclude_none=True)
        now = self._clock()

        def mutate(artifact: Artifact) -> Artifact:
            changed_payload = ("content" in updates and updates["content"] != artifact.content) or (
                "file_url" in updates and updates["file_url"] != artifact.file_url
            )
            for field, value in updates.items():
                setattr(artifact, field, value)
            if changed_payload:
                artifact.version += 1
            artifact.updated_at = now
            return artifact

        updated = self.storage.update_artifact(artifact_id, mutate)
        logger.debug(f"Updated artifact {artifact_id} (version {updated.version})")
        return updated

    def update_artifact_status(self, artifact_id: str, status: ArtifactStatus) -> Artifact:
        """Set the status. Any status may follow any other."""
        now = self._clock()

        def mutate(artifact: Artifact) -> Artifact:
            artifact.status = status
            artifact.updated_at = now
            return artifact

        updated = self.storage.update_artifact(artifact_id, mutate)
        logger.info(f"Artifact {artifact_id} status -> {status.value}")
        return updated

    def delete_artifact(self, artifact_id: str) -> bool:
        deleted = self.storage.delete_artifact(artifact_id)
        if deleted:
            logger.info(f"Deleted artifact {artifact_id}")
        return deleted

    def initialize_phase_artifacts(
        self, project_id: str, phase: PhaseType, created_by_id: str | None = None
    ) -> list[Artifact]:
        """Create one draft artifact per type allowed in `phase`."""
        artifacts = [
            self.create_artifact(
                CreateArtifactRequest(
                    project_id=project_id,
                    phase=phase,
                    artifact_type=artifact_type,
                    status=ArtifactStatus.draft,
                    created_by_id=created_by_id,
                )
            )
            for artifact_type in PHASE_ARTIFACT_TYPES[phase]
        ]
        logger.info(f"Initialized {len(artifacts)} {phase.value} artifacts for project {project_id}")
        return artifacts
