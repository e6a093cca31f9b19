"""Workflow Module.

Projects, their four ordered delivery phases and per-phase artifacts.

Components:
- models.py: Project, ProjectPhase, Artifact and the phase/type vocabularies
- storage.py / redis_storage.py: In-memory and Redis backends
- storage_provider.py: Backend selection by settings.use_memory_store
- phases.py: PhaseEngine (forward-only phase state machine)
- artifacts.py: ArtifactService (per-phase allow-lists, versioning)
- projects.py: ProjectService (project creation and phase advance)
"""

from workhorse.components.workflow.artifacts import ArtifactService, get_default_content
from workhorse.components.workflow.models import (
    PHASE_ARTIFACT_TYPES,
    PHASE_ORDER,
    Artifact,
    ArtifactStatus,
    ArtifactType,
    CreateArtifactRequest,
    CreateProjectRequest,
    PhaseStatus,
    PhaseType,
    Project,
    ProjectDetails,
    ProjectPhase,
    ProjectStatus,
    UpdateArtifactRequest,
)
from workhorse.components.workflow.phases import PhaseEngine
from workhorse.components.workflow.projects import ProjectService
from workhorse.components.workflow.storage_provider import get_workflow_storage, reset_workflow_storage

__all__ = [
    # Models
    "PHASE_ARTIFACT_TYPES",
    "PHASE_ORDER",
    "Artifact",
    "ArtifactStatus",
    "ArtifactType",
    "CreateArtifactRequest",
    "CreateProjectRequest",
    "PhaseStatus",
    "PhaseType",
    "Project",
    "ProjectDetails",
    "ProjectPhase",
    "ProjectStatus",
    "UpdateArtifactRequest",
    # Services
    "ArtifactService",
    "PhaseEngine",
    "ProjectService",
    "get_default_content",
    "get_workflow_storage",
    "reset_workflow_storage",
]
