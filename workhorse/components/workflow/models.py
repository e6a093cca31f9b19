"""Workflow data models.

Projects move through four fixed phases; artifacts are deliverables
scoped to one project phase.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from workhorse.utils import utc_now


class PhaseType(str, Enum):
    """Delivery phases, declared in their fixed order."""

    discovery = "discovery"
    definition = "definition"
    design = "design"
    development = "development"

    @property
    def order(self) -> int:
        return PHASE_ORDER.index(self)

    @property
    def next_phase(self) -> "PhaseType | None":
        position = self.order + 1
        return PHASE_ORDER[position] if position < len(PHASE_ORDER) else None


PHASE_ORDER: list[PhaseType] = list(PhaseType)


class PhaseStatus(str, Enum):
    not_started = "not_started"
    in_progress = "in_progress"
    review = "review"
    completed = "completed"


class ProjectStatus(str, Enum):
    active = "active"
    on_hold = "on_hold"
    completed = "completed"
    cancelled = "cancelled"


class ArtifactStatus(str, Enum):
    draft = "draft"
    review = "review"
    approved = "approved"
    archived = "archived"


class ArtifactType(str, Enum):
    # Discovery
    creative_brief = "creative_brief"
    brand_inventory = "brand_inventory"
    competitive_analysis = "competitive_analysis"
    user_research = "user_research"
    # Definition
    brand_strategy = "brand_strategy"
    user_personas = "user_personas"
    information_architecture = "information_architecture"
    content_plan = "content_plan"
    wireframes = "wireframes"
    # Design
    brand_identity = "brand_identity"
    visual_design = "visual_design"
    prototype = "prototype"
    design_system = "design_system"
    # Development
    asset_handoff = "asset_handoff"
    implementation_guide = "implementation_guide"
    deployment_plan = "deployment_plan"
    training_materials = "training_materials"


PHASE_ARTIFACT_TYPES: dict[PhaseType, list[ArtifactType]] = {
    PhaseType.discovery: [
        ArtifactType.creative_brief,
        ArtifactType.brand_inventory,
        ArtifactType.competitive_analysis,
        ArtifactType.user_research,
    ],
    PhaseType.definition: [
        ArtifactType.brand_strategy,
        ArtifactType.user_personas,
        ArtifactType.information_architecture,
        ArtifactType.content_plan,
        ArtifactType.wireframes,
    ],
    PhaseType.design: [
        ArtifactType.brand_identity,
        ArtifactType.visual_design,
        ArtifactType.prototype,
        ArtifactType.design_system,
    ],
    PhaseType.development: [
        ArtifactType.asset_handoff,
        ArtifactType.implementation_guide,
        ArtifactType.deployment_plan,
        ArtifactType.training_materials,
    ],
}


class Project(BaseModel):
    id: str
    name: str
    description: str | None = None
    client_id: str | None = None
    status: ProjectStatus = ProjectStatus.active
    current_phase: PhaseType = PhaseType.discovery
    discovery_complete: bool = False
    definition_complete: bool = False
    design_complete: bool = False
    development_complete: bool = False
    start_date: datetime | None = None
    due_date: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def is_phase_complete(self, phase: PhaseType) -> bool:
        return getattr(self, f"{phase.value}_complete")

    def mark_phase_complete(self, phase: PhaseType) -> None:
        setattr(self, f"{phase.value}_complete", True)


class ProjectPhase(BaseModel):
    id: str
    project_id: str
    phase_type: PhaseType
    status: PhaseStatus = PhaseStatus.not_started
    start_date: datetime | None = None
    completion_date: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class Artifact(BaseModel):
    id: str
    project_id: str
    phase: PhaseType
    artifact_type: ArtifactType
    name: str
    description: str | None = None
    content: dict[str, Any] = Field(default_factory=dict)
    file_url: str | None = None
    status: ArtifactStatus = ArtifactStatus.draft
    version: int = 1
    created_by_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ProjectDetails(BaseModel):
    project: Project
    phases: list[ProjectPhase]
    artifacts: list[Artifact]


# ==================== Request models ====================


class CreateProjectRequest(BaseModel):
    name: str
    description: str | None = None
    client_id: str | None = None
    start_date: datetime | None = None
    due_date: datetime | None = None


class CreateArtifactRequest(BaseModel):
    project_id: str
    phase: PhaseType
    artifact_type: ArtifactType
    name: str | None = None
    description: str | None = None
    content: dict[str, Any] | None = None
    file_url: str | None = None
    status: ArtifactStatus = ArtifactStatus.draft
    created_by_id: str | None = None


class UpdateArtifactRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    content: dict[str, Any] | None = None
    file_url: str | None = None
    status: ArtifactStatus | None = None
