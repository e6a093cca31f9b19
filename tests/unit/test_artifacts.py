"""
Unit tests for ArtifactService

Tests cover:
- Per-phase artifact type allow-lists
- Default names and content templates
- Versioning on content or file changes
- Free status transitions
- Phase filtering and deletion
"""

import pytest

from workhorse.components.workflow.artifacts import get_default_content
from workhorse.components.workflow.models import (
    PHASE_ARTIFACT_TYPES,
    ArtifactStatus,
    ArtifactType,
    CreateArtifactRequest,
    PhaseType,
    Project,
    UpdateArtifactRequest,
)
from workhorse.exceptions import InvalidStateError, NotFoundError


@pytest.fixture
def artifacts(project_service):
    return project_service.artifacts


@pytest.fixture
def project(project_service) -> Project:
    project = Project(id="project_art", name="Artifact Test")
    project_service.storage.save_project(project)
    return project


def brief_request(project_id: str, **overrides) -> CreateArtifactRequest:
    fields = {"project_id": project_id, "phase": PhaseType.discovery, "artifact_type": ArtifactType.creative_brief}
    fields.update(overrides)
    return CreateArtifactRequest(**fields)


class TestDefaultContent:
    """Test content templates"""

    def test_templates(self):
        assert get_default_content(ArtifactType.wireframes) == {"screens": []}
        assert "typography" in get_default_content(ArtifactType.visual_design)
        assert get_default_content(ArtifactType.prototype) == {}

    def test_returns_copy(self):
        content = get_default_content(ArtifactType.creative_brief)
        content["keyMessages"].append("Bold")
        assert get_default_content(ArtifactType.creative_brief)["keyMessages"] == []

    def test_every_type_has_a_phase(self):
        allowed = [t for types in PHASE_ARTIFACT_TYPES.values() for t in types]
        assert sorted(allowed) == sorted(ArtifactType)


class TestCreateArtifact:
    """Test artifact creation"""

    def test_create_with_defaults(self, artifacts, project):
        artifact = artifacts.create_artifact(brief_request(project.id))

        assert artifact.name == "Creative Brief"
        assert artifact.status == ArtifactStatus.draft
        assert artifact.version == 1
        assert artifact.content == get_default_content(ArtifactType.creative_brief)
        assert artifacts.get_artifact(artifact.id) == artifact

    def test_explicit_content(self, artifacts, project):
        artifact = artifacts.create_artifact(brief_request(project.id, name="Q3 Brief", content={"summary": "x"}))
        assert artifact.name == "Q3 Brief"
        assert artifact.content == {"summary": "x"}

    def test_type_not_allowed_in_phase(self, artifacts, project):
        with pytest.raises(InvalidStateError):
            artifacts.create_artifact(brief_request(project.id, artifact_type=ArtifactType.wireframes))
        assert artifacts.get_project_artifacts(project.id) == []

    def test_missing_project(self, artifacts):
        with pytest.raises(NotFoundError):
            artifacts.create_artifact(brief_request("project_missing"))

    def test_initialize_phase_artifacts(self, artifacts, project):
        created = artifacts.initialize_phase_artifacts(project.id, PhaseType.definition, "user_studio")

        assert [a.artifact_type for a in created] == PHASE_ARTIFACT_TYPES[PhaseType.definition]
        assert all(a.status == ArtifactStatus.draft for a in created)
        assert len(artifacts.get_phase_artifacts(project.id, PhaseType.definition)) == 5
        assert artifacts.get_phase_artifacts(project.id, PhaseType.discovery) == []


class TestUpdateArtifact:
    """Test artifact updates"""

    @pytest.fixture
    def artifact(self, artifacts, project):
        return artifacts.create_artifact(brief_request(project.id))

    def test_content_change_bumps_version(self, artifacts, artifact, clock):
        clock.advance(60)
        updated = artifacts.update_artifact(artifact.id, UpdateArtifactRequest(content={"projectObjectives": "Grow"}))

        assert updated.version == 2
        assert updated.content == {"projectObjectives": "Grow"}
        assert updated.updated_at == clock.now
        assert artifacts.get_artifact(artifact.id).version == 2

    def test_same_content_keeps_version(self, artifacts, artifact):
        updated = artifacts.update_artifact(artifact.id, UpdateArtifactRequest(content=artifact.content))
        assert updated.version == 1

    def test_metadata_change_keeps_version(self, artifacts, artifact):
        updated = artifacts.update_artifact(artifact.id, UpdateArtifactRequest(name="Renamed", description="v1"))
        assert updated.version == 1
        assert updated.name == "Renamed"

    def test_file_change_bumps_version(self, artifacts, artifact):
        updated = artifacts.update_artifact(artifact.id, UpdateArtifactRequest(file_url="https://cdn.example.com/b.pdf"))
        assert updated.version == 2

    def test_status_moves_freely(self, artifacts, artifact):
        approved = artifacts.update_artifact_status(artifact.id, ArtifactStatus.approved)
        assert approved.status == ArtifactStatus.approved

        back = artifacts.update_artifact_status(artifact.id, ArtifactStatus.draft)
        assert back.status == ArtifactStatus.draft
        assert back.version == 1

    def test_update_missing(self, artifacts):
        with pytest.raises(NotFoundError):
            artifacts.update_artifact_status("artifact_missing", ArtifactStatus.review)

    def test_delete(self, artifacts, artifact, project):
        assert artifacts.delete_artifact(artifact.id)
        assert artifacts.get_artifact(artifact.id) is None
        assert artifacts.get_project_artifacts(project.id) == []
        assert not artifacts.delete_artifact(artifact.id)
