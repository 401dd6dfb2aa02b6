"""
Pytest configuration and fixtures for API Gateway tests.
"""

import pytest
from fastapi.testclient import TestClient

from modules.workflow.engine import WorkflowEngine
from modules.workflow.services import SimulatedMediaBackend, StubScriptService, StubVisionService
from api_gateway.dependencies import WorkflowRegistry, get_registry
from api_gateway.main import app


@pytest.fixture
def video_file(tmp_path):
    """Small fake video file."""
    path = tmp_path / "harbour_walk.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return path


@pytest.fixture
def registry(tmp_path):
    """Registry whose engines run offline with no encode delay."""
    def offline_engine(workflow_id, project_store, uniqueness_guard):
        return WorkflowEngine(
            media_backend=SimulatedMediaBackend(step_delay=0, default_duration=90.0),
            vision_service=StubVisionService(scene_length=30),
            script_service=StubScriptService(),
            project_store=project_store,
            uniqueness_guard=uniqueness_guard,
            export_dir=tmp_path / "exports",
            workflow_id=workflow_id,
        )

    return WorkflowRegistry(engine_factory=offline_engine)


@pytest.fixture
def client(registry):
    """Test client with the offline registry injected."""
    app.dependency_overrides[get_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def create_workflow(client, video_file):
    """Create a workflow through the API and return its ID."""
    def create(config=None, video_path=None):
        response = client.post("/api/v1/workflows", json={
            "project_id": "harbour",
            "video_path": str(video_path or video_file),
            "config": config,
        })
        assert response.status_code == 202
        return response.json()["workflow_id"]

    return create
