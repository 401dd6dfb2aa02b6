"""
Tests for engine construction and the workflow registry.
"""

import pytest
from fastapi import HTTPException

from shared.config import settings
from modules.workflow.services import (
    HttpVisionService,
    OpenAIScriptService,
    SimulatedMediaBackend,
    StubScriptService,
    StubVisionService,
)
from api_gateway.dependencies import WorkflowRegistry, build_engine, get_registry


def test_build_engine_offline(monkeypatch):
    monkeypatch.setattr(settings, "vision_service_url", None)
    monkeypatch.setattr(settings, "openai_api_key", None)
    registry = WorkflowRegistry()

    engine = build_engine("wf-1", registry.project_store, registry.uniqueness_guard)

    assert engine.workflow_id == "wf-1"
    assert isinstance(engine.vision_service, StubVisionService)
    assert isinstance(engine.script_service, StubScriptService)
    assert isinstance(engine.media_backend, SimulatedMediaBackend)
    assert engine.project_store is registry.project_store
    assert engine.uniqueness_guard is registry.uniqueness_guard


def test_build_engine_with_services(monkeypatch):
    monkeypatch.setattr(settings, "vision_service_url", "http://vision.local")
    monkeypatch.setattr(settings, "openai_api_key", "test-key")
    registry = WorkflowRegistry()

    engine = build_engine("wf-2", registry.project_store, registry.uniqueness_guard)

    assert isinstance(engine.vision_service, HttpVisionService)
    assert engine.vision_service.base_url == "http://vision.local"
    assert isinstance(engine.script_service, OpenAIScriptService)


class TestRegistry:
    """Test engine bookkeeping."""

    def test_create_and_get(self, registry):
        engine = registry.create()

        assert registry.get(engine.workflow_id) is engine
        assert registry.list() == [engine]

    def test_unknown_workflow(self, registry):
        with pytest.raises(HTTPException) as exc_info:
            registry.get("missing")

        assert exc_info.value.status_code == 404

    def test_remove_closes_events(self, registry):
        engine = registry.create()
        registry.remove(engine.workflow_id)

        assert registry.list() == []
        with pytest.raises(HTTPException):
            registry.get(engine.workflow_id)
        registry.remove(engine.workflow_id)

    def test_engines_share_store(self, registry):
        first = registry.create()
        second = registry.create()

        assert first.project_store is second.project_store
        assert first.workflow_id != second.workflow_id


def test_get_registry_is_singleton():
    assert get_registry() is get_registry()
