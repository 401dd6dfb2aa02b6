"""
FastAPI dependencies.

Workflow registry and engine construction from settings.
"""

import uuid
from typing import Callable, Dict, List, Optional

from fastapi import HTTPException, status

from shared.config import settings
from shared.logging import get_logger
from shared.project_store import ProjectStore
from shared.retry import ResilientRequestExecutor
from modules.script_tools.uniqueness import UniquenessGuard
from modules.workflow.engine import WorkflowEngine
from modules.workflow.services import (
    HttpVisionService,
    OpenAIScriptService,
    ScriptService,
    SimulatedMediaBackend,
    StubScriptService,
    StubVisionService,
    VisionService,
)

logger = get_logger("api_gateway.dependencies")

EngineFactory = Callable[[str, ProjectStore, UniquenessGuard], WorkflowEngine]


def build_engine(
    workflow_id: str,
    project_store: ProjectStore,
    uniqueness_guard: UniquenessGuard
) -> WorkflowEngine:
    """
    Build an engine wired to the configured services.

    HTTP vision and OpenAI scripting are used when configured, offline
    stand-ins otherwise.
    """
    executor = ResilientRequestExecutor(f"workflow-{workflow_id}")

    vision_service: VisionService
    if settings.vision_service_url:
        vision_service = HttpVisionService(settings.vision_service_url, executor)
    else:
        vision_service = StubVisionService()

    script_service: ScriptService
    if settings.openai_api_key:
        script_service = OpenAIScriptService(settings.openai_api_key)
    else:
        script_service = StubScriptService()

    return WorkflowEngine(
        media_backend=SimulatedMediaBackend(),
        vision_service=vision_service,
        script_service=script_service,
        project_store=project_store,
        executor=executor,
        uniqueness_guard=uniqueness_guard,
        workflow_id=workflow_id,
    )


class WorkflowRegistry:
    """In-memory registry of workflow engines sharing one project store and script history."""

    def __init__(self, engine_factory: Optional[EngineFactory] = None):
        self.engine_factory = engine_factory or build_engine
        self.project_store = ProjectStore()
        self.uniqueness_guard = UniquenessGuard()
        self._engines: Dict[str, WorkflowEngine] = {}

    def create(self) -> WorkflowEngine:
        workflow_id = str(uuid.uuid4())
        engine = self.engine_factory(workflow_id, self.project_store, self.uniqueness_guard)
        self._engines[workflow_id] = engine
        logger.info("Workflow created", extra={"workflow_id": workflow_id})
        return engine

    def get(self, workflow_id: str) -> WorkflowEngine:
        """
        Look up an engine.

        Raises:
            HTTPException: 404 if the workflow is unknown
        """
        engine = self._engines.get(workflow_id)
        if engine is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Workflow not found"
            )
        return engine

    def list(self) -> List[WorkflowEngine]:
        return list(self._engines.values())

    def remove(self, workflow_id: str) -> None:
        engine = self._engines.pop(workflow_id, None)
        if engine is not None:
            engine.events.close()


_registry: Optional[WorkflowRegistry] = None


def get_registry() -> WorkflowRegistry:
    """Process-wide registry (overridden in tests)."""
    global _registry
    if _registry is None:
        _registry = WorkflowRegistry()
    return _registry
