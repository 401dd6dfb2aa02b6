"""
Workflow endpoints.

Create, inspect and control workflow runs.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, status
from pydantic import BaseModel

from shared.errors import PipelineError, WorkflowStateError
from shared.logging import get_logger
from shared.models.script import ScriptData
from shared.models.timeline import ExportSettings
from shared.models.workflow import WorkflowConfig, WorkflowStatus, WorkflowStep
from modules.workflow.engine import WorkflowEngine
from api_gateway.dependencies import WorkflowRegistry, get_registry

logger = get_logger("api_gateway.workflows")

router = APIRouter()


class CreateWorkflowRequest(BaseModel):
    project_id: str
    video_path: str
    config: Optional[WorkflowConfig] = None


class ProceedRequest(BaseModel):
    config: Optional[WorkflowConfig] = None


class JumpRequest(BaseModel):
    step: WorkflowStep


def workflow_response(engine: WorkflowEngine) -> Dict[str, Any]:
    return {"workflow_id": engine.workflow_id, **engine.get_state().model_dump(mode="json")}


async def run_workflow(engine: WorkflowEngine, project_id: str, video_path: str,
                       config: Optional[WorkflowConfig]) -> None:
    """Background runner; failures are recorded on the engine state."""
    try:
        await engine.start(project_id, video_path, config)
    except PipelineError as e:
        logger.warning(f"Workflow run failed: {e.message}", extra={"workflow_id": engine.workflow_id})
    except Exception as e:
        logger.error("Workflow run crashed", exc_info=e, extra={"workflow_id": engine.workflow_id})


async def proceed_workflow(engine: WorkflowEngine, config: Optional[WorkflowConfig]) -> None:
    try:
        await engine.proceed(config)
    except PipelineError as e:
        logger.warning(f"Workflow proceed failed: {e.message}", extra={"workflow_id": engine.workflow_id})
    except Exception as e:
        logger.error("Workflow proceed crashed", exc_info=e, extra={"workflow_id": engine.workflow_id})


@router.post("/workflows", status_code=status.HTTP_202_ACCEPTED)
async def create_workflow(
    body: CreateWorkflowRequest,
    background_tasks: BackgroundTasks,
    registry: WorkflowRegistry = Depends(get_registry)
):
    """
    Create a workflow and start it in the background.

    Progress is available from GET /workflows/{id} or the SSE stream.
    """
    engine = registry.create()
    background_tasks.add_task(run_workflow, engine, body.project_id, body.video_path, body.config)
    return workflow_response(engine)


@router.get("/workflows")
async def list_workflows(registry: WorkflowRegistry = Depends(get_registry)):
    workflows = [workflow_response(engine) for engine in registry.list()]
    return {"workflows": workflows, "total": len(workflows)}


@router.get("/workflows/{workflow_id}")
async def get_workflow(
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    return workflow_response(registry.get(workflow_id))


@router.post("/workflows/{workflow_id}/pause")
async def pause_workflow(
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    engine = registry.get(workflow_id)
    engine.pause()
    return workflow_response(engine)


@router.post("/workflows/{workflow_id}/resume")
async def resume_workflow(
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    engine = registry.get(workflow_id)
    engine.resume()
    return workflow_response(engine)


@router.post("/workflows/{workflow_id}/cancel")
async def cancel_workflow(
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    engine = registry.get(workflow_id)
    engine.cancel()
    return workflow_response(engine)


@router.post("/workflows/{workflow_id}/reset")
async def reset_workflow(
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    engine = registry.get(workflow_id)
    engine.reset()
    return workflow_response(engine)


@router.delete("/workflows/{workflow_id}")
async def delete_workflow(
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    """Cancel any run in flight, close the event stream and forget the workflow."""
    engine = registry.get(workflow_id)
    if engine.is_running:
        engine.cancel()
    registry.remove(workflow_id)
    logger.info(f"Deleted workflow {workflow_id}")
    return {"workflow_id": workflow_id, "deleted": True}


@router.post("/workflows/{workflow_id}/proceed", status_code=status.HTTP_202_ACCEPTED)
async def proceed(
    background_tasks: BackgroundTasks,
    body: Optional[ProceedRequest] = None,
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    """Continue a workflow halted at a gate."""
    engine = registry.get(workflow_id)
    if engine.is_running or engine.state.status != WorkflowStatus.RUNNING:
        raise WorkflowStateError(
            f"Cannot proceed from status '{engine.state.status.value}'",
            workflow_id=workflow_id
        )
    background_tasks.add_task(proceed_workflow, engine, body.config if body else None)
    return workflow_response(engine)


@router.post("/workflows/{workflow_id}/jump")
async def jump(
    body: JumpRequest,
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    engine = registry.get(workflow_id)
    engine.jump_to_step(body.step)
    return workflow_response(engine)


@router.post("/workflows/{workflow_id}/script")
async def edit_script(
    script: ScriptData,
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    engine = registry.get(workflow_id)
    engine.step_edit_script(script)
    return workflow_response(engine)


@router.post("/workflows/{workflow_id}/export")
async def export(
    export_settings: Optional[ExportSettings] = None,
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    """Export the assembled timeline and wait for the result."""
    engine = registry.get(workflow_id)
    path = await engine.step_export(export_settings)
    return {"exported_path": path, **workflow_response(engine)}
