"""
Health check endpoint.

Reports service wiring and workflow activity.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from shared.config import settings
from shared.models.workflow import WorkflowStatus
from api_gateway.dependencies import WorkflowRegistry, get_registry

router = APIRouter()


@router.get("/health")
async def health_check(registry: WorkflowRegistry = Depends(get_registry)):
    """
    Health check endpoint.

    Returns:
        Health status with workflow counts and configured services
    """
    engines = registry.list()
    active = sum(
        1 for engine in engines
        if engine.is_running or engine.state.status == WorkflowStatus.PAUSED
    )

    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "workflows": {"total": len(engines), "active": active},
        "services": {
            "vision": "http" if settings.vision_service_url else "stub",
            "script": "openai" if settings.openai_api_key else "stub",
            "media": "simulated",
        },
    }
