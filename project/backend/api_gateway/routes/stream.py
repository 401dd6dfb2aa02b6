"""
SSE stream endpoint.

Real-time workflow events via Server-Sent Events.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, status
from fastapi.responses import StreamingResponse

from shared.config import settings
from shared.logging import get_logger
from modules.workflow.engine import WorkflowEngine
from modules.workflow.events import Subscription
from api_gateway.dependencies import WorkflowRegistry, get_registry

logger = get_logger("api_gateway.stream")

router = APIRouter()

# Events after which the stream closes
TERMINAL_EVENTS = {"complete", "error", "cancelled"}


def format_sse(event_type: str, data: str) -> str:
    return f"event: {event_type}\ndata: {data}\n\n"


async def event_generator(
    engine: WorkflowEngine,
    subscription: Subscription,
    heartbeat_interval: Optional[float] = None
) -> AsyncIterator[str]:
    """
    Generate SSE events for a workflow.

    Starts with the current state, then forwards engine events until a terminal
    event or the stream closes. Idle periods produce heartbeats.

    Args:
        engine: Workflow engine
        subscription: Subscription on the engine's event stream
        heartbeat_interval: Idle seconds between heartbeats

    Yields:
        SSE formatted event strings
    """
    interval = heartbeat_interval or settings.sse_heartbeat_interval
    try:
        yield format_sse("state", engine.get_state().model_dump_json(exclude={"data"}))
        logger.info("SSE stream started", extra={"workflow_id": engine.workflow_id})

        while True:
            try:
                event = await subscription.get(timeout=interval)
            except asyncio.TimeoutError:
                heartbeat = {"timestamp": datetime.now(timezone.utc).isoformat()}
                yield format_sse("heartbeat", json.dumps(heartbeat))
                continue

            if event is None:
                break

            yield format_sse(event.type, event.model_dump_json())
            if event.type in TERMINAL_EVENTS:
                break

    finally:
        engine.events.remove_subscriber(subscription)
        logger.info("SSE stream ended", extra={"workflow_id": engine.workflow_id})


@router.get("/workflows/{workflow_id}/stream")
async def stream_events(
    workflow_id: str = Path(...),
    registry: WorkflowRegistry = Depends(get_registry)
):
    """
    SSE stream of workflow events.

    Returns:
        SSE stream response
    """
    engine = registry.get(workflow_id)

    try:
        subscription = engine.events.add_subscriber()
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e)
        )

    return StreamingResponse(
        event_generator(engine, subscription),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"  # Disable buffering for nginx
        }
    )
