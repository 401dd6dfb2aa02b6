"""
Workflow Module.

Orchestrates a video from upload to export: stage executors, external
service adapters, the engine and its event stream.
"""

from modules.workflow.engine import WorkflowCallbacks, WorkflowEngine
from modules.workflow.events import Subscription, WorkflowEventStream
from modules.workflow.services import (
    HttpVisionService,
    MediaBackend,
    MediaExportRequest,
    MediaSegment,
    OpenAIScriptService,
    ScriptRequest,
    ScriptService,
    SimulatedMediaBackend,
    StubScriptService,
    StubVisionService,
    VisionService,
)
from modules.workflow.subtitles import format_srt_time, generate_srt

__all__ = [
    "HttpVisionService",
    "MediaBackend",
    "MediaExportRequest",
    "MediaSegment",
    "OpenAIScriptService",
    "ScriptRequest",
    "ScriptService",
    "SimulatedMediaBackend",
    "StubScriptService",
    "StubVisionService",
    "Subscription",
    "VisionService",
    "WorkflowCallbacks",
    "WorkflowEngine",
    "WorkflowEventStream",
    "format_srt_time",
    "generate_srt",
]
