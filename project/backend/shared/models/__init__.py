"""
Data models for the video creation workflow.

This module exports all Pydantic models used across workflow modules.
"""

from shared.models.video import VideoInfo, Scene, AudioSegment, VideoAnalysis
from shared.models.script import (
    AIModel,
    ScriptData,
    ScriptSegment,
    ScriptTemplate,
    TemplateSection,
)
from shared.models.timeline import (
    ClipResult,
    ClipResultMetadata,
    ClipSegment,
    ExportSettings,
    TimelineClip,
    TimelineData,
    TimelineTrack,
)
from shared.models.workflow import (
    STEP_ORDER,
    STEP_PROGRESS,
    AIClipConfig,
    DedupConfig,
    DuplicateFinding,
    OriginalityReport,
    ScriptFingerprint,
    ScriptParams,
    UniquenessCheck,
    UniquenessConfig,
    UniquenessHistory,
    UniquenessReport,
    WorkflowConfig,
    WorkflowData,
    WorkflowEvent,
    WorkflowState,
    WorkflowStatus,
    WorkflowStep,
    default_workflow_config,
)

__all__ = [
    # Video models
    "VideoInfo",
    "Scene",
    "AudioSegment",
    "VideoAnalysis",
    # Script models
    "AIModel",
    "ScriptData",
    "ScriptSegment",
    "ScriptTemplate",
    "TemplateSection",
    # Timeline models
    "ClipResult",
    "ClipResultMetadata",
    "ClipSegment",
    "ExportSettings",
    "TimelineClip",
    "TimelineData",
    "TimelineTrack",
    # Workflow models
    "STEP_ORDER",
    "STEP_PROGRESS",
    "AIClipConfig",
    "DedupConfig",
    "DuplicateFinding",
    "OriginalityReport",
    "ScriptFingerprint",
    "ScriptParams",
    "UniquenessCheck",
    "UniquenessConfig",
    "UniquenessHistory",
    "UniquenessReport",
    "WorkflowConfig",
    "WorkflowData",
    "WorkflowEvent",
    "WorkflowState",
    "WorkflowStatus",
    "WorkflowStep",
    "default_workflow_config",
]
