"""
Workflow models.

Pipeline steps, state, accumulated data, per-run configuration and events.
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from shared.models.script import AIModel, ScriptData, ScriptTemplate, utc_now
from shared.models.timeline import ClipResult, ExportSettings, Quality, TimelineData
from shared.models.video import VideoAnalysis, VideoInfo


class WorkflowStep(str, Enum):
    UPLOAD = "upload"
    ANALYZE = "analyze"
    TEMPLATE_SELECT = "template-select"
    SCRIPT_GENERATE = "script-generate"
    SCRIPT_DEDUP = "script-dedup"
    UNIQUENESS = "uniqueness"
    SCRIPT_EDIT = "script-edit"
    AI_CLIP = "ai-clip"
    TIMELINE = "timeline"
    PREVIEW = "preview"
    EXPORT = "export"


# Fixed progress checkpoint per step
STEP_PROGRESS: Dict[WorkflowStep, int] = {
    WorkflowStep.UPLOAD: 0,
    WorkflowStep.ANALYZE: 20,
    WorkflowStep.TEMPLATE_SELECT: 35,
    WorkflowStep.SCRIPT_GENERATE: 40,
    WorkflowStep.SCRIPT_DEDUP: 50,
    WorkflowStep.UNIQUENESS: 55,
    WorkflowStep.SCRIPT_EDIT: 60,
    WorkflowStep.AI_CLIP: 65,
    WorkflowStep.TIMELINE: 70,
    WorkflowStep.PREVIEW: 90,
    WorkflowStep.EXPORT: 95,
}

# Execution order
STEP_ORDER: List[WorkflowStep] = list(STEP_PROGRESS)


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class DuplicateFinding(BaseModel):
    kind: Literal["exact", "semantic", "template"]
    text: str
    segment_ids: List[str] = Field(default_factory=list)
    similarity: float = 1.0


class OriginalityReport(BaseModel):
    score: float = Field(ge=0, le=100)
    duplicates: List[DuplicateFinding] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class ScriptFingerprint(BaseModel):
    hash: str
    terms: Dict[str, int] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now)


class UniquenessCheck(BaseModel):
    is_unique: bool
    similarity: float
    suggestions: List[str] = Field(default_factory=list)


class UniquenessHistory(BaseModel):
    total_scripts: int
    recent_scripts: int


class UniquenessReport(BaseModel):
    fingerprint: ScriptFingerprint
    check: UniquenessCheck
    history: UniquenessHistory


class WorkflowData(BaseModel):
    """Accumulated stage outputs. Fields are only ever added."""

    project_id: Optional[str] = None
    video_info: Optional[VideoInfo] = None
    video_analysis: Optional[VideoAnalysis] = None
    selected_template: Optional[ScriptTemplate] = None
    generated_script: Optional[ScriptData] = None
    deduped_script: Optional[ScriptData] = None
    unique_script: Optional[ScriptData] = None
    edited_script: Optional[ScriptData] = None
    clip_result: Optional[ClipResult] = None
    timeline: Optional[TimelineData] = None
    export_settings: Optional[ExportSettings] = None
    exported_path: Optional[str] = None
    originality_report: Optional[OriginalityReport] = None
    uniqueness_report: Optional[UniquenessReport] = None

    def current_script(self) -> Optional[ScriptData]:
        """Most refined script available: edited, unique, deduped, then generated."""
        return (
            self.edited_script
            or self.unique_script
            or self.deduped_script
            or self.generated_script
        )


class WorkflowState(BaseModel):
    step: WorkflowStep = WorkflowStep.UPLOAD
    progress: int = Field(default=0, ge=0, le=100)
    status: WorkflowStatus = WorkflowStatus.IDLE
    error: Optional[str] = None
    data: WorkflowData = Field(default_factory=WorkflowData)


class ScriptParams(BaseModel):
    style: str = "informative"
    tone: str = "friendly"
    length: Literal["short", "medium", "long"] = "medium"
    target_audience: str = "general"
    language: str = "en"


class DedupConfig(BaseModel):
    enabled: bool = True
    auto_fix: bool = True
    threshold: float = Field(default=0.7, ge=0, le=1)
    auto_variant: bool = True


class UniquenessConfig(BaseModel):
    enabled: bool = True
    auto_rewrite: bool = True
    similarity_threshold: float = Field(default=0.3, ge=0, le=1)
    add_randomness: bool = True
    max_rewrite_attempts: int = Field(default=3, ge=0)


class AIClipConfig(BaseModel):
    enabled: bool = False
    detect_scene_change: bool = True
    detect_silence: bool = True
    remove_silence: bool = True
    silence_threshold: float = -40.0
    auto_transition: bool = True
    transition_type: Literal["fade", "cut", "dissolve"] = "fade"
    ai_optimize: bool = True
    output_quality: Quality = "high"


class WorkflowConfig(BaseModel):
    """Every option recognised by the workflow engine."""

    auto_analyze: bool = True
    auto_generate_script: bool = True
    auto_dedup: bool = True
    enforce_uniqueness: bool = True
    pause_for_script_edit: bool = False
    preferred_template: Optional[str] = None
    model: AIModel = Field(default_factory=AIModel)
    script_params: ScriptParams = Field(default_factory=ScriptParams)
    dedup_config: DedupConfig = Field(default_factory=DedupConfig)
    uniqueness_config: UniquenessConfig = Field(default_factory=UniquenessConfig)
    ai_clip_config: AIClipConfig = Field(default_factory=AIClipConfig)
    auto_export: bool = False
    export_settings: Optional[ExportSettings] = None


def default_workflow_config(**overrides: Any) -> WorkflowConfig:
    """Build a WorkflowConfig with defaults, applying top-level overrides."""
    return WorkflowConfig(**overrides)


class WorkflowEvent(BaseModel):
    """A state change published on the workflow event stream."""

    type: Literal["step_change", "progress", "status_change", "error", "complete", "cancelled"]
    workflow_id: str
    step: WorkflowStep
    progress: int
    status: WorkflowStatus
    message: Optional[str] = None
    timestamp: str = Field(default_factory=utc_now)
