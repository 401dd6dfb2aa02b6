"""
Workflow engine.

Drives one video through upload, analysis, scripting, clipping, timeline and
export, tracking step, progress and status and reporting every change to
callbacks and the event stream.
"""

import asyncio
import random
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from shared.config import settings
from shared.errors import WorkflowCancelledError, WorkflowStateError
from shared.logging import get_logger, set_workflow_id
from shared.models.script import ScriptData, utc_now
from shared.models.timeline import ExportSettings
from shared.models.workflow import (
    STEP_ORDER,
    STEP_PROGRESS,
    WorkflowConfig,
    WorkflowData,
    WorkflowEvent,
    WorkflowState,
    WorkflowStatus,
    WorkflowStep,
    default_workflow_config,
)
from shared.project_store import ProjectStore
from shared.retry import ResilientRequestExecutor
from shared.validation import validate_script
from modules.clip_segmenter.segmenter import ClipSegmentGenerator
from modules.script_tools.uniqueness import UniquenessGuard, vary_script
from modules.workflow.events import WorkflowEventStream
from modules.workflow.services import MediaBackend, ScriptService, VisionService
from modules.workflow.steps import (
    execute_ai_clip_step,
    execute_analyze_step,
    execute_dedup_step,
    execute_export_step,
    execute_script_generate_step,
    execute_template_step,
    execute_timeline_step,
    execute_uniqueness_step,
    execute_upload_step,
)

logger = get_logger("workflow.engine")

# Returned by a stage that stops the run until proceed()
HALT = object()


@dataclass
class WorkflowCallbacks:
    """Optional listeners for state changes."""

    on_step_change: Optional[Callable[[WorkflowStep, WorkflowStep], None]] = None
    on_progress: Optional[Callable[[int], None]] = None
    on_status_change: Optional[Callable[[WorkflowStatus], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_complete: Optional[Callable[[WorkflowData], None]] = None


class WorkflowEngine:
    """
    Single-run workflow state machine.

    One engine handles one run at a time; start(), proceed() and step_export()
    refuse to begin while another run is in flight.
    """

    def __init__(
        self,
        media_backend: MediaBackend,
        vision_service: VisionService,
        script_service: ScriptService,
        project_store: Optional[ProjectStore] = None,
        executor: Optional[ResilientRequestExecutor] = None,
        segmenter: Optional[ClipSegmentGenerator] = None,
        uniqueness_guard: Optional[UniquenessGuard] = None,
        export_dir: Optional[Union[str, Path]] = None,
        workflow_id: Optional[str] = None
    ):
        """
        Initialize engine.

        Args:
            media_backend: Video import / encode backend
            vision_service: Scene and audio analysis
            script_service: Script generation
            project_store: Project persistence (a fresh in-memory store when None)
            executor: Request executor shared with HTTP collaborators
            segmenter: Clip segment generator
            uniqueness_guard: Guard holding the script fingerprint history
            export_dir: Output directory (settings.export_dir when None)
            workflow_id: Identifier used in logs and events
        """
        self.workflow_id = workflow_id or str(uuid.uuid4())
        self.media_backend = media_backend
        self.vision_service = vision_service
        self.script_service = script_service
        self.project_store = project_store or ProjectStore()
        self.executor = executor or ResilientRequestExecutor("workflow")
        self.segmenter = segmenter or ClipSegmentGenerator()
        self.uniqueness_guard = uniqueness_guard or UniquenessGuard()
        self.export_dir = Path(export_dir or settings.export_dir)

        self.events = WorkflowEventStream(self.workflow_id)
        self.callbacks = WorkflowCallbacks()
        self.state = WorkflowState()
        self.config: WorkflowConfig = default_workflow_config()

        self._video_path: Optional[str] = None
        self._in_flight = False
        self._cancel_event = asyncio.Event()
        self._resume_event = asyncio.Event()
        self._resume_event.set()
        self._rng = random.Random()

        self._stages: List[Tuple[WorkflowStep, Callable[[bool], Awaitable[Any]]]] = [
            (WorkflowStep.UPLOAD, self._stage_upload),
            (WorkflowStep.ANALYZE, self._stage_analyze),
            (WorkflowStep.TEMPLATE_SELECT, self._stage_template),
            (WorkflowStep.SCRIPT_GENERATE, self._stage_script_generate),
            (WorkflowStep.SCRIPT_DEDUP, self._stage_dedup),
            (WorkflowStep.UNIQUENESS, self._stage_uniqueness),
            (WorkflowStep.SCRIPT_EDIT, self._stage_script_edit),
            (WorkflowStep.AI_CLIP, self._stage_ai_clip),
            (WorkflowStep.TIMELINE, self._stage_timeline),
            (WorkflowStep.PREVIEW, self._stage_preview),
            (WorkflowStep.EXPORT, self._stage_export),
        ]

    # ------------------------------------------------------------------
    # State and notifications
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """True while a run is in flight (a halted run is not)."""
        return self._in_flight

    def set_callbacks(self, callbacks: WorkflowCallbacks) -> None:
        self.callbacks = callbacks

    def get_state(self) -> WorkflowState:
        """Deep copy of the current state."""
        return self.state.model_copy(deep=True)

    def _notify(self, callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            logger.error("Workflow callback failed", exc_info=e)

    def _publish(self, event_type: str, message: Optional[str] = None) -> None:
        try:
            self.events.publish(WorkflowEvent(
                type=event_type,
                workflow_id=self.workflow_id,
                step=self.state.step,
                progress=self.state.progress,
                status=self.state.status,
                message=message,
            ))
        except Exception as e:
            logger.error("Failed to publish workflow event", exc_info=e)

    def _update_state(
        self,
        step: Optional[WorkflowStep] = None,
        progress: Optional[int] = None,
        status: Optional[WorkflowStatus] = None,
        error: Optional[str] = None,
        force_progress: bool = False
    ) -> None:
        """
        Apply a state change and report it.

        Progress is clamped to 0-100 and never decreases unless forced.
        """
        previous_step = self.state.step
        previous_progress = self.state.progress
        previous_status = self.state.status

        if step is not None:
            self.state.step = WorkflowStep(step)
        if progress is not None:
            progress = int(min(100, max(0, progress)))
            if not force_progress:
                progress = max(progress, self.state.progress)
            self.state.progress = progress
        if status is not None:
            self.state.status = WorkflowStatus(status)
        if error is not None:
            self.state.error = error

        if self.state.step != previous_step:
            logger.info(f"Step {previous_step.value} -> {self.state.step.value}")
            self._notify(self.callbacks.on_step_change, self.state.step, previous_step)
            self._publish("step_change")
        if self.state.progress != previous_progress:
            self._notify(self.callbacks.on_progress, self.state.progress)
            self._publish("progress")
        if self.state.status != previous_status:
            logger.info(f"Status {previous_status.value} -> {self.state.status.value}")
            self._notify(self.callbacks.on_status_change, self.state.status)
            self._publish("status_change")

    def _report_progress(self, progress: int) -> None:
        # Stages still finishing after cancel or reset must not touch the new state
        if self._cancel_event.is_set():
            return
        self._update_state(progress=progress)

    def _merge(self, delta: Dict[str, Any]) -> None:
        """Merge a stage's output into the accumulated data."""
        if self._cancel_event.is_set():
            raise WorkflowCancelledError(workflow_id=self.workflow_id)
        for key, value in delta.items():
            setattr(self.state.data, key, value)

    def _enter(self, step: WorkflowStep) -> None:
        if self._cancel_event.is_set():
            raise WorkflowCancelledError(workflow_id=self.workflow_id)
        self._update_state(step=step, progress=STEP_PROGRESS[step])

    async def _checkpoint(self) -> None:
        """Stop when cancelled; wait while paused."""
        if self._cancel_event.is_set():
            raise WorkflowCancelledError(workflow_id=self.workflow_id)
        if not self._resume_event.is_set():
            logger.info(f"Paused before {self.state.step.value}")
            await self._resume_event.wait()
            if self._cancel_event.is_set():
                raise WorkflowCancelledError(workflow_id=self.workflow_id)

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    async def start(
        self,
        project_id: str,
        video_path: str,
        config: Optional[WorkflowConfig] = None
    ) -> None:
        """
        Run the workflow for a video.

        Returns when the run completes, halts at a gate or is cancelled.

        Args:
            project_id: Owning project
            video_path: Source video path
            config: Run options (defaults when None)

        Raises:
            WorkflowStateError: If a run is already in flight
            PipelineError: Any stage failure, after the state is set to error
        """
        if self._in_flight:
            raise WorkflowStateError("Workflow is already running", workflow_id=self.workflow_id)

        self.config = config or default_workflow_config()
        self._video_path = video_path
        self._cancel_event.clear()
        self._resume_event.set()

        self.state.data = WorkflowData(project_id=project_id)
        self.state.error = None
        self._update_state(
            step=WorkflowStep.UPLOAD,
            progress=0,
            status=WorkflowStatus.RUNNING,
            force_progress=True,
        )
        await self._run(0, resumed=False)

    async def proceed(self, config: Optional[WorkflowConfig] = None) -> None:
        """
        Continue a run that halted at a gate.

        The halted stage runs unconditionally, later gates apply as usual.

        Args:
            config: Replacement run options (the start() options when None)

        Raises:
            WorkflowStateError: If a run is in flight or there is nothing to continue
        """
        if self._in_flight:
            raise WorkflowStateError("Workflow is already running", workflow_id=self.workflow_id)
        if self.state.status != WorkflowStatus.RUNNING or self._video_path is None:
            raise WorkflowStateError(
                f"Cannot proceed from status '{self.state.status.value}'",
                workflow_id=self.workflow_id
            )

        if config is not None:
            self.config = config
        self._cancel_event.clear()
        self._resume_event.set()
        await self._run(STEP_ORDER.index(self.state.step), resumed=True)

    async def _run(self, start_index: int, resumed: bool) -> None:
        self._in_flight = True
        set_workflow_id(self.workflow_id)
        try:
            for index in range(start_index, len(self._stages)):
                step, stage = self._stages[index]
                await self._checkpoint()
                outcome = await stage(resumed and index == start_index)
                if outcome is HALT:
                    logger.info(f"Halted at {step.value}, waiting for proceed")
                    return

            await self._checkpoint()
            self._update_state(step=WorkflowStep.EXPORT, progress=100, status=WorkflowStatus.COMPLETED)
            self._publish("complete")
            self._notify(self.callbacks.on_complete, self.state.data.model_copy(deep=True))
            logger.info("Workflow completed")

        except WorkflowCancelledError:
            logger.info(f"Workflow cancelled at {self.state.step.value}")
            self._update_state(status=WorkflowStatus.IDLE)
            self._publish("cancelled")

        except Exception as e:
            if self._cancel_event.is_set():
                logger.info("Stage failed after cancel, ignoring", exc_info=e)
                return
            message = str(e)
            logger.error(f"Workflow failed at {self.state.step.value}", exc_info=e)
            self._update_state(status=WorkflowStatus.ERROR, error=message)
            self._notify(self.callbacks.on_error, message)
            self._publish("error", message)
            raise

        finally:
            self._in_flight = False

    def pause(self) -> None:
        """Pause at the next checkpoint."""
        if self.state.status != WorkflowStatus.RUNNING:
            logger.warning(f"Cannot pause from status '{self.state.status.value}'")
            return
        self._resume_event.clear()
        self._update_state(status=WorkflowStatus.PAUSED)

    def resume(self) -> None:
        if self.state.status != WorkflowStatus.PAUSED:
            logger.warning(f"Cannot resume from status '{self.state.status.value}'")
            return
        self._resume_event.set()
        self._update_state(status=WorkflowStatus.RUNNING)

    def cancel(self) -> None:
        """Stop the current run; long operations observe the cancel token."""
        self._cancel_event.set()
        self._resume_event.set()
        self._update_state(status=WorkflowStatus.IDLE)
        if not self._in_flight:
            # A halted run cannot be continued after cancel
            self._video_path = None
            self._publish("cancelled")

    def reset(self) -> None:
        """Discard all state. A run in flight is cancelled."""
        if self._in_flight:
            self._cancel_event.set()
            self._resume_event.set()
        self._video_path = None
        previous_status = self.state.status
        self.state = WorkflowState()
        if previous_status != self.state.status:
            self._notify(self.callbacks.on_status_change, self.state.status)
        self._publish("status_change", "reset")

    def jump_to_step(self, step: Union[WorkflowStep, str]) -> None:
        """
        Move to a step and its checkpoint progress without running anything.

        Raises:
            ValueError: For an unknown step
        """
        step = WorkflowStep(step)
        self._update_state(step=step, progress=STEP_PROGRESS[step], force_progress=True)

    # ------------------------------------------------------------------
    # Manual steps
    # ------------------------------------------------------------------

    def step_edit_script(self, script: ScriptData) -> ScriptData:
        """
        Store a user-edited script.

        Args:
            script: Edited script

        Returns:
            The stored script

        Raises:
            ValidationError: If the script has no usable segment
        """
        validate_script(script)
        edited = script.model_copy(update={"updated_at": utc_now()})

        self._update_state(
            step=WorkflowStep.SCRIPT_EDIT,
            progress=STEP_PROGRESS[WorkflowStep.SCRIPT_EDIT],
            force_progress=True,
        )

        project_id = self.state.data.project_id
        if project_id:
            project = self.project_store.get(project_id) or self.project_store.create(project_id)
            project.scripts = [s for s in project.scripts if s.id != edited.id] + [edited]
            self.project_store.save(project)

        self.state.data.edited_script = edited
        self._update_state(progress=70)
        return edited

    async def step_export(self, export_settings: Optional[ExportSettings] = None) -> str:
        """
        Export the assembled timeline.

        Args:
            export_settings: Output settings (preset for the clip quality when None)

        Returns:
            Path of the exported video

        Raises:
            WorkflowStateError: If a run is in flight or no timeline exists
            WorkflowCancelledError: If the export is cancelled
        """
        if self._in_flight:
            raise WorkflowStateError("Workflow is already running", workflow_id=self.workflow_id)
        if self.state.data.timeline is None or self.state.data.video_info is None:
            raise WorkflowStateError("Nothing to export, build a timeline first", workflow_id=self.workflow_id)

        self._in_flight = True
        self._cancel_event.clear()
        self._resume_event.set()
        set_workflow_id(self.workflow_id)
        try:
            self._update_state(
                step=WorkflowStep.EXPORT,
                progress=STEP_PROGRESS[WorkflowStep.EXPORT],
                status=WorkflowStatus.RUNNING,
                force_progress=True,
            )
            path = await self._export(export_settings)
            self._update_state(progress=100, status=WorkflowStatus.COMPLETED)
            self._publish("complete")
            self._notify(self.callbacks.on_complete, self.state.data.model_copy(deep=True))
            return path

        except WorkflowCancelledError:
            logger.info("Export cancelled")
            self._update_state(status=WorkflowStatus.IDLE)
            self._publish("cancelled")
            raise

        except Exception as e:
            message = str(e)
            logger.error("Export failed", exc_info=e)
            self._update_state(status=WorkflowStatus.ERROR, error=message)
            self._notify(self.callbacks.on_error, message)
            self._publish("error", message)
            raise

        finally:
            self._in_flight = False

    async def _export(self, export_settings: Optional[ExportSettings]) -> str:
        export_settings = (
            export_settings
            or self.config.export_settings
            or self.segmenter.get_export_settings(self.config.ai_clip_config.output_quality)
        )
        data = self.state.data
        path = await execute_export_step(
            project_id=data.project_id or "project",
            video_info=data.video_info,
            timeline=data.timeline,
            script=data.current_script(),
            export_settings=export_settings,
            media_backend=self.media_backend,
            project_store=self.project_store,
            export_dir=self.export_dir,
            on_progress=self._report_progress,
            cancel_event=self._cancel_event,
        )
        self._merge({"exported_path": path, "export_settings": export_settings})
        return path

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _stage_upload(self, forced: bool) -> None:
        self._enter(WorkflowStep.UPLOAD)
        delta = await execute_upload_step(
            self.state.data.project_id,
            self._video_path,
            self.media_backend,
            self.project_store,
            self._report_progress,
        )
        self._merge(delta)

    async def _stage_analyze(self, forced: bool) -> Any:
        self._enter(WorkflowStep.ANALYZE)
        if not self.config.auto_analyze and not forced:
            return HALT
        delta = await execute_analyze_step(
            self.state.data.video_info,
            self.state.data.project_id,
            self.vision_service,
            self.project_store,
            self._report_progress,
        )
        self._merge(delta)

    async def _stage_template(self, forced: bool) -> None:
        self._enter(WorkflowStep.TEMPLATE_SELECT)
        delta = await execute_template_step(self.state.data.video_analysis, self.config.preferred_template)
        self._merge(delta)

    async def _stage_script_generate(self, forced: bool) -> Any:
        self._enter(WorkflowStep.SCRIPT_GENERATE)
        if not self.config.auto_generate_script and not forced:
            return HALT
        data = self.state.data
        delta = await execute_script_generate_step(
            data.video_info,
            data.video_analysis,
            data.selected_template,
            self.config.model,
            self.config.script_params,
            data.project_id,
            self.script_service,
            self.project_store,
            self._report_progress,
        )
        self._merge(delta)

    async def _stage_dedup(self, forced: bool) -> None:
        if not (self.config.auto_dedup and self.config.dedup_config.enabled):
            return
        self._enter(WorkflowStep.SCRIPT_DEDUP)
        delta = await execute_dedup_step(
            self.state.data.current_script(),
            self.config.dedup_config,
            self._report_progress,
        )
        self._merge(delta)

    async def _stage_uniqueness(self, forced: bool) -> None:
        if not (self.config.enforce_uniqueness and self.config.uniqueness_config.enabled):
            return
        self._enter(WorkflowStep.UNIQUENESS)
        delta = await execute_uniqueness_step(
            self.state.data.current_script(),
            self.uniqueness_guard,
            self.config.uniqueness_config,
            self._report_progress,
            rewrite_fn=self._rewrite_script,
        )
        self._merge(delta)

    async def _rewrite_script(self, script: ScriptData) -> ScriptData:
        return vary_script(script, self._rng)

    async def _stage_script_edit(self, forced: bool) -> Any:
        self._enter(WorkflowStep.SCRIPT_EDIT)
        if self.config.pause_for_script_edit and not forced:
            return HALT

    async def _stage_ai_clip(self, forced: bool) -> None:
        if not self.config.ai_clip_config.enabled:
            return
        self._enter(WorkflowStep.AI_CLIP)
        delta = await execute_ai_clip_step(
            self.state.data.video_analysis,
            self.state.data.current_script(),
            self.config.ai_clip_config,
            self._report_progress,
            segmenter=self.segmenter,
        )
        self._merge(delta)

    async def _stage_timeline(self, forced: bool) -> None:
        self._enter(WorkflowStep.TIMELINE)
        data = self.state.data
        delta = await execute_timeline_step(
            data.video_info,
            data.video_analysis,
            data.current_script(),
            clip_result=data.clip_result,
            segmenter=self.segmenter,
        )
        self._merge(delta)
        self._report_progress(85)

    async def _stage_preview(self, forced: bool) -> None:
        self._enter(WorkflowStep.PREVIEW)

    async def _stage_export(self, forced: bool) -> None:
        if not self.config.auto_export:
            return
        self._enter(WorkflowStep.EXPORT)
        await self._export(None)
