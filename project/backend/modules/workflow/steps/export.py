"""
Export step.

Writes subtitles, renders the timeline through the media backend and records
the export on the project.
"""

import asyncio
import time
import uuid
from pathlib import Path
from typing import Callable, List, Optional, Union

from shared.errors import ExportError, PipelineError, WorkflowStateError
from shared.logging import get_logger
from shared.models.script import ScriptData
from shared.models.timeline import ExportSettings, TimelineData
from shared.models.video import VideoInfo
from shared.project_store import ExportRecord, ProjectStore
from modules.workflow.services import MediaBackend, MediaExportRequest, MediaSegment
from modules.workflow.subtitles import generate_srt

logger = get_logger("workflow.steps.export")


def media_segments(timeline: TimelineData) -> List[MediaSegment]:
    """Source ranges of the video clips plus the subtitle texts, in track order."""
    segments = []
    video = timeline.track("video")
    if video is not None:
        segments.extend(
            MediaSegment(start=clip.source_start, end=clip.source_end, type="video")
            for clip in video.clips
        )
    subtitles = timeline.track("subtitle")
    if subtitles is not None:
        segments.extend(
            MediaSegment(start=clip.start_time, end=clip.end_time, type="subtitle", content=clip.text)
            for clip in subtitles.clips
            if clip.text
        )
    return segments


def first_transition(timeline: TimelineData) -> Optional[str]:
    video = timeline.track("video")
    if video is None:
        return None
    return next((clip.transition for clip in video.clips if clip.transition), None)


async def execute_export_step(
    project_id: str,
    video_info: Optional[VideoInfo],
    timeline: Optional[TimelineData],
    script: Optional[ScriptData],
    export_settings: ExportSettings,
    media_backend: MediaBackend,
    project_store: ProjectStore,
    export_dir: Union[str, Path],
    on_progress: Callable[[int], None],
    cancel_event: Optional[asyncio.Event] = None
) -> str:
    """
    Render the final video.

    Args:
        project_id: Owning project
        video_info: Source video
        timeline: Assembled timeline
        script: Script used for subtitles (none written when None)
        export_settings: Output format, quality and subtitle switch
        media_backend: Backend performing the encode
        project_store: Project persistence
        export_dir: Directory for subtitle and video output
        on_progress: Overall progress callback (0-100)
        cancel_event: Cancellation token polled by the encoder

    Returns:
        Path of the exported video

    Raises:
        WorkflowStateError: If there is no video or timeline
        WorkflowCancelledError: If the encode is cancelled
        ExportError: If the encode fails
    """
    if video_info is None or timeline is None:
        raise WorkflowStateError("Export requires an imported video and a timeline")

    directory = Path(export_dir)
    directory.mkdir(parents=True, exist_ok=True)

    subtitle_path = None
    if export_settings.include_subtitles and script is not None:
        subtitle_file = directory / f"{project_id}_subtitle.srt"
        subtitle_file.write_text(generate_srt(script, timeline), encoding="utf-8")
        subtitle_path = str(subtitle_file)
        logger.info(f"Wrote subtitles to {subtitle_path}")

    output_path = directory / f"{project_id}_{int(time.time() * 1000)}.{export_settings.format}"
    request = MediaExportRequest(
        input_path=video_info.path,
        output_path=str(output_path),
        segments=media_segments(timeline),
        quality=export_settings.quality,
        format=export_settings.format,
        transition=first_transition(timeline),
        add_subtitles=subtitle_path is not None,
        subtitle_path=subtitle_path,
    )

    try:
        exported_path = await media_backend.export_video(
            request,
            lambda fraction: on_progress(int(95 + fraction * 4)),
            cancel_event
        )
    except PipelineError:
        raise
    except Exception as e:
        raise ExportError(f"Export failed for project {project_id}: {str(e)}") from e

    project = project_store.get(project_id) or project_store.create(project_id)
    project.exports.append(ExportRecord(
        id=f"export_{uuid.uuid4().hex[:12]}",
        project_id=project_id,
        format=export_settings.format,
        quality=export_settings.quality,
        resolution=export_settings.resolution,
        file_path=exported_path,
        subtitle_path=subtitle_path,
        total_clips=sum(len(track.clips) for track in timeline.tracks),
        duration=timeline.duration,
    ))
    project_store.save(project)

    logger.info("Export complete", extra={"project_id": project_id, "path": exported_path})
    return exported_path
