"""
Analyze step.
"""

from typing import Any, Callable, Dict, Optional

from shared.errors import AnalysisError, PipelineError
from shared.logging import get_logger
from shared.models.video import VideoInfo
from shared.project_store import ProjectStore
from modules.workflow.services import VisionService

logger = get_logger("workflow.steps.analyze")


async def execute_analyze_step(
    video_info: Optional[VideoInfo],
    project_id: Optional[str],
    vision_service: VisionService,
    project_store: ProjectStore,
    on_progress: Callable[[int], None]
) -> Dict[str, Any]:
    """
    Run scene and audio analysis for the imported video.

    Args:
        video_info: Imported video
        project_id: Owning project (analysis is stored on it when known)
        vision_service: Analysis backend
        project_store: Project persistence
        on_progress: Overall progress callback (0-100)

    Returns:
        Data delta with video_analysis

    Raises:
        AnalysisError: If there is no video or the analysis fails
    """
    if video_info is None:
        raise AnalysisError("No video to analyze")

    logger.info(f"Analyzing video {video_info.id}")
    try:
        analysis = await vision_service.analyze(video_info)
    except PipelineError:
        raise
    except Exception as e:
        raise AnalysisError(f"Analysis failed for video {video_info.id}: {str(e)}") from e

    on_progress(30)

    if project_id:
        project = project_store.get(project_id)
        if project is not None:
            project.analysis = analysis
            project_store.save(project)

    logger.info(
        "Analysis complete",
        extra={"scenes": len(analysis.scenes), "audio_segments": len(analysis.audio_segments)}
    )
    return {"video_analysis": analysis}
