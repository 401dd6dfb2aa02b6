"""
AI clip step.

Best effort: segmentation failures are logged and leave the data untouched.
"""

from typing import Any, Callable, Dict, Optional

from shared.errors import SegmentationError
from shared.logging import get_logger
from shared.models.script import ScriptData
from shared.models.video import VideoAnalysis
from shared.models.workflow import AIClipConfig
from modules.clip_segmenter.config import ClipConfig
from modules.clip_segmenter.segmenter import ClipSegmentGenerator

logger = get_logger("workflow.steps.ai_clip")


def clip_config_from(config: AIClipConfig) -> ClipConfig:
    """Translate workflow clip options into segmenter options."""
    return ClipConfig(
        detect_scene_change=config.detect_scene_change,
        detect_silence=config.detect_silence,
        silence_threshold=config.silence_threshold,
        remove_silence=config.remove_silence,
        auto_transition=config.auto_transition,
        transition_type=config.transition_type,
        ai_optimize=config.ai_optimize,
        output_quality=config.output_quality,
    )


async def execute_ai_clip_step(
    analysis: Optional[VideoAnalysis],
    script: Optional[ScriptData],
    config: AIClipConfig,
    on_progress: Callable[[int], None],
    segmenter: Optional[ClipSegmentGenerator] = None
) -> Dict[str, Any]:
    """
    Segment the video into edit clips.

    Args:
        analysis: Video analysis
        script: Current script; its segments label the clips positionally
        config: Clip options
        on_progress: Overall progress callback (0-100)
        segmenter: Generator to use (the workflow clip options are applied to it)

    Returns:
        Data delta with clip_result, or an empty delta when segmentation fails
    """
    if analysis is None:
        logger.warning("No analysis available, skipping clip segmentation")
        return {}

    if segmenter is None:
        segmenter = ClipSegmentGenerator(clip_config_from(config))
    else:
        # Options the workflow does not expose keep the segmenter's own values
        segmenter.update_config(**config.model_dump(exclude={"enabled"}))

    try:
        result = segmenter.generate(analysis, script.segments if script else None)
    except SegmentationError as e:
        logger.error("Clip segmentation failed, continuing without clips", exc_info=e)
        return {}

    if config.ai_optimize:
        result = result.model_copy(update={"segments": segmenter.optimize_quality(result.segments)})

    on_progress(68)
    logger.info(
        f"Segmented into {len(result.segments)} clips",
        extra={"total_duration": result.total_duration, "removed_duration": result.removed_duration}
    )
    return {"clip_result": result}
