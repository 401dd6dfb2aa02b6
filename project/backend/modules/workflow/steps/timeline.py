"""
Timeline step.

Assembles the multi-track timeline either from segmented clips or by spreading
the script evenly over the video.
"""

from typing import Any, Dict, List, Optional, Sequence

from shared.errors import WorkflowStateError
from shared.logging import get_logger
from shared.models.script import ScriptData
from shared.models.timeline import ClipResult, TimelineClip, TimelineData, TimelineTrack
from shared.models.video import Scene, VideoAnalysis, VideoInfo
from modules.clip_segmenter.segmenter import ClipSegmentGenerator

logger = get_logger("workflow.steps.timeline")


def empty_timeline(duration: float) -> TimelineData:
    return TimelineData(
        tracks=[
            TimelineTrack(id="video-track-1", type="video"),
            TimelineTrack(id="audio-track-1", type="audio"),
            TimelineTrack(id="subtitle-track-1", type="subtitle"),
        ],
        duration=duration,
    )


def nearest_scene(scenes: Sequence[Scene], position: float) -> Optional[Scene]:
    """
    Scene whose midpoint is closest to a relative position in the video.

    Args:
        scenes: Detected scenes
        position: Relative position, 0.0-1.0

    Returns:
        Closest scene, or None without scenes
    """
    if not scenes:
        return None
    target = position * max(scene.end_time for scene in scenes)
    return min(scenes, key=lambda scene: abs((scene.start_time + scene.end_time) / 2 - target))


def timeline_from_script(
    video_info: VideoInfo,
    analysis: Optional[VideoAnalysis],
    script: ScriptData
) -> TimelineData:
    """
    Give every script segment an equal slot and the scene nearest to it.

    Args:
        video_info: Source video
        analysis: Video analysis (scene matching is skipped without it)
        script: Narration script

    Returns:
        TimelineData spanning the whole video
    """
    count = len(script.segments)
    if count == 0:
        return empty_timeline(video_info.duration)

    scenes = analysis.scenes if analysis else []
    slot = video_info.duration / count
    video_clips: List[TimelineClip] = []
    subtitle_clips: List[TimelineClip] = []

    for index, segment in enumerate(script.segments):
        start = index * slot
        end = start + slot
        scene = nearest_scene(scenes, index / count)

        video_clips.append(TimelineClip(
            id=f"video-clip-{index}",
            start_time=start,
            end_time=end,
            source_start=scene.start_time if scene else 0.0,
            source_end=scene.end_time if scene else video_info.duration,
            source_id=video_info.id,
            script_segment_id=segment.id,
            transition="fade" if index > 0 else None,
        ))
        subtitle_clips.append(TimelineClip(
            id=f"subtitle-clip-{index}",
            start_time=start,
            end_time=end,
            source_start=0.0,
            source_end=float(len(segment.content)),
            source_id=segment.id,
            script_segment_id=segment.id,
            text=segment.content,
        ))

    timeline = empty_timeline(video_info.duration)
    timeline.tracks[0].clips = video_clips
    timeline.tracks[2].clips = subtitle_clips
    return timeline


def timeline_from_clips(clip_result: ClipResult, segmenter: ClipSegmentGenerator) -> TimelineData:
    """Video track from the clips, subtitle track from the clips that carry narration."""
    subtitles = [
        segment.model_copy(update={"id": f"{segment.id}-subtitle", "type": "subtitle"})
        for segment in clip_result.segments
        if segment.text
    ]
    return segmenter.export_timeline([*clip_result.segments, *subtitles])


async def execute_timeline_step(
    video_info: Optional[VideoInfo],
    analysis: Optional[VideoAnalysis],
    script: Optional[ScriptData],
    clip_result: Optional[ClipResult] = None,
    segmenter: Optional[ClipSegmentGenerator] = None,
    auto_match: bool = True
) -> Dict[str, Any]:
    """
    Build the edit timeline.

    Returns:
        Data delta with timeline
    """
    if video_info is None:
        raise WorkflowStateError("Timeline requires an imported video")

    if clip_result is not None and clip_result.segments:
        timeline = timeline_from_clips(clip_result, segmenter or ClipSegmentGenerator())
        source = "clips"
    elif script is not None and auto_match:
        timeline = timeline_from_script(video_info, analysis, script)
        source = "script"
    else:
        timeline = empty_timeline(video_info.duration)
        source = "empty"

    logger.info(
        f"Timeline built from {source}",
        extra={"duration": timeline.duration, "tracks": len(timeline.tracks)}
    )
    return {"timeline": timeline}
