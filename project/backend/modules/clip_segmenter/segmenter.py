"""
Clip segment generation.

Turn scene changes and silence windows into a packed, transition-tagged edit timeline.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from shared.errors import SegmentationError, ValidationError
from shared.logging import get_logger
from shared.models.script import ScriptSegment
from shared.models.timeline import (
    ClipResult,
    ClipResultMetadata,
    ClipSegment,
    ExportSettings,
    TimelineClip,
    TimelineData,
    TimelineTrack,
)
from shared.models.video import VideoAnalysis, VideoInfo

from modules.clip_segmenter.config import (
    DENOISE_QUALITIES,
    EXPORT_PRESETS,
    ClipConfig,
    default_clip_config,
)

logger = get_logger("clip_segmenter")


def _overlaps(window: Dict[str, float], start: float, end: float) -> bool:
    return window["start"] < end and window["end"] > start


class ClipSegmentGenerator:
    """Deterministic single-pass segmentation of a video into edit segments."""

    def __init__(self, config: Optional[ClipConfig] = None):
        """
        Initialize generator.

        Args:
            config: Segmentation options (defaults when None)
        """
        self.config = config or default_clip_config()

    def detect_scenes(self, analysis: VideoAnalysis) -> List[Dict[str, float]]:
        """
        Extract scene change points.

        Args:
            analysis: Video analysis

        Returns:
            Cut points as {"time", "confidence"}, ascending by time
        """
        if not self.config.detect_scene_change:
            return []

        scenes = sorted(analysis.scenes, key=lambda s: s.start_time)
        return [
            {"time": scene.start_time, "confidence": scene.score if scene.score is not None else 0.8}
            for scene in scenes
        ]

    def detect_silence(self, analysis: VideoAnalysis) -> List[Dict[str, float]]:
        """
        Extract silence windows (audio below the silence threshold).

        Args:
            analysis: Video analysis

        Returns:
            Windows as {"start", "end"}
        """
        if not self.config.detect_silence:
            return []

        return [
            {"start": seg.start_time, "end": seg.end_time}
            for seg in analysis.audio_segments
            if seg.volume < self.config.silence_threshold
        ]

    def generate(
        self,
        analysis: VideoAnalysis,
        script_segments: Optional[Sequence[ScriptSegment]] = None
    ) -> ClipResult:
        """
        Build the packed edit timeline for a video.

        Candidates overlapping silence are dropped whole when remove_silence is on;
        survivors are ripple-repacked from 0 while keeping their source positions.

        Args:
            analysis: Video analysis (scenes, audio levels, duration)
            script_segments: Optional narration; segment i is attached to candidate i

        Returns:
            ClipResult with segments and aggregate figures

        Raises:
            SegmentationError: If the analysis has no usable duration
        """
        duration = analysis.duration
        if duration <= 0:
            raise SegmentationError(f"Cannot segment video {analysis.video_id}: duration is {duration}")

        scene_changes = self.detect_scenes(analysis)
        silence_windows = self.detect_silence(analysis)

        # Unique, in-range cut times; a scene starting at 0 adds no empty candidate
        cut_times = sorted({0.0, duration, *(
            min(max(change["time"], 0.0), duration) for change in scene_changes
        )})

        segments: List[ClipSegment] = []
        cursor = 0.0

        for i in range(len(cut_times) - 1):
            start = cut_times[i]
            end = cut_times[i + 1]

            if self.config.remove_silence and any(_overlaps(w, start, end) for w in silence_windows):
                logger.debug(f"Dropping candidate [{start:.2f}, {end:.2f}) overlapping silence")
                continue

            length = end - start
            segment = ClipSegment(
                id=str(uuid.uuid4()),
                start_time=cursor,
                end_time=cursor + length,
                source_start=start,
                source_end=end,
                source_id=analysis.video_id or "source",
                type="video",
                duration=length,
            )

            # Positional: candidate index, not index among survivors
            if script_segments and i < len(script_segments):
                segment.text = script_segments[i].content

            segments.append(segment)
            cursor += length

        segments = self.apply_transitions(segments)

        result = ClipResult(
            segments=segments,
            total_duration=sum(s.duration for s in segments),
            removed_duration=sum(w["end"] - w["start"] for w in silence_windows),
            cut_points=len(scene_changes),
            metadata=ClipResultMetadata(
                processed_at=datetime.now(timezone.utc).isoformat(),
                config=self.config.model_dump(),
                scene_changes=len(scene_changes),
                silence_sections=len(silence_windows),
            ),
        )

        logger.info(
            f"Generated {len(segments)} segments from {len(cut_times) - 1} candidates",
            extra={
                "video_id": analysis.video_id,
                "total_duration": result.total_duration,
                "removed_duration": result.removed_duration,
            }
        )
        return result

    def apply_transitions(self, segments: List[ClipSegment]) -> List[ClipSegment]:
        """Tag every segment but the first with the configured transition."""
        if not self.config.auto_transition or len(segments) < 2:
            return segments

        return [
            segment if index == 0 else segment.model_copy(update={"transition": self.config.transition_type})
            for index, segment in enumerate(segments)
        ]

    async def process_video(
        self,
        video_info: VideoInfo,
        analysis_service: Any,
        script_segments: Optional[Sequence[ScriptSegment]] = None
    ) -> ClipResult:
        """
        Analyze a video and segment it.

        Args:
            video_info: Video to process
            analysis_service: Object with an async analyze(video_info) method
            script_segments: Optional narration segments

        Returns:
            ClipResult
        """
        analysis = await analysis_service.analyze(video_info)
        return self.generate(analysis, script_segments)

    def export_timeline(self, segments: Sequence[ClipSegment]) -> TimelineData:
        """
        Partition segments into tracks.

        Args:
            segments: Edit segments

        Returns:
            TimelineData with video, audio (empty) and subtitle tracks
        """
        def to_clip(segment: ClipSegment) -> TimelineClip:
            return TimelineClip(
                id=segment.id,
                start_time=segment.start_time,
                end_time=segment.end_time,
                source_start=segment.source_start,
                source_end=segment.source_end,
                source_id=segment.source_id,
                transition=segment.transition,
                effects=list(segment.effects or []),
                text=segment.text,
            )

        return TimelineData(
            tracks=[
                TimelineTrack(
                    id="video-track-1",
                    type="video",
                    clips=[to_clip(s) for s in segments if s.type == "video"],
                ),
                TimelineTrack(id="audio-track-1", type="audio", clips=[]),
                TimelineTrack(
                    id="subtitle-track-1",
                    type="subtitle",
                    clips=[to_clip(s) for s in segments if s.type == "subtitle"],
                ),
            ],
            duration=max((s.end_time for s in segments), default=0.0),
        )

    def get_export_settings(self, quality: Optional[str] = None) -> ExportSettings:
        """
        Look up encoding settings for a quality level.

        Args:
            quality: low, medium, high or 4k (config.output_quality when None)

        Returns:
            ExportSettings

        Raises:
            ValidationError: For an unknown quality
        """
        quality = quality or self.config.output_quality
        preset = EXPORT_PRESETS.get(quality)
        if preset is None:
            raise ValidationError(
                f"Unknown quality '{quality}'. Must be one of: {list(EXPORT_PRESETS)}"
            )

        return ExportSettings(
            format=self.config.output_format,
            quality=quality,
            resolution=preset["resolution"],
            fps=preset["fps"],
            bitrate=preset["bitrate"],
        )

    def optimize_quality(
        self,
        segments: Sequence[ClipSegment],
        quality: Optional[str] = None
    ) -> List[ClipSegment]:
        """
        Attach quality effects to copies of the segments.

        Args:
            segments: Edit segments (left untouched)
            quality: Quality level (config.output_quality when None)

        Returns:
            New segments with denoise (high/4k) and sharpen appended
        """
        quality = quality or self.config.output_quality
        extra = ["denoise", "sharpen"] if quality in DENOISE_QUALITIES else ["sharpen"]

        return [
            segment.model_copy(update={"effects": [*(segment.effects or []), *extra]})
            for segment in segments
        ]

    def update_config(self, **changes: Any) -> None:
        self.config = self.config.model_copy(update=changes)

    def get_config(self) -> ClipConfig:
        return self.config.model_copy()
