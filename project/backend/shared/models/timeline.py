"""
Timeline models.

Edit segments, multi-track timelines and export settings.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

TrackType = Literal["video", "audio", "subtitle"]
Quality = Literal["low", "medium", "high", "4k"]


class ClipSegment(BaseModel):
    """
    An edit segment.

    start_time/end_time are positions on the output timeline,
    source_start/source_end are positions on the original media.
    """

    id: str
    start_time: float
    end_time: float
    source_start: float
    source_end: float
    source_id: str
    type: TrackType = "video"
    transition: Optional[str] = None
    effects: Optional[List[str]] = None
    text: Optional[str] = None
    duration: float


class ClipResultMetadata(BaseModel):
    processed_at: str
    config: Dict[str, Any]
    scene_changes: int
    silence_sections: int


class ClipResult(BaseModel):
    """Output of the clip segmentation algorithm."""

    segments: List[ClipSegment] = Field(default_factory=list)
    total_duration: float = 0.0
    removed_duration: float = 0.0
    cut_points: int = 0
    metadata: ClipResultMetadata


class TimelineClip(BaseModel):
    id: str
    start_time: float
    end_time: float
    source_start: float
    source_end: float
    source_id: str
    script_segment_id: Optional[str] = None
    transition: Optional[str] = None
    effects: List[str] = Field(default_factory=list)
    text: Optional[str] = None


class TimelineTrack(BaseModel):
    id: str
    type: TrackType
    clips: List[TimelineClip] = Field(default_factory=list)


class TimelineData(BaseModel):
    """Multi-track edit timeline."""

    tracks: List[TimelineTrack] = Field(default_factory=list)
    duration: float = 0.0

    def track(self, track_type: TrackType) -> Optional[TimelineTrack]:
        return next((t for t in self.tracks if t.type == track_type), None)


class ExportSettings(BaseModel):
    """Output encoding settings."""

    format: Literal["mp4", "webm", "mov"] = "mp4"
    quality: Quality = "high"
    resolution: str = "1080p"
    fps: int = 30
    bitrate: str = "8M"
    include_subtitles: bool = True
