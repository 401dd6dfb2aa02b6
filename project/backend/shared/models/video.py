"""
Video models.

Source media metadata and analysis results.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class VideoInfo(BaseModel):
    """Metadata of an imported video."""

    id: str
    name: str
    path: str
    duration: float = Field(ge=0)
    width: int = 0
    height: int = 0
    fps: Optional[float] = None
    size: Optional[int] = None
    format: Optional[str] = None


class Scene(BaseModel):
    """A detected scene; start_time marks a scene change."""

    model_config = ConfigDict(frozen=True)

    start_time: float = Field(ge=0)
    end_time: float = Field(ge=0)
    score: Optional[float] = None
    type: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class AudioSegment(BaseModel):
    """Audio level over a time range (volume in dB)."""

    model_config = ConfigDict(frozen=True)

    start_time: float = Field(ge=0)
    end_time: float = Field(ge=0)
    volume: float


class VideoAnalysis(BaseModel):
    """Scene and audio analysis of a video. Immutable once produced."""

    model_config = ConfigDict(frozen=True)

    video_id: str
    duration: float = Field(ge=0)
    scenes: List[Scene] = Field(default_factory=list)
    audio_segments: List[AudioSegment] = Field(default_factory=list)
