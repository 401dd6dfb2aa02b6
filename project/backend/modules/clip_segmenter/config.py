"""
Segmentation configuration.

Clip detection and output quality options with their fixed export presets.
"""

from typing import Any, Dict, Literal

from pydantic import BaseModel, Field

from shared.models.timeline import Quality


class ClipConfig(BaseModel):
    """Every option recognised by the clip segment generator."""

    # Detection
    detect_scene_change: bool = True
    detect_silence: bool = True
    scene_threshold: float = Field(default=0.3, ge=0, le=1)
    silence_threshold: float = -40.0

    # Editing
    remove_silence: bool = True
    auto_transition: bool = True
    transition_type: Literal["fade", "cut", "dissolve"] = "fade"

    # Optimisation
    ai_optimize: bool = True

    # Output
    output_quality: Quality = "high"
    output_format: Literal["mp4", "webm", "mov"] = "mp4"


def default_clip_config(**overrides: Any) -> ClipConfig:
    """Build a ClipConfig with defaults, applying overrides."""
    return ClipConfig(**overrides)


# quality -> (resolution, bitrate, fps)
EXPORT_PRESETS: Dict[str, Dict[str, Any]] = {
    "low": {"resolution": "720p", "bitrate": "2M", "fps": 24},
    "medium": {"resolution": "1080p", "bitrate": "5M", "fps": 30},
    "high": {"resolution": "1080p", "bitrate": "8M", "fps": 30},
    "4k": {"resolution": "4k", "bitrate": "30M", "fps": 60},
}

# Qualities that get a denoise pass
DENOISE_QUALITIES = ("high", "4k")
