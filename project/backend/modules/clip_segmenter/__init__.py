"""
Clip Segmenter Module.

Convert scene-change points and silence windows into a packed, transition-tagged edit timeline.
"""

from modules.clip_segmenter.config import ClipConfig, default_clip_config, EXPORT_PRESETS
from modules.clip_segmenter.segmenter import ClipSegmentGenerator
from shared.errors import SegmentationError

__all__ = [
    "ClipConfig",
    "ClipSegmentGenerator",
    "EXPORT_PRESETS",
    "SegmentationError",
    "default_clip_config",
]
