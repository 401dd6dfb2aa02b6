"""
Pytest configuration and fixtures for clip segmenter tests.
"""

import pytest

from shared.models.script import ScriptSegment
from shared.models.video import AudioSegment, Scene, VideoAnalysis


@pytest.fixture
def three_scene_analysis():
    """90 second video, scenes at 0/30/60, one quiet stretch at 28-32s."""
    return VideoAnalysis(
        video_id="video_1",
        duration=90.0,
        scenes=[
            Scene(start_time=0, end_time=30, score=0.9),
            Scene(start_time=30, end_time=60, score=0.7),
            Scene(start_time=60, end_time=90),
        ],
        audio_segments=[
            AudioSegment(start_time=0, end_time=28, volume=-12),
            AudioSegment(start_time=28, end_time=32, volume=-50),
            AudioSegment(start_time=32, end_time=90, volume=-15),
        ],
    )


@pytest.fixture
def narration():
    return [
        ScriptSegment(id="seg-1", content="Opening line."),
        ScriptSegment(id="seg-2", content="Middle line."),
        ScriptSegment(id="seg-3", content="Closing line."),
    ]
