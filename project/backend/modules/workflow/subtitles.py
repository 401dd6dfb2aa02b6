"""
Subtitle rendering.

SRT generation from a script and its timeline.
"""

from typing import List

from shared.models.script import ScriptData
from shared.models.timeline import TimelineData


def format_srt_time(seconds: float) -> str:
    """Format seconds as HH:MM:SS,mmm."""
    total_ms = int(round(max(seconds, 0.0) * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, ms = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{ms:03d}"


def _cue(index: int, start: float, end: float, text: str) -> str:
    return f"{index}\n{format_srt_time(start)} --> {format_srt_time(end)}\n{text}\n"


def generate_srt(script: ScriptData, timeline: TimelineData) -> str:
    """
    Render SRT subtitles.

    Uses the subtitle track when it has clips; otherwise spreads the script
    segments evenly over the timeline duration.

    Args:
        script: Narration script
        timeline: Assembled timeline

    Returns:
        SRT document
    """
    subtitle_track = timeline.track("subtitle")
    cues: List[str] = []

    if subtitle_track is None or not subtitle_track.clips:
        count = len(script.segments)
        if count == 0:
            return ""
        step = timeline.duration / count
        for index, segment in enumerate(script.segments):
            cues.append(_cue(index + 1, index * step, (index + 1) * step, segment.content))
        return "\n".join(cues)

    by_id = {segment.id: segment for segment in script.segments}
    for index, clip in enumerate(subtitle_track.clips):
        segment = by_id.get(clip.script_segment_id) if clip.script_segment_id else None
        text = segment.content if segment else (clip.text or "")
        cues.append(_cue(index + 1, clip.start_time, clip.end_time, text))
    return "\n".join(cues)
