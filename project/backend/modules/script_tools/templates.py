"""
Script template library.

Built-in narration structures and template recommendation from video analysis.
"""

from typing import List, Optional, Sequence

from pydantic import BaseModel, Field

from shared.logging import get_logger
from shared.models.script import ScriptTemplate, TemplateSection
from shared.models.video import VideoAnalysis

logger = get_logger("script_tools")


class SectionPlan(BaseModel):
    """A template section sized for a specific video."""

    section: TemplateSection
    topic: str
    target_seconds: float
    keywords: List[str] = Field(default_factory=list)


def _section(id, name, type, duration, words, content, tips=()):
    return TemplateSection(
        id=id,
        name=name,
        type=type,
        duration=duration,
        target_word_count=words,
        content=content,
        tips=list(tips),
    )


BUILTIN_TEMPLATES: List[ScriptTemplate] = [
    ScriptTemplate(
        id="commentary",
        name="Commentary",
        description="Hook, context, commentary body and a closing call to action",
        category="general",
        structure=[
            _section("hook", "Hook", "hook", 0.1, 30, "Open with the most striking moment",
                     ["Ask a question or state a surprising fact"]),
            _section("intro", "Context", "intro", 0.2, 60, "Explain what the viewer is watching"),
            _section("body", "Commentary", "body", 0.55, 160, "Walk through the key moments",
                     ["Reference what is on screen", "Keep sentences short"]),
            _section("cta", "Call to action", "cta", 0.15, 40, "Invite the viewer to follow for more"),
        ],
    ),
    ScriptTemplate(
        id="highlights",
        name="Highlights reel",
        description="Fast-paced narration over many short scenes",
        category="highlights",
        structure=[
            _section("hook", "Cold open", "hook", 0.15, 25, "Tease the best highlight"),
            _section("body", "Highlights", "body", 0.7, 120, "Call out each highlight as it happens",
                     ["One sentence per cut"]),
            _section("conclusion", "Wrap-up", "conclusion", 0.15, 30, "Name the standout moment"),
        ],
    ),
    ScriptTemplate(
        id="tutorial",
        name="Tutorial",
        description="Step-by-step explanation for longer footage",
        category="education",
        structure=[
            _section("intro", "Goal", "intro", 0.1, 50, "State what the viewer will learn"),
            _section("body", "Steps", "body", 0.75, 260, "Explain each step in order",
                     ["Number the steps", "Mention common mistakes"]),
            _section("conclusion", "Recap", "conclusion", 0.15, 60, "Summarize the steps"),
        ],
    ),
    ScriptTemplate(
        id="story",
        name="Story",
        description="Narrative arc with setup, turn and resolution",
        category="story",
        structure=[
            _section("intro", "Setup", "intro", 0.25, 70, "Introduce the people and place"),
            _section("turn", "Turning point", "body", 0.45, 120, "Describe the change or conflict"),
            _section("resolution", "Resolution", "conclusion", 0.3, 80, "Close the story"),
        ],
    ),
]


def get_template(template_id: str) -> Optional[ScriptTemplate]:
    """Look up a built-in template by ID."""
    return next((t for t in BUILTIN_TEMPLATES if t.id == template_id), None)


def recommend_templates(analysis: VideoAnalysis) -> List[ScriptTemplate]:
    """
    Rank templates for a video.

    Dense cutting favours highlights, long footage favours tutorials, everything
    else defaults to commentary.

    Args:
        analysis: Video analysis

    Returns:
        All built-in templates, best match first
    """
    minutes = max(analysis.duration / 60.0, 1e-6)
    scenes_per_minute = len(analysis.scenes) / minutes

    if scenes_per_minute >= 6:
        preferred = "highlights"
    elif analysis.duration >= 300:
        preferred = "tutorial"
    else:
        preferred = "commentary"

    logger.debug(
        f"Recommending '{preferred}' template",
        extra={"scenes_per_minute": round(scenes_per_minute, 2), "duration": analysis.duration}
    )
    return sorted(BUILTIN_TEMPLATES, key=lambda t: t.id != preferred)


def apply_template(
    template: ScriptTemplate,
    topic: str,
    duration: float,
    keywords: Sequence[str] = ()
) -> List[SectionPlan]:
    """
    Size each template section for a video.

    Args:
        template: Template to apply
        topic: Video topic (usually its name)
        duration: Video duration in seconds
        keywords: Tags detected in the video

    Returns:
        One SectionPlan per template section
    """
    unique_keywords = list(dict.fromkeys(k for k in keywords if k))
    return [
        SectionPlan(
            section=section,
            topic=topic,
            target_seconds=round(section.duration * duration, 2),
            keywords=unique_keywords,
        )
        for section in template.structure
    ]
