"""
Script models.

Narration scripts, their segments and the templates they are built from.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from shared.config import settings


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ScriptSegment(BaseModel):
    """One narration paragraph."""

    id: str
    start_time: float = 0.0
    end_time: float = 0.0
    content: str = ""
    type: str = "narration"
    notes: Optional[str] = None


class ScriptData(BaseModel):
    """A complete narration script."""

    id: str
    title: str = ""
    content: str = ""
    segments: List[ScriptSegment] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)


class TemplateSection(BaseModel):
    """A section of a script template; duration is a fraction of the video."""

    id: str
    name: str
    type: Literal["hook", "intro", "body", "conclusion", "cta", "transition"]
    duration: float = Field(gt=0, le=1)
    target_word_count: int = Field(gt=0)
    content: str = ""
    tips: List[str] = Field(default_factory=list)


class ScriptTemplate(BaseModel):
    """Reusable script structure."""

    id: str
    name: str
    description: str = ""
    category: str = "general"
    structure: List[TemplateSection] = Field(default_factory=list)


class AIModel(BaseModel):
    """Text model used for script generation."""

    id: str = Field(default_factory=lambda: settings.script_model)
    name: str = "GPT-4o mini"
    provider: str = "openai"
