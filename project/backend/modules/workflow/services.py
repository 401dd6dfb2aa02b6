"""
External collaborators of the workflow.

Media backend, vision analysis and script generation interfaces with their
HTTP / OpenAI implementations and offline stand-ins.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Literal, Optional

import openai
from openai import OpenAI
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from shared.config import settings
from shared.errors import (
    HTTP_ERROR,
    NETWORK_ERROR,
    TIMEOUT,
    AnalysisError,
    ScriptGenerationError,
    ServiceError,
    WorkflowCancelledError,
)
from shared.logging import get_logger
from shared.models.script import AIModel, ScriptData, ScriptSegment, utc_now
from shared.models.video import Scene, VideoAnalysis, VideoInfo
from shared.retry import ResilientRequestExecutor, retry_with_backoff
from modules.script_tools.templates import SectionPlan

logger = get_logger("workflow.services")

ProgressFn = Callable[[float], None]


# ---------------------------------------------------------------------------
# Media backend
# ---------------------------------------------------------------------------

class MediaSegment(BaseModel):
    start: float
    end: float
    type: Literal["video", "audio", "subtitle"] = "video"
    content: Optional[str] = None


class MediaExportRequest(BaseModel):
    input_path: str
    output_path: str
    segments: List[MediaSegment] = Field(default_factory=list)
    quality: str = "high"
    format: str = "mp4"
    transition: Optional[str] = None
    transition_duration: float = 0.5
    volume: float = 1.0
    add_subtitles: bool = False
    subtitle_path: Optional[str] = None


class MediaBackend(ABC):
    """Native video import / encode backend."""

    @abstractmethod
    async def import_video(self, path: str, on_progress: Optional[ProgressFn] = None) -> VideoInfo:
        """Import a video file and return its metadata. Progress is 0.0-1.0."""

    @abstractmethod
    async def export_video(
        self,
        request: MediaExportRequest,
        on_progress: Optional[ProgressFn] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        """Render the requested cut and return the output path. Progress is 0.0-1.0."""


class SimulatedMediaBackend(MediaBackend):
    """Backend stand-in that simulates encoding in ticks and honours cancellation."""

    TICKS = 10

    def __init__(
        self,
        step_delay: Optional[float] = None,
        default_duration: float = 60.0,
        durations: Optional[Dict[str, float]] = None
    ):
        self.step_delay = settings.simulated_encode_step if step_delay is None else step_delay
        self.default_duration = default_duration
        self.durations = durations or {}

    async def import_video(self, path: str, on_progress: Optional[ProgressFn] = None) -> VideoInfo:
        file_path = Path(path)
        if on_progress:
            on_progress(0.5)
        await asyncio.sleep(0)

        info = VideoInfo(
            id=f"video_{uuid.uuid4().hex[:12]}",
            name=file_path.stem,
            path=str(file_path),
            duration=self.durations.get(str(path), self.default_duration),
            width=1920,
            height=1080,
            fps=30.0,
            size=file_path.stat().st_size if file_path.exists() else None,
            format=file_path.suffix.lstrip(".") or None,
        )
        if on_progress:
            on_progress(1.0)
        return info

    async def export_video(
        self,
        request: MediaExportRequest,
        on_progress: Optional[ProgressFn] = None,
        cancel_event: Optional[asyncio.Event] = None
    ) -> str:
        logger.info(
            f"Encoding {len(request.segments)} segments to {request.output_path}",
            extra={"quality": request.quality, "format": request.format}
        )
        for tick in range(1, self.TICKS + 1):
            if cancel_event is not None and cancel_event.is_set():
                raise WorkflowCancelledError("Export cancelled")
            await asyncio.sleep(self.step_delay)
            if on_progress:
                on_progress(tick / self.TICKS)
        return request.output_path


# ---------------------------------------------------------------------------
# Vision analysis
# ---------------------------------------------------------------------------

class VisionService(ABC):
    """Scene and audio analysis of a video."""

    @abstractmethod
    async def analyze(self, video_info: VideoInfo) -> VideoAnalysis:
        """Analyze a video."""


class HttpVisionService(VisionService):
    """Vision service reached over HTTP."""

    def __init__(self, base_url: str, executor: Optional[ResilientRequestExecutor] = None):
        self.base_url = base_url.rstrip("/")
        self.executor = executor or ResilientRequestExecutor("vision")

    async def analyze(self, video_info: VideoInfo) -> VideoAnalysis:
        url = f"{self.base_url}/analyze"
        response = await self.executor.retry_request(
            lambda: self.executor.fetch(url, method="POST", json=video_info.model_dump(mode="json"))
        )
        try:
            return VideoAnalysis.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise AnalysisError(f"Invalid analysis response for video {video_info.id}: {str(e)}") from e


class StubVisionService(VisionService):
    """Evenly spaced scenes and no audio levels; used when no vision endpoint is configured."""

    def __init__(self, scene_length: float = 10.0):
        self.scene_length = scene_length

    async def analyze(self, video_info: VideoInfo) -> VideoAnalysis:
        tags = [word.lower() for word in video_info.name.replace("_", " ").replace("-", " ").split() if word]
        scenes = []
        start = 0.0
        while start < video_info.duration:
            end = min(start + self.scene_length, video_info.duration)
            scenes.append(Scene(start_time=start, end_time=end, score=0.8, type="shot", tags=tags))
            start = end
        return VideoAnalysis(video_id=video_info.id, duration=video_info.duration, scenes=scenes)


# ---------------------------------------------------------------------------
# Script generation
# ---------------------------------------------------------------------------

class ScriptRequest(BaseModel):
    topic: str
    style: str
    tone: str
    length: str
    audience: str
    language: str
    keywords: List[str] = Field(default_factory=list)
    video_duration: float
    template_id: Optional[str] = None
    template_name: Optional[str] = None
    sections: List[SectionPlan] = Field(default_factory=list)


class ScriptService(ABC):
    """AI script generation."""

    @abstractmethod
    async def generate_script(
        self,
        model: AIModel,
        generation_settings: Dict[str, Any],
        request: ScriptRequest
    ) -> ScriptData:
        """Generate a narration script."""


def segment_type(section_type: str) -> str:
    return "transition" if section_type == "transition" else "narration"


def assemble_script(request: ScriptRequest, model: AIModel, contents: List[str]) -> ScriptData:
    """
    Build ScriptData from per-section texts.

    Args:
        request: Generation request
        model: Model that produced the texts
        contents: One text per request section

    Returns:
        ScriptData
    """
    segments = [
        ScriptSegment(
            id=plan.section.id,
            content=content.strip(),
            type=segment_type(plan.section.type),
            notes="\n".join(plan.section.tips) or None,
        )
        for plan, content in zip(request.sections, contents)
    ]
    now = utc_now()
    return ScriptData(
        id=f"script_{uuid.uuid4().hex[:12]}",
        title=f"{request.topic} narration",
        content="\n\n".join(s.content for s in segments),
        segments=segments,
        metadata={
            "style": request.style,
            "tone": request.tone,
            "length": request.length,
            "target_audience": request.audience,
            "language": request.language,
            "word_count": sum(len(s.content.split()) for s in segments),
            "estimated_duration": request.video_duration,
            "generated_by": model.id,
            "generated_at": now,
            "template": request.template_id,
            "template_name": request.template_name,
        },
        created_at=now,
        updated_at=now,
    )


def build_section_prompt(plan: SectionPlan, request: ScriptRequest) -> str:
    tips = "\n".join(f"- {tip}" for tip in plan.section.tips) or "- none"
    return (
        "You are a professional video narration writer. Write the narration for one section of a video.\n\n"
        f"Video topic: {request.topic}\n"
        f"Video duration: {round(request.video_duration)} seconds\n"
        f"Detected elements: {', '.join(request.keywords) or 'none'}\n\n"
        f"Section: {plan.section.name}\n"
        f"Target length: {round(plan.target_seconds)} seconds, about {plan.section.target_word_count} words\n"
        f"Purpose: {plan.section.content}\n"
        f"Tips:\n{tips}\n\n"
        f"Style: {request.style}\nTone: {request.tone}\n"
        f"Audience: {request.audience}\nLanguage: {request.language}\n\n"
        "Reply with the narration text only."
    )


class OpenAIScriptService(ScriptService):
    """Script generation through the OpenAI chat completions API, one call per section."""

    def __init__(self, api_key: Optional[str] = None):
        self.client = OpenAI(api_key=api_key or settings.openai_api_key)

    @retry_with_backoff(max_attempts=3, base_delay=2)
    async def _generate_text(self, model: AIModel, prompt: str, generation_settings: Dict[str, Any]) -> str:
        """Single completion (wrapped with retry decorator)."""
        loop = asyncio.get_running_loop()

        def _call():
            return self.client.chat.completions.create(
                model=model.id,
                messages=[{"role": "user", "content": prompt}],
                **generation_settings
            )

        try:
            response = await loop.run_in_executor(None, _call)
        except openai.APITimeoutError as e:
            raise ServiceError("OpenAI request timed out", code=TIMEOUT, status_code=408,
                               original_error=e, retryable=True) from e
        except openai.APIConnectionError as e:
            raise ServiceError(f"OpenAI connection failed: {str(e)}", code=NETWORK_ERROR,
                               original_error=e, retryable=True) from e
        except openai.APIStatusError as e:
            raise ServiceError(f"OpenAI error: {e.message}", code=HTTP_ERROR,
                               status_code=e.status_code, original_error=e) from e

        return response.choices[0].message.content or ""

    async def generate_script(
        self,
        model: AIModel,
        generation_settings: Dict[str, Any],
        request: ScriptRequest
    ) -> ScriptData:
        if not request.sections:
            raise ScriptGenerationError("Script request has no sections")

        contents = []
        for plan in request.sections:
            text = await self._generate_text(model, build_section_prompt(plan, request), generation_settings)
            logger.info(f"Generated section '{plan.section.id}' ({len(text.split())} words)")
            contents.append(text)

        return assemble_script(request, model, contents)


class StubScriptService(ScriptService):
    """Deterministic offline narration; used when no OpenAI key is configured."""

    async def generate_script(
        self,
        model: AIModel,
        generation_settings: Dict[str, Any],
        request: ScriptRequest
    ) -> ScriptData:
        if not request.sections:
            raise ScriptGenerationError("Script request has no sections")

        keywords = ", ".join(request.keywords[:3]) or request.topic
        contents = [
            f"{plan.section.name}: {plan.section.content} for {request.topic}, featuring {keywords}."
            for plan in request.sections
        ]
        return assemble_script(request, model, contents)
