"""
Script generation step.

Sizes the selected template for the video and asks the script service for
one narration text per section.
"""

from typing import Any, Callable, Dict, List, Optional

from shared.errors import PipelineError, ScriptGenerationError, WorkflowStateError
from shared.logging import get_logger
from shared.models.script import AIModel, ScriptTemplate
from shared.models.video import VideoAnalysis, VideoInfo
from shared.models.workflow import ScriptParams
from shared.project_store import ProjectStore
from shared.validation import validate_script
from modules.script_tools.templates import apply_template
from modules.workflow.services import ScriptRequest, ScriptService

logger = get_logger("workflow.steps.script_generate")

# Sampling temperature per requested length
_TEMPERATURE = {"short": 0.6, "medium": 0.7, "long": 0.8}


def collect_keywords(analysis: VideoAnalysis) -> List[str]:
    """Scene tags in order of first appearance."""
    return list(dict.fromkeys(tag for scene in analysis.scenes for tag in scene.tags))


async def execute_script_generate_step(
    video_info: Optional[VideoInfo],
    analysis: Optional[VideoAnalysis],
    template: Optional[ScriptTemplate],
    model: AIModel,
    params: ScriptParams,
    project_id: Optional[str],
    script_service: ScriptService,
    project_store: ProjectStore,
    on_progress: Callable[[int], None]
) -> Dict[str, Any]:
    """
    Generate the narration script.

    Args:
        video_info: Imported video
        analysis: Video analysis
        template: Selected template
        model: AI model to use
        params: Style, tone, length, audience and language
        project_id: Owning project (script is appended to it when known)
        script_service: Generation backend
        project_store: Project persistence
        on_progress: Overall progress callback (0-100)

    Returns:
        Data delta with generated_script

    Raises:
        WorkflowStateError: If an earlier stage output is missing
        ScriptGenerationError: If generation fails or returns an empty script
    """
    if video_info is None or analysis is None or template is None:
        raise WorkflowStateError("Script generation requires a video, its analysis and a template")

    keywords = collect_keywords(analysis)
    sections = apply_template(template, video_info.name, analysis.duration, keywords)
    on_progress(42)

    request = ScriptRequest(
        topic=video_info.name,
        style=params.style,
        tone=params.tone,
        length=params.length,
        audience=params.target_audience,
        language=params.language,
        keywords=keywords,
        video_duration=analysis.duration,
        template_id=template.id,
        template_name=template.name,
        sections=sections,
    )

    logger.info(
        f"Generating script with {model.id}",
        extra={"template": template.id, "sections": len(sections)}
    )
    try:
        script = await script_service.generate_script(
            model,
            {"temperature": _TEMPERATURE[params.length]},
            request
        )
    except PipelineError:
        raise
    except Exception as e:
        raise ScriptGenerationError(f"Script generation failed: {str(e)}") from e

    try:
        validate_script(script)
    except PipelineError as e:
        raise ScriptGenerationError(f"Generated script is unusable: {e.message}") from e

    on_progress(48)

    if project_id:
        project = project_store.get(project_id)
        if project is not None:
            project.scripts.append(script)
            project_store.save(project)

    logger.info("Script generated", extra={"script_id": script.id, "segments": len(script.segments)})
    return {"generated_script": script}
