"""
Template selection step.
"""

from typing import Any, Dict, Optional

from shared.errors import WorkflowStateError
from shared.logging import get_logger
from shared.models.video import VideoAnalysis
from modules.script_tools.templates import get_template, recommend_templates

logger = get_logger("workflow.steps.template")


async def execute_template_step(
    analysis: Optional[VideoAnalysis],
    preferred_template: Optional[str] = None
) -> Dict[str, Any]:
    """
    Pick the narration template.

    A known preferred template wins; otherwise the best recommendation is used.

    Returns:
        Data delta with selected_template
    """
    if analysis is None:
        raise WorkflowStateError("Template selection requires a video analysis")

    template = get_template(preferred_template) if preferred_template else None
    if preferred_template and template is None:
        logger.warning(f"Unknown template '{preferred_template}', using recommendation")

    if template is None:
        template = recommend_templates(analysis)[0]

    logger.info(f"Selected template '{template.id}'")
    return {"selected_template": template}
