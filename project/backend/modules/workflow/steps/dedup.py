"""
Script de-duplication step.
"""

from typing import Any, Callable, Dict, Optional

from shared.errors import WorkflowStateError
from shared.logging import get_logger
from shared.models.script import ScriptData
from shared.models.workflow import DedupConfig
from modules.script_tools.dedup import ScriptDeduplicator

logger = get_logger("workflow.steps.dedup")

# Scripts scoring below this are repaired when auto-fix is on
MIN_ORIGINALITY_SCORE = 80


async def execute_dedup_step(
    script: Optional[ScriptData],
    config: DedupConfig,
    on_progress: Callable[[int], None]
) -> Dict[str, Any]:
    """
    Score originality and repair duplicated phrasing.

    Returns:
        Data delta with deduped_script and originality_report
    """
    if script is None:
        raise WorkflowStateError("De-duplication requires a script")

    deduplicator = ScriptDeduplicator(
        threshold=config.threshold,
        auto_fix=config.auto_fix,
        auto_variant=config.auto_variant,
    )
    report = deduplicator.originality_report(script)
    on_progress(52)

    deduped = script
    if deduplicator.auto_fix_enabled and report.score < MIN_ORIGINALITY_SCORE:
        logger.info(
            f"Originality score {report.score} below {MIN_ORIGINALITY_SCORE}, auto-fixing",
            extra={"script_id": script.id, "duplicates": len(report.duplicates)}
        )
        deduped = deduplicator.auto_fix(script)

    on_progress(54)
    return {"deduped_script": deduped, "originality_report": report}
