"""
Uniqueness step.
"""

from typing import Any, Callable, Dict, Optional

from shared.errors import WorkflowStateError
from shared.logging import get_logger
from shared.models.script import ScriptData
from shared.models.workflow import UniquenessConfig
from modules.script_tools.uniqueness import RewriteFn, UniquenessGuard

logger = get_logger("workflow.steps.uniqueness")


async def execute_uniqueness_step(
    script: Optional[ScriptData],
    guard: UniquenessGuard,
    config: UniquenessConfig,
    on_progress: Callable[[int], None],
    rewrite_fn: Optional[RewriteFn] = None,
    seed: Optional[int] = None
) -> Dict[str, Any]:
    """
    Make the script distinct from earlier ones.

    Args:
        script: Script to check
        guard: Guard holding the fingerprint history
        config: Uniqueness options for this run
        on_progress: Overall progress callback (0-100)
        rewrite_fn: Async rewrite function for scripts that are too similar
        seed: Seed for wording randomisation

    Returns:
        Data delta with unique_script and uniqueness_report
    """
    if script is None:
        raise WorkflowStateError("Uniqueness check requires a script")

    candidate = guard.add_randomness(script, seed) if config.add_randomness else script
    on_progress(56)

    unique, is_unique, attempts = await guard.ensure_uniqueness(
        candidate,
        rewrite_fn,
        similarity_threshold=config.similarity_threshold,
        auto_rewrite=config.auto_rewrite,
        max_rewrite_attempts=config.max_rewrite_attempts,
    )
    if not is_unique:
        logger.warning(
            f"Script still similar to earlier scripts after {attempts} rewrites",
            extra={"script_id": script.id}
        )

    report = guard.report(unique, similarity_threshold=config.similarity_threshold)
    on_progress(58)
    return {"unique_script": unique, "uniqueness_report": report}
