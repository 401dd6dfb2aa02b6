"""
Workflow step executors.

Each executor runs one stage and returns the data it produced.
"""

from modules.workflow.steps.upload import execute_upload_step
from modules.workflow.steps.analyze import execute_analyze_step
from modules.workflow.steps.template import execute_template_step
from modules.workflow.steps.script_generate import execute_script_generate_step
from modules.workflow.steps.dedup import execute_dedup_step
from modules.workflow.steps.uniqueness import execute_uniqueness_step
from modules.workflow.steps.ai_clip import execute_ai_clip_step
from modules.workflow.steps.timeline import execute_timeline_step
from modules.workflow.steps.export import execute_export_step

__all__ = [
    "execute_upload_step",
    "execute_analyze_step",
    "execute_template_step",
    "execute_script_generate_step",
    "execute_dedup_step",
    "execute_uniqueness_step",
    "execute_ai_clip_step",
    "execute_timeline_step",
    "execute_export_step",
]
