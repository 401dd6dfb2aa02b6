"""
Script Tools Module.

Template library, originality checks and uniqueness enforcement for narration scripts.
"""

from modules.script_tools.templates import (
    BUILTIN_TEMPLATES,
    SectionPlan,
    apply_template,
    get_template,
    recommend_templates,
)
from modules.script_tools.dedup import ScriptDeduplicator
from modules.script_tools.uniqueness import UniquenessGuard, vary_script

__all__ = [
    "BUILTIN_TEMPLATES",
    "SectionPlan",
    "ScriptDeduplicator",
    "UniquenessGuard",
    "apply_template",
    "get_template",
    "recommend_templates",
    "vary_script",
]
