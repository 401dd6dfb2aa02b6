"""
Unit tests for script de-duplication.
"""

import pytest

from shared.models.script import ScriptData, ScriptSegment
from modules.script_tools.dedup import ScriptDeduplicator, jaccard, normalize, split_sentences


def _script(*contents):
    segments = [ScriptSegment(id=f"seg-{i}", content=c) for i, c in enumerate(contents)]
    return ScriptData(id="script-1", segments=segments, content="\n\n".join(contents))


@pytest.fixture
def repetitive_script():
    return _script(
        "In this video we visit the beach. The sunset is beautiful.",
        "The sunset is beautiful. Needless to say the water is warm.",
    )


def test_helpers():
    assert split_sentences("One. Two!  Three?") == ["One.", "Two!", "Three?"]
    assert normalize("The  Sunset, is BEAUTIFUL.") == "the sunset is beautiful"
    assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
    assert jaccard(set(), {"a"}) == 0.0


class TestOriginalityReport:
    """Test originality scoring."""

    def test_clean_script_scores_full(self):
        report = ScriptDeduplicator().originality_report(_script("Waves roll in.", "Gulls circle overhead."))

        assert report.score == 100
        assert report.duplicates == []
        assert report.suggestions == []

    def test_findings_and_score(self, repetitive_script):
        report = ScriptDeduplicator().originality_report(repetitive_script)

        kinds = sorted(f.kind for f in report.duplicates)
        assert kinds == ["exact", "template", "template"]
        assert report.score == 75

        exact = next(f for f in report.duplicates if f.kind == "exact")
        assert exact.segment_ids == ["seg-0", "seg-1"]
        assert len(report.suggestions) == 2

    def test_near_duplicate(self):
        script = _script("The red car drives fast on the road.", "The red car drives fast on a road.")
        report = ScriptDeduplicator(threshold=0.7).originality_report(script)

        assert [f.kind for f in report.duplicates] == ["semantic"]
        assert report.duplicates[0].similarity == pytest.approx(0.875)
        assert report.score == 92

    def test_threshold_controls_near_duplicates(self):
        script = _script("The red car drives fast on the road.", "The red car drives fast on a road.")
        report = ScriptDeduplicator(threshold=0.95).originality_report(script)

        assert report.duplicates == []


class TestAutoFix:
    """Test automatic repair."""

    def test_removes_repeats_and_varies_stock_phrases(self, repetitive_script):
        fixed = ScriptDeduplicator().auto_fix(repetitive_script)

        assert [s.content for s in fixed.segments] == [
            "Here we visit the beach. The sunset is beautiful.",
            "Clearly the water is warm.",
        ]
        assert fixed.content == "\n\n".join(s.content for s in fixed.segments)
        assert ScriptDeduplicator().originality_report(fixed).score == 100

    def test_original_untouched(self, repetitive_script):
        before = repetitive_script.model_copy(deep=True)
        ScriptDeduplicator().auto_fix(repetitive_script)

        assert repetitive_script == before

    def test_without_variants(self, repetitive_script):
        fixed = ScriptDeduplicator(auto_variant=False).auto_fix(repetitive_script)

        assert fixed.segments[0].content.startswith("In this video")
