"""
Unit tests for the workflow step executors.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.errors import (
    AnalysisError,
    ExportError,
    ScriptGenerationError,
    ValidationError,
    WorkflowCancelledError,
    WorkflowStateError,
)
from shared.models.script import AIModel, ScriptData, ScriptSegment
from shared.models.timeline import ExportSettings
from shared.models.video import VideoAnalysis
from shared.models.workflow import AIClipConfig, DedupConfig, ScriptParams, UniquenessConfig
from modules.clip_segmenter.config import ClipConfig
from modules.clip_segmenter.segmenter import ClipSegmentGenerator
from modules.script_tools.templates import get_template
from modules.script_tools.uniqueness import UniquenessGuard
from modules.workflow.services import StubScriptService, StubVisionService
from modules.workflow.steps import (
    execute_ai_clip_step,
    execute_analyze_step,
    execute_dedup_step,
    execute_export_step,
    execute_script_generate_step,
    execute_template_step,
    execute_timeline_step,
    execute_uniqueness_step,
    execute_upload_step,
)
from modules.workflow.steps.timeline import nearest_scene, timeline_from_script


class TestUpload:
    """Test video import."""

    @pytest.mark.asyncio
    async def test_imports_into_new_project(self, video_file, media_backend, project_store):
        reported = []

        delta = await execute_upload_step("demo", str(video_file), media_backend, project_store, reported.append)

        assert delta["project_id"] == "demo"
        assert delta["video_info"].name == "beach_day"
        assert reported == [10, 15]
        assert project_store.get("demo").videos[0].id == delta["video_info"].id

    @pytest.mark.asyncio
    async def test_rejects_bad_project_id(self, video_file, media_backend, project_store):
        with pytest.raises(ValidationError):
            await execute_upload_step("bad id", str(video_file), media_backend, project_store, lambda p: None)

    @pytest.mark.asyncio
    async def test_rejects_missing_file(self, tmp_path, media_backend, project_store):
        with pytest.raises(ValidationError):
            await execute_upload_step("demo", str(tmp_path / "nope.mp4"), media_backend, project_store, lambda p: None)


class TestAnalyze:
    """Test analysis."""

    @pytest.mark.asyncio
    async def test_stores_analysis_on_project(self, video_info, project_store):
        project_store.create("demo")

        delta = await execute_analyze_step(video_info, "demo", StubVisionService(30), project_store, lambda p: None)

        assert len(delta["video_analysis"].scenes) == 3
        assert project_store.get("demo").analysis == delta["video_analysis"]

    @pytest.mark.asyncio
    async def test_wraps_unexpected_errors(self, video_info, project_store):
        vision = MagicMock()
        vision.analyze = AsyncMock(side_effect=RuntimeError("model crashed"))

        with pytest.raises(AnalysisError) as exc_info:
            await execute_analyze_step(video_info, None, vision, project_store, lambda p: None)

        assert "model crashed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_requires_video(self, project_store):
        with pytest.raises(AnalysisError):
            await execute_analyze_step(None, None, StubVisionService(), project_store, lambda p: None)


class TestTemplate:
    """Test template selection."""

    @pytest.mark.asyncio
    async def test_preferred_template(self, analysis):
        delta = await execute_template_step(analysis, "story")
        assert delta["selected_template"].id == "story"

    @pytest.mark.asyncio
    async def test_unknown_preference_falls_back(self, analysis):
        delta = await execute_template_step(analysis, "does-not-exist")
        assert delta["selected_template"].id == "commentary"

    @pytest.mark.asyncio
    async def test_requires_analysis(self):
        with pytest.raises(WorkflowStateError):
            await execute_template_step(None)


class TestScriptGenerate:
    """Test script generation."""

    @pytest.mark.asyncio
    async def test_generates_one_segment_per_section(self, video_info, analysis, project_store):
        project_store.create("demo")
        template = get_template("commentary")

        delta = await execute_script_generate_step(
            video_info, analysis, template, AIModel(), ScriptParams(length="long"),
            "demo", StubScriptService(), project_store, lambda p: None
        )

        script = delta["generated_script"]
        assert [s.id for s in script.segments] == ["hook", "intro", "body", "cta"]
        assert script.metadata["template"] == "commentary"
        assert "beach, waves, sunset" in script.segments[0].content
        assert project_store.get("demo").scripts[0].id == script.id

    @pytest.mark.asyncio
    async def test_request_contents(self, video_info, analysis, project_store):
        service = MagicMock()
        service.generate_script = AsyncMock(return_value=ScriptData(
            id="s", segments=[ScriptSegment(id="a", content="Hi.")]
        ))

        await execute_script_generate_step(
            video_info, analysis, get_template("story"), AIModel(id="gpt-4o"), ScriptParams(length="short"),
            None, service, project_store, lambda p: None
        )

        model, generation_settings, request = service.generate_script.await_args.args
        assert model.id == "gpt-4o"
        assert generation_settings == {"temperature": 0.6}
        assert request.keywords == ["beach", "waves", "sunset"]
        assert request.template_id == "story"
        assert [p.target_seconds for p in request.sections] == [22.5, 40.5, 27.0]

    @pytest.mark.asyncio
    async def test_empty_script_is_rejected(self, video_info, analysis, project_store):
        service = MagicMock()
        service.generate_script = AsyncMock(return_value=ScriptData(id="s"))

        with pytest.raises(ScriptGenerationError):
            await execute_script_generate_step(
                video_info, analysis, get_template("story"), AIModel(), ScriptParams(),
                None, service, project_store, lambda p: None
            )

    @pytest.mark.asyncio
    async def test_requires_template(self, video_info, analysis, project_store):
        with pytest.raises(WorkflowStateError):
            await execute_script_generate_step(
                video_info, analysis, None, AIModel(), ScriptParams(),
                None, StubScriptService(), project_store, lambda p: None
            )


class TestDedup:
    """Test de-duplication."""

    @pytest.fixture
    def repetitive(self):
        contents = ["The sunset is beautiful. The sunset is beautiful.", "The sunset is beautiful. In this video we relax."]
        return ScriptData(
            id="rep",
            segments=[ScriptSegment(id=f"s{i}", content=c) for i, c in enumerate(contents)],
            content="\n\n".join(contents),
        )

    @pytest.mark.asyncio
    async def test_low_score_is_fixed(self, repetitive):
        delta = await execute_dedup_step(repetitive, DedupConfig(), lambda p: None)

        assert delta["originality_report"].score < 80
        assert delta["deduped_script"].segments[0].content == "The sunset is beautiful."
        assert delta["deduped_script"].segments[1].content == "Here we relax."

    @pytest.mark.asyncio
    async def test_auto_fix_disabled(self, repetitive):
        delta = await execute_dedup_step(repetitive, DedupConfig(auto_fix=False), lambda p: None)

        assert delta["deduped_script"] is repetitive

    @pytest.mark.asyncio
    async def test_clean_script_untouched(self, script):
        delta = await execute_dedup_step(script, DedupConfig(), lambda p: None)

        assert delta["originality_report"].score == 100
        assert delta["deduped_script"] is script


class TestUniqueness:
    """Test uniqueness enforcement."""

    @pytest.mark.asyncio
    async def test_registers_script(self, script):
        guard = UniquenessGuard()
        reported = []

        delta = await execute_uniqueness_step(
            script, guard, UniquenessConfig(add_randomness=False), reported.append
        )

        assert delta["unique_script"] is script
        assert delta["uniqueness_report"].check.is_unique is True
        assert len(guard.history) == 1
        assert reported == [56, 58]

    @pytest.mark.asyncio
    async def test_config_does_not_touch_shared_guard(self, script):
        guard = UniquenessGuard()
        guard.register(script)
        config = UniquenessConfig(similarity_threshold=1.0, max_rewrite_attempts=1, add_randomness=False)
        rewrite = AsyncMock()

        delta = await execute_uniqueness_step(script, guard, config, lambda p: None, rewrite_fn=rewrite)

        assert delta["unique_script"] is script
        assert delta["uniqueness_report"].check.is_unique is True
        rewrite.assert_not_awaited()
        assert guard.similarity_threshold == 0.3
        assert guard.max_rewrite_attempts == 3

    @pytest.mark.asyncio
    async def test_repeat_script_is_rewritten(self, script):
        guard = UniquenessGuard()
        guard.register(script)
        replacement = ScriptData(id="new", segments=[ScriptSegment(id="x", content="Mountains at dawn.")],
                                 content="Mountains at dawn.")
        rewrite = AsyncMock(return_value=replacement)

        delta = await execute_uniqueness_step(
            script, guard, UniquenessConfig(add_randomness=False), lambda p: None, rewrite_fn=rewrite
        )

        assert delta["unique_script"] is replacement
        rewrite.assert_awaited_once()


class TestAIClip:
    """Test clip segmentation."""

    @pytest.mark.asyncio
    async def test_segments_and_optimizes(self, analysis, script):
        delta = await execute_ai_clip_step(analysis, script, AIClipConfig(enabled=True), lambda p: None)

        result = delta["clip_result"]
        assert [s.text for s in result.segments] == [s.content for s in script.segments]
        assert all(s.effects == ["denoise", "sharpen"] for s in result.segments)
        assert result.segments[1].transition == "fade"

    @pytest.mark.asyncio
    async def test_reconfigures_shared_segmenter(self, analysis):
        segmenter = ClipSegmentGenerator()
        config = AIClipConfig(enabled=True, transition_type="cut", ai_optimize=False)

        delta = await execute_ai_clip_step(analysis, None, config, lambda p: None, segmenter=segmenter)

        assert segmenter.get_config().transition_type == "cut"
        assert all(s.effects is None for s in delta["clip_result"].segments)

    @pytest.mark.asyncio
    async def test_keeps_segmenter_only_options(self, analysis):
        segmenter = ClipSegmentGenerator(ClipConfig(output_format="webm", scene_threshold=0.6))

        await execute_ai_clip_step(analysis, None, AIClipConfig(enabled=True), lambda p: None, segmenter=segmenter)

        kept = segmenter.get_config()
        assert kept.output_format == "webm"
        assert kept.scene_threshold == 0.6
        assert kept.transition_type == "fade"

    @pytest.mark.asyncio
    async def test_segmentation_failure_is_not_fatal(self):
        empty = VideoAnalysis(video_id="v", duration=0)

        assert await execute_ai_clip_step(empty, None, AIClipConfig(enabled=True), lambda p: None) == {}


class TestTimeline:
    """Test timeline assembly."""

    def test_nearest_scene(self, analysis):
        assert nearest_scene(analysis.scenes, 0.0).start_time == 0
        assert nearest_scene(analysis.scenes, 0.5).start_time == 30
        assert nearest_scene(analysis.scenes, 0.9).start_time == 60
        assert nearest_scene([], 0.5) is None

    @pytest.mark.asyncio
    async def test_from_script(self, video_info, analysis, script):
        delta = await execute_timeline_step(video_info, analysis, script)

        timeline = delta["timeline"]
        video = timeline.track("video").clips
        subtitles = timeline.track("subtitle").clips
        assert timeline.duration == 90.0
        assert [(c.start_time, c.end_time) for c in video] == [(0.0, 30.0), (30.0, 60.0), (60.0, 90.0)]
        assert [c.transition for c in video] == [None, "fade", "fade"]
        assert [c.script_segment_id for c in subtitles] == ["hook", "body", "cta"]
        assert subtitles[0].source_end == len("Sand and sea.")

    @pytest.mark.asyncio
    async def test_from_clips(self, video_info, analysis, script):
        clips = (await execute_ai_clip_step(analysis, script, AIClipConfig(enabled=True), lambda p: None))["clip_result"]

        delta = await execute_timeline_step(video_info, analysis, script, clip_result=clips)

        timeline = delta["timeline"]
        assert len(timeline.track("video").clips) == 3
        assert [c.text for c in timeline.track("subtitle").clips] == [s.content for s in script.segments]

    @pytest.mark.asyncio
    async def test_without_script(self, video_info, analysis):
        delta = await execute_timeline_step(video_info, analysis, None)

        assert all(track.clips == [] for track in delta["timeline"].tracks)
        assert delta["timeline"].duration == 90.0

    @pytest.mark.asyncio
    async def test_requires_video(self, analysis, script):
        with pytest.raises(WorkflowStateError):
            await execute_timeline_step(None, analysis, script)


class TestExport:
    """Test export."""

    @pytest.fixture
    def timeline(self, video_info, analysis, script):
        return timeline_from_script(video_info, analysis, script)

    @pytest.mark.asyncio
    async def test_writes_subtitles_and_records_export(
        self, video_info, timeline, script, media_backend, project_store, export_dir
    ):
        reported = []

        path = await execute_export_step(
            "demo", video_info, timeline, script, ExportSettings(quality="medium", format="webm"),
            media_backend, project_store, export_dir, reported.append
        )

        assert path.endswith(".webm")
        srt = (export_dir / "demo_subtitle.srt").read_text(encoding="utf-8")
        assert "1\n00:00:00,000 --> 00:00:30,000\nSand and sea.\n" in srt
        record = project_store.get("demo").exports[0]
        assert record.quality == "medium"
        assert record.total_clips == 6
        assert record.subtitle_path.endswith("demo_subtitle.srt")
        assert reported[-1] == 99

    @pytest.mark.asyncio
    async def test_without_subtitles(
        self, video_info, timeline, script, media_backend, project_store, export_dir
    ):
        backend = MagicMock()
        backend.export_video = AsyncMock(return_value="/out/demo.mp4")

        await execute_export_step(
            "demo", video_info, timeline, script, ExportSettings(include_subtitles=False),
            backend, project_store, export_dir, lambda p: None
        )

        request = backend.export_video.await_args.args[0]
        assert request.add_subtitles is False
        assert request.subtitle_path is None
        assert request.transition == "fade"
        assert [s.type for s in request.segments].count("video") == 3
        assert not (export_dir / "demo_subtitle.srt").exists()

    @pytest.mark.asyncio
    async def test_backend_failure(self, video_info, timeline, script, project_store, export_dir):
        backend = MagicMock()
        backend.export_video = AsyncMock(side_effect=OSError("disk full"))

        with pytest.raises(ExportError):
            await execute_export_step(
                "demo", video_info, timeline, script, ExportSettings(),
                backend, project_store, export_dir, lambda p: None
            )
        assert project_store.get("demo") is None

    @pytest.mark.asyncio
    async def test_cancelled(self, video_info, timeline, script, media_backend, project_store, export_dir):
        cancel_event = asyncio.Event()
        cancel_event.set()

        with pytest.raises(WorkflowCancelledError):
            await execute_export_step(
                "demo", video_info, timeline, script, ExportSettings(),
                media_backend, project_store, export_dir, lambda p: None, cancel_event
            )

    @pytest.mark.asyncio
    async def test_requires_timeline(self, video_info, script, media_backend, project_store, export_dir):
        with pytest.raises(WorkflowStateError):
            await execute_export_step(
                "demo", video_info, None, script, ExportSettings(),
                media_backend, project_store, export_dir, lambda p: None
            )
