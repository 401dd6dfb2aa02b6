"""
Pytest configuration and fixtures for workflow tests.
"""

import asyncio

import pytest

from shared.models.script import ScriptData, ScriptSegment
from shared.models.video import Scene, VideoAnalysis, VideoInfo
from shared.project_store import ProjectStore
from modules.workflow.engine import WorkflowEngine
from modules.workflow.services import SimulatedMediaBackend, StubScriptService, StubVisionService


class BlockingScriptService(StubScriptService):
    """Script service that waits for the test to release it."""

    def __init__(self):
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def generate_script(self, model, generation_settings, request):
        self.entered.set()
        await self.release.wait()
        return await super().generate_script(model, generation_settings, request)


class BlockingVisionService(StubVisionService):
    """Vision service that waits for the test to release it."""

    def __init__(self):
        super().__init__(scene_length=30)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def analyze(self, video_info):
        self.entered.set()
        await self.release.wait()
        return await super().analyze(video_info)


@pytest.fixture
def video_file(tmp_path):
    """Small fake video file."""
    path = tmp_path / "beach_day.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return path


@pytest.fixture
def media_backend():
    return SimulatedMediaBackend(step_delay=0, default_duration=90.0)


@pytest.fixture
def project_store():
    return ProjectStore()


@pytest.fixture
def export_dir(tmp_path):
    return tmp_path / "exports"


@pytest.fixture
def make_engine(media_backend, project_store, export_dir):
    """Engine factory with offline services; keyword overrides replace collaborators."""
    def factory(**overrides):
        options = {
            "media_backend": media_backend,
            "vision_service": StubVisionService(scene_length=30),
            "script_service": StubScriptService(),
            "project_store": project_store,
            "export_dir": export_dir,
            "workflow_id": "wf-test",
        }
        options.update(overrides)
        return WorkflowEngine(**options)

    return factory


@pytest.fixture
def engine(make_engine):
    return make_engine()


@pytest.fixture
def video_info(video_file):
    return VideoInfo(id="video_1", name="beach_day", path=str(video_file), duration=90.0)


@pytest.fixture
def analysis():
    return VideoAnalysis(
        video_id="video_1",
        duration=90.0,
        scenes=[
            Scene(start_time=0, end_time=30, tags=["beach"]),
            Scene(start_time=30, end_time=60, tags=["waves", "beach"]),
            Scene(start_time=60, end_time=90, tags=["sunset"]),
        ],
    )


@pytest.fixture
def script():
    segments = [
        ScriptSegment(id="hook", content="Sand and sea."),
        ScriptSegment(id="body", content="The waves roll in."),
        ScriptSegment(id="cta", content="Follow for more."),
    ]
    return ScriptData(id="script_1", segments=segments, content="\n\n".join(s.content for s in segments))


@pytest.fixture
def blocking_script_service():
    return BlockingScriptService()


@pytest.fixture
def blocking_vision_service():
    return BlockingVisionService()
