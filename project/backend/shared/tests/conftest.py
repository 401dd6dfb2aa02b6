"""
Pytest configuration and fixtures.
"""

import pytest


@pytest.fixture
def test_env_file(tmp_path):
    """Create a temporary .env file for testing."""
    env_file = tmp_path / ".env"
    env_content = """
OPENAI_API_KEY=sk-test123456789012345678901234567890
VISION_SERVICE_URL=http://vision.local:8080/
ENVIRONMENT=test
LOG_LEVEL=DEBUG
REQUEST_RETRIES=5
"""
    env_file.write_text(env_content)
    return env_file


@pytest.fixture
def video_file(tmp_path):
    """Small fake video file."""
    path = tmp_path / "beach_day.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return path


@pytest.fixture
def recorded_sleeps():
    """Awaitable sleep that records requested delays instead of sleeping."""
    delays = []

    async def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep
