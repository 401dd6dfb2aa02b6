"""
Tests for configuration loading.
"""

import pytest
from shared.config import Settings
from shared.errors import ConfigError


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.request_retries == 3
    assert settings.request_retry_delay == 1.0
    assert settings.script_model == "gpt-4o-mini"
    assert settings.vision_service_url is None
    assert settings.event_queue_size == 100


def test_env_file_loading(test_env_file):
    settings = Settings(_env_file=str(test_env_file))

    assert settings.environment == "test"
    assert settings.log_level == "DEBUG"
    assert settings.request_retries == 5
    assert settings.openai_api_key.startswith("sk-")
    # Trailing slash is stripped
    assert settings.vision_service_url == "http://vision.local:8080"


def test_invalid_openai_key():
    with pytest.raises(ConfigError):
        Settings(_env_file=None, openai_api_key="not-a-key")


def test_invalid_vision_url():
    with pytest.raises(ConfigError):
        Settings(_env_file=None, vision_service_url="ftp://vision.local")


def test_negative_retries():
    with pytest.raises(ConfigError):
        Settings(_env_file=None, request_retries=-1)


def test_empty_optional_values_become_none():
    settings = Settings(_env_file=None, openai_api_key="", vision_service_url="")

    assert settings.openai_api_key is None
    assert settings.vision_service_url is None
