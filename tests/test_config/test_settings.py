"""Tests for config system."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from switchboard.config.env_utils import read_env_file
from switchboard.config.models import AgentsConfig, QueueConfig, ServerConfig
from switchboard.config.settings import Settings, get_settings

FLAT_VARS = ("PORT", "REDIS_URL", "OPENAI_API_KEY", "ANTHROPIC_API_KEY", "OLLAMA_BASE_URL", "REGISTER_DEFAULT_AGENTS")


@pytest.fixture
def clean_env(tmp_path, monkeypatch):
    """Run in an empty directory with none of the service variables set."""
    monkeypatch.chdir(tmp_path)
    for var in FLAT_VARS:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def test_default_settings(clean_env):
    """Settings should have sane defaults when nothing is configured."""
    s = Settings()
    assert s.service_name == "agent-orchestration"
    assert s.server.port == 3020
    assert s.queue.redis_url == "redis://localhost:6379"
    assert s.queue.attempts == 3
    assert s.queue.keep_completed == 100
    assert s.queue.keep_failed == 200
    assert s.providers.ollama_base_url == "http://localhost:11434"
    assert s.agents.register_defaults is True


def test_flat_env_vars_mapped(clean_env, monkeypatch):
    monkeypatch.setenv("PORT", "4000")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6380/1")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("REGISTER_DEFAULT_AGENTS", "false")

    s = Settings()
    assert s.server.port == 4000
    assert s.queue.redis_url == "redis://cache:6380/1"
    assert s.providers.openai_api_key == "sk-env"
    assert s.agents.register_defaults is False


def test_dotenv_file_used(clean_env):
    (clean_env / ".env").write_text(
        "# local overrides\nexport OLLAMA_BASE_URL='http://gpu-box:11434'\nANTHROPIC_API_KEY=\"sk-ant\"\n"
    )
    s = Settings()
    assert s.providers.ollama_base_url == "http://gpu-box:11434"
    assert s.providers.anthropic_api_key == "sk-ant"


def test_process_env_beats_dotenv(clean_env, monkeypatch):
    (clean_env / ".env").write_text("REDIS_URL=redis://from-file:6379\n")
    monkeypatch.setenv("REDIS_URL", "redis://from-env:6379")
    assert Settings().queue.redis_url == "redis://from-env:6379"


def test_prefixed_nested_env(clean_env, monkeypatch):
    monkeypatch.setenv("SWITCHBOARD_QUEUE__ATTEMPTS", "5")
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379")
    s = Settings()
    assert s.queue.attempts == 5
    assert s.queue.redis_url == "redis://cache:6379"


def test_explicit_values_win(clean_env, monkeypatch):
    monkeypatch.setenv("PORT", "4000")
    monkeypatch.setenv("REGISTER_DEFAULT_AGENTS", "false")
    s = Settings(server=ServerConfig(port=5000), agents=AgentsConfig(register_defaults=True))
    assert s.server.port == 5000
    assert s.agents.register_defaults is True


def test_api_keys_excluded_from_dump(clean_env):
    s = Settings(providers={"openai_api_key": "sk-secret"})
    assert "openai_api_key" not in s.model_dump()["providers"]
    assert s.providers.openai_api_key == "sk-secret"


def test_queue_config_validation():
    with pytest.raises(ValidationError):
        QueueConfig(attempts=0)
    with pytest.raises(ValidationError):
        QueueConfig(keep_failed=-1)
    with pytest.raises(ValidationError):
        QueueConfig(poll_interval_ms=0)
    with pytest.raises(ValidationError):
        QueueConfig(stalled_interval_ms=0)
    with pytest.raises(ValidationError):
        QueueConfig(stalled_grace_ms=-1)


def test_get_settings_is_cached(clean_env):
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()


def test_read_env_file_missing(tmp_path):
    assert read_env_file(tmp_path / "nope.env") == {}


def test_read_env_file_parses(tmp_path):
    path = tmp_path / ".env"
    path.write_text("A=1\n\n# comment\nexport B='two'\nC=\"three\"\nbroken line\n")
    assert read_env_file(path) == {"A": "1", "B": "two", "C": "three"}
