"""Unit tests for PromptEngineSettings."""

import pytest
from pydantic import ValidationError

from prompt_engine.core.config import DEFAULT_API_ENDPOINT, PromptEngineSettings, get_settings


class TestDefaults:
    def test_defaults_without_environment(self):
        settings = PromptEngineSettings()

        assert settings.api_key is None
        assert settings.app_id is None
        assert settings.api_endpoint == DEFAULT_API_ENDPOINT
        assert settings.fetcher == "http"
        assert settings.refresh_interval_seconds == 10.0
        assert settings.refresh_timeout_seconds == 30.0
        assert settings.init_timeout_seconds == 30.0
        assert settings.log_level == "INFO"
        assert settings.is_testing_context is False


class TestEnvironmentBinding:
    def test_values_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("PROMPT_ENGINE_API_KEY", "k-123")
        monkeypatch.setenv("PROMPT_ENGINE_APP_ID", "app-1")
        monkeypatch.setenv("PROMPT_ENGINE_REFRESH_INTERVAL_SECONDS", "2.5")
        monkeypatch.setenv("PROMPT_ENGINE_FETCHER", "bundle")

        settings = get_settings()

        assert settings.api_key == "k-123"
        assert settings.app_id == "app-1"
        assert settings.refresh_interval_seconds == 2.5
        assert settings.fetcher == "bundle"

    def test_get_settings_reflects_environment_changes(self, monkeypatch):
        assert get_settings().is_testing_context is False
        monkeypatch.setenv("PROMPT_ENGINE_CI_TEST_RUN_BUILD_ID", "build-7")
        assert get_settings().is_testing_context is True

    def test_constructor_accepts_field_names(self):
        settings = PromptEngineSettings(api_key="k", init_timeout_seconds=5)

        assert settings.api_key == "k"
        assert settings.init_timeout_seconds == 5


class TestValidation:
    @pytest.mark.parametrize("env_var", ["PROMPT_ENGINE_INIT_TIMEOUT_SECONDS", "PROMPT_ENGINE_REFRESH_TIMEOUT_SECONDS"])
    def test_timeouts_must_be_positive(self, monkeypatch, env_var):
        monkeypatch.setenv(env_var, "0")

        with pytest.raises(ValidationError):
            PromptEngineSettings()
