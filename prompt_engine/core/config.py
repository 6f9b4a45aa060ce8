"""
Configuration Settings.

This module defines the prompt engine configuration using Pydantic's BaseSettings.
All values are loaded from environment variables and an optional .env file.
Constructor arguments of :class:`~prompt_engine.prompt.manager.PromptManager`
and :class:`~prompt_engine.prompt.api.client.HttpPromptFetcher` take precedence
over these settings.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

API_KEY_ENV_VAR = "PROMPT_ENGINE_API_KEY"
DEFAULT_API_ENDPOINT = "https://api-v2.autoblocks.ai"


class PromptEngineSettings(BaseSettings):
    """
    Prompt engine settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    # =====================================================================
    # Pydantic Configuration
    # =====================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Remote Prompt Service
    # =====================================================================
    api_key: Optional[str] = Field(
        default=None,
        description="API key used as Bearer token against the prompt service",
        alias=API_KEY_ENV_VAR,
    )
    api_endpoint: str = Field(
        default=DEFAULT_API_ENDPOINT,
        description="Base URL of the prompt service",
        alias="PROMPT_ENGINE_API_ENDPOINT",
    )
    app_id: Optional[str] = Field(
        default=None,
        description="Application identifier that owns the prompts",
        alias="PROMPT_ENGINE_APP_ID",
    )
    fetcher: str = Field(
        default="http",
        description="Name of the prompt fetcher to load ('http' or an entry point name)",
        alias="PROMPT_ENGINE_FETCHER",
    )

    # =====================================================================
    # Refresh & Timeouts
    # =====================================================================
    refresh_interval_seconds: float = Field(
        default=10.0,
        description="Seconds between background refreshes (<= 0 disables refresh)",
        alias="PROMPT_ENGINE_REFRESH_INTERVAL_SECONDS",
    )
    refresh_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout of a single background refresh attempt",
        alias="PROMPT_ENGINE_REFRESH_TIMEOUT_SECONDS",
    )
    init_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout of the initial prompt resolve",
        alias="PROMPT_ENGINE_INIT_TIMEOUT_SECONDS",
    )

    # =====================================================================
    # Logging
    # =====================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="PROMPT_ENGINE_LOG_LEVEL",
    )

    # =====================================================================
    # CI Test Runs
    # =====================================================================
    ci_test_run_build_id: Optional[str] = Field(
        default=None,
        description="Set by CI test runs; enables revision overrides and disables refresh",
        alias="PROMPT_ENGINE_CI_TEST_RUN_BUILD_ID",
    )
    overrides: Optional[str] = Field(
        default=None,
        description='JSON overrides, e.g. {"promptRevisions": {"<prompt id>": "<revision id>"}}',
        alias="PROMPT_ENGINE_OVERRIDES",
    )
    overrides_prompt_revisions: Optional[str] = Field(
        default=None,
        description="Legacy JSON map of prompt id to revision id",
        alias="PROMPT_ENGINE_OVERRIDES_PROMPT_REVISIONS",
    )

    @property
    def is_testing_context(self) -> bool:
        """Whether the process runs inside a CI test run."""
        return self.ci_test_run_build_id is not None


def get_settings() -> PromptEngineSettings:
    """Build settings from the current environment.

    A fresh instance is returned on every call so that environment changes
    (e.g. in tests) are always honored.
    """
    return PromptEngineSettings()
