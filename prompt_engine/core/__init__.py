"""Configuration and logging shared by the prompt engine."""

from .config import PromptEngineSettings, get_settings
from .logging_config import setup_logging

__all__ = [
    "PromptEngineSettings",
    "get_settings",
    "setup_logging",
]
