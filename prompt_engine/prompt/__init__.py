"""Prompt engine facade.

This subpackage defines the public surface of the prompt engine. It
re-exports the key types that callers are expected to use:

- ``PromptManager`` – keeps one prompt version resolved and refreshed, and
  exposes it through ``exec``.
- ``PromptExecutionContext`` – the snapshot view handed to ``exec`` callbacks
  (``render``, ``render_tool``, ``params``, ``tools``, ``track``).
- ``VersionSpec`` / ``WeightedMinorVersion`` / ``RevisionRef`` – how callers
  say which version they want.
- ``PromptResolver`` and ``select_version`` – the fetch/normalize and pure
  selection steps, usable on their own.
- ``render_template`` – the placeholder renderer.
- ``PromptFetcher`` – protocol for prompt sources, ``HttpPromptFetcher`` the
  bundled implementation and ``load_prompt_fetcher`` the config-based loader.

Higher layers should import from this module rather than individual
implementation files to keep the integration surface stable.
"""

from .api import HttpPromptFetcher
from .base import PromptFetcher, RevisionOverrideFetcher
from .errors import (
    ClosedError,
    FetchError,
    InitializationError,
    InitializationTimeoutError,
    NotInitializedError,
    PromptEngineError,
    RevisionOverrideError,
    SchemaError,
    TemplateNotFoundError,
    ToolNotFoundError,
    VersionNotFoundError,
)
from .loader import load_prompt_fetcher
from .manager import ManagerState, PromptExecutionContext, PromptManager
from .models import (
    LATEST,
    UNDEPLOYED_MAJOR,
    CandidateSet,
    PromptTracking,
    ResolvedPrompt,
    Revision,
    RevisionRef,
    Template,
    Tool,
    VersionSpec,
    WeightedMinorVersion,
)
from .renderer import parse_placeholders, render_template, render_tool
from .resolver import PromptResolver
from .selector import choose_weighted, select_version

__all__ = [
    "PromptManager",
    "PromptExecutionContext",
    "ManagerState",
    "PromptResolver",
    "PromptFetcher",
    "RevisionOverrideFetcher",
    "HttpPromptFetcher",
    "load_prompt_fetcher",
    "VersionSpec",
    "WeightedMinorVersion",
    "RevisionRef",
    "CandidateSet",
    "Revision",
    "ResolvedPrompt",
    "Template",
    "Tool",
    "PromptTracking",
    "LATEST",
    "UNDEPLOYED_MAJOR",
    "select_version",
    "choose_weighted",
    "render_template",
    "render_tool",
    "parse_placeholders",
    "PromptEngineError",
    "FetchError",
    "SchemaError",
    "VersionNotFoundError",
    "RevisionOverrideError",
    "InitializationError",
    "InitializationTimeoutError",
    "NotInitializedError",
    "ClosedError",
    "TemplateNotFoundError",
    "ToolNotFoundError",
]
