"""Error types for the prompt engine.

Defines a small hierarchy of exceptions raised while fetching, resolving and
rendering prompts, and by the :class:`~prompt_engine.prompt.manager.PromptManager`
lifecycle guards.

Retry guidance:

- ``FetchError`` is transport/auth level and is generally retryable.
- ``SchemaError`` means the payload did not match the expected shape; this
  usually signals a client/server version mismatch and is not retryable.
- ``VersionNotFoundError`` is not retryable until the candidate versions
  reported by the service change.
"""

from __future__ import annotations

from typing import Any, Optional


class PromptEngineError(Exception):
    """Base error for all prompt engine exceptions."""


class FetchError(PromptEngineError):
    """Raised when the fetch collaborator fails at the transport or auth level.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code associated with the failure.
        details: Optional structured payload from the server (e.g., response body).
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class SchemaError(PromptEngineError):
    """Raised when a fetched payload does not match the expected shape."""


class VersionNotFoundError(PromptEngineError):
    """Raised when a version specification cannot be satisfied by the candidates."""

    def __init__(self, prompt_id: Optional[str], major: str, minor: str) -> None:
        target = f"'{prompt_id}' " if prompt_id else ""
        super().__init__(f"Prompt {target}has no version v{major}.{minor}")
        self.prompt_id = prompt_id
        self.major = major
        self.minor = minor


class RevisionOverrideError(PromptEngineError):
    """Raised when a CI revision override cannot be applied to a prompt."""


class InitializationError(PromptEngineError):
    """Raised when a prompt manager fails its first resolve.

    The underlying resolver error is chained as ``__cause__``.
    """


class InitializationTimeoutError(InitializationError):
    """Raised when initialization exceeds the configured timeout."""

    def __init__(self, prompt_id: str, timeout_seconds: float) -> None:
        super().__init__(f"Initializing prompt '{prompt_id}' timed out after {timeout_seconds:g}s")
        self.prompt_id = prompt_id
        self.timeout_seconds = timeout_seconds


class NotInitializedError(PromptEngineError):
    """Raised when a prompt manager is used before ``init()`` completed."""

    def __init__(self, prompt_id: str) -> None:
        super().__init__(f"Prompt manager for '{prompt_id}' is not initialized. Did you call init()?")


class ClosedError(PromptEngineError):
    """Raised when a prompt manager is used after ``close()``."""

    def __init__(self, prompt_id: str) -> None:
        super().__init__(f"Prompt manager for '{prompt_id}' has been closed")


class TemplateNotFoundError(PromptEngineError, KeyError):
    """Raised when rendering a template id the resolved prompt does not contain."""

    def __init__(self, prompt_id: str, version: str, template_id: str) -> None:
        super().__init__(f"[{prompt_id}@{version}] Template '{template_id}' not found.")
        self.template_id = template_id

    def __str__(self) -> str:
        return str(self.args[0])


class ToolNotFoundError(PromptEngineError, KeyError):
    """Raised when rendering a tool the resolved prompt does not define."""

    def __init__(self, prompt_id: str, version: str, tool_name: str, *, no_tools: bool = False) -> None:
        suffix = " No tools defined." if no_tools else ""
        super().__init__(f"[{prompt_id}@{version}] Tool '{tool_name}' not found.{suffix}")
        self.tool_name = tool_name

    def __str__(self) -> str:
        return str(self.args[0])
