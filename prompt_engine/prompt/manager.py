"""Prompt manager: lifecycle, caching and background refresh.

:class:`PromptManager` owns one prompt id and version specification. It
resolves the prompt once on :meth:`PromptManager.init`, keeps the result as an
immutable :class:`~prompt_engine.prompt.models.ResolvedPrompt` snapshot, and
periodically re-resolves it on a background ``asyncio`` task.

Lifecycle::

    UNINITIALIZED -> INITIALIZING -> READY <-> REFRESHING
                                         \\-> CLOSED (from any state)

Callers use the current snapshot through :meth:`PromptManager.exec`, which
hands a :class:`PromptExecutionContext` bound to the snapshot that was current
when ``exec`` was called. A refresh swaps the manager's reference to a new
snapshot and never mutates the old one, so a callback (sync or async) never
observes a partially-updated prompt.

Refresh failures are logged (metadata only, never prompt text) and reported
to the optional ``on_refresh_error`` hook; the last good snapshot keeps
serving.
"""

from __future__ import annotations

import asyncio
import copy
import enum
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar, Union

from prompt_engine.core.config import PromptEngineSettings, get_settings

from .base import PromptFetcher
from .errors import (
    ClosedError,
    InitializationError,
    InitializationTimeoutError,
    NotInitializedError,
    RevisionOverrideError,
    TemplateNotFoundError,
    ToolNotFoundError,
)
from .models import PromptTracking, ResolvedPrompt, Template, Tool, VersionSpec
from .overrides import revision_override_for
from .renderer import render_template, render_tool
from .resolver import PromptResolver
from .selector import RandomSource

T = TypeVar("T")

# Lower bound for a positive refresh interval.
MIN_REFRESH_INTERVAL_SECONDS = 1.0


def _positive_timeout(name: str, value: Optional[float], default: float) -> float:
    if value is None:
        return default
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0 (got {value:g})")
    return value


class ManagerState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    REFRESHING = "refreshing"
    CLOSED = "closed"


class PromptExecutionContext:
    """Read-only view of one resolved prompt snapshot.

    Instances are created by :meth:`PromptManager.exec` and stay bound to the
    snapshot they were created with, even if the manager refreshes while the
    callback is still running.
    """

    def __init__(self, prompt: ResolvedPrompt) -> None:
        self._prompt = prompt

    @property
    def prompt(self) -> ResolvedPrompt:
        """The resolved prompt (a deep copy; the cached snapshot is shared)."""
        return self._prompt.model_copy(deep=True)

    @property
    def id(self) -> str:
        return self._prompt.id

    @property
    def version(self) -> str:
        return self._prompt.version

    @property
    def params(self) -> Dict[str, Any]:
        """Model parameters of the prompt (a copy; safe to modify)."""
        return copy.deepcopy(self._prompt.params)

    @property
    def templates(self) -> Tuple[Template, ...]:
        return self._prompt.templates

    @property
    def tools(self) -> Tuple[Tool, ...]:
        """Tool definitions of the prompt (deep copies; safe to modify)."""
        return tuple(tool.model_copy(deep=True) for tool in self._prompt.tools)

    def render(self, template_id: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Render the template ``template_id`` with ``params``.

        Raises:
            TemplateNotFoundError: If the prompt has no such template.
        """
        template = self._prompt.find_template(template_id)
        if template is None:
            raise TemplateNotFoundError(self._prompt.id, self._prompt.version, template_id)
        return render_template(template.content, params or {})

    def render_tool(self, tool_name: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Render the tool ``tool_name`` with ``params``.

        Raises:
            ToolNotFoundError: If the prompt defines no such tool.
        """
        if not self._prompt.tools:
            raise ToolNotFoundError(self._prompt.id, self._prompt.version, tool_name, no_tools=True)
        tool = self._prompt.find_tool(tool_name)
        if tool is None:
            raise ToolNotFoundError(self._prompt.id, self._prompt.version, tool_name)
        return render_tool(tool.definition, params or {})

    def track(self) -> PromptTracking:
        """Return provenance metadata for attaching to telemetry events."""
        return PromptTracking(
            id=self._prompt.id,
            version=self._prompt.version,
            templates=self._prompt.templates,
            params=copy.deepcopy(self._prompt.params) or None,
            tools=tuple(copy.deepcopy(t.definition) for t in self._prompt.tools) or None,
        )


class PromptManager:
    """Keep one prompt resolved, fresh and safely usable.

    Args:
        prompt_id: Identifier of the prompt to serve.
        version: A :class:`VersionSpec` or a mapping accepted by it, e.g.
            ``{"major": "1", "minor": "latest"}``.
        fetcher: Prompt source; defaults to the configured fetcher
            (see :func:`~prompt_engine.prompt.loader.load_prompt_fetcher`).
        resolver: Pre-built resolver; takes precedence over ``fetcher``.
        refresh_interval_seconds: Seconds between background refreshes;
            ``<= 0`` disables refresh. Defaults to settings.
        refresh_timeout_seconds: Timeout for one refresh attempt.
        init_timeout_seconds: Timeout for :meth:`init`.
        rng: Random source for weighted minor versions.
        on_refresh_error: Called with the exception of every failed refresh.
        settings: Settings to use instead of reading the environment.
        logger: Optional logger.

    Raises:
        ValueError: If the refresh interval is positive but shorter than
            one second, or a timeout is not positive.
    """

    def __init__(
        self,
        prompt_id: str,
        version: Union[VersionSpec, Mapping[str, Any]],
        *,
        fetcher: Optional[PromptFetcher] = None,
        resolver: Optional[PromptResolver] = None,
        refresh_interval_seconds: Optional[float] = None,
        refresh_timeout_seconds: Optional[float] = None,
        init_timeout_seconds: Optional[float] = None,
        rng: Optional[RandomSource] = None,
        on_refresh_error: Optional[Callable[[BaseException], None]] = None,
        settings: Optional[PromptEngineSettings] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._prompt_id = prompt_id
        self._spec = version if isinstance(version, VersionSpec) else VersionSpec.model_validate(version)
        self._logger = logger or logging.getLogger(__name__)

        interval = (
            refresh_interval_seconds
            if refresh_interval_seconds is not None
            else self._settings.refresh_interval_seconds
        )
        if 0 < interval < MIN_REFRESH_INTERVAL_SECONDS:
            raise ValueError(
                f"Refresh interval can't be shorter than {MIN_REFRESH_INTERVAL_SECONDS:g} second(s) (got {interval:g}s)"
            )
        self._refresh_interval = max(interval, 0.0)
        self._refresh_timeout = _positive_timeout(
            "refresh_timeout_seconds", refresh_timeout_seconds, self._settings.refresh_timeout_seconds
        )
        self._init_timeout = _positive_timeout("init_timeout_seconds", init_timeout_seconds, self._settings.init_timeout_seconds)
        self._on_refresh_error = on_refresh_error

        if resolver is None:
            if fetcher is None:
                from .loader import load_prompt_fetcher

                fetcher = load_prompt_fetcher(self._settings)
            resolver = PromptResolver(fetcher, rng=rng)
        self._resolver = resolver

        self._state = ManagerState.UNINITIALIZED
        self._current: Optional[ResolvedPrompt] = None
        self._override_revision: Optional[str] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._init_lock = asyncio.Lock()
        self._refresh_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def prompt_id(self) -> str:
        return self._prompt_id

    @property
    def version_spec(self) -> VersionSpec:
        return self._spec

    @property
    def state(self) -> ManagerState:
        return self._state

    @property
    def current(self) -> Optional[ResolvedPrompt]:
        """A copy of the snapshot ``exec`` would use right now, if any."""
        return self._current.model_copy(deep=True) if self._current is not None else None

    @property
    def _prefix(self) -> str:
        return f"[{self._prompt_id}@v{self._spec.major}]"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Resolve the prompt for the first time and start background refresh.

        Idempotent: returns immediately once the manager is ready. Concurrent
        callers share one initialization.

        Raises:
            ClosedError: If the manager was closed.
            InitializationTimeoutError: If resolving exceeds the init timeout.
            InitializationError: If resolving fails; the resolver error is
                chained as ``__cause__``.
        """
        self._ensure_open()
        if self._current is not None:
            return
        async with self._init_lock:
            self._ensure_open()
            if self._current is not None:
                return
            self._state = ManagerState.INITIALIZING
            try:
                prompt = await asyncio.wait_for(self._initial_resolve(), timeout=self._init_timeout)
            except asyncio.TimeoutError as exc:
                self._reset_after_failed_init()
                self._logger.error("%s Initialization timed out after %gs", self._prefix, self._init_timeout)
                raise InitializationTimeoutError(self._prompt_id, self._init_timeout) from exc
            except Exception as exc:
                self._reset_after_failed_init()
                self._logger.error("%s Failed to initialize prompt manager: %s", self._prefix, type(exc).__name__)
                raise InitializationError(f"Failed to initialize prompt '{self._prompt_id}': {exc}") from exc
            except BaseException:
                self._reset_after_failed_init()
                raise

            # close() may have run while the first fetch was in flight.
            self._ensure_open()
            self._current = prompt
            self._state = ManagerState.READY
            self._logger.info("%s Successfully initialized prompt manager (version %s)", self._prefix, prompt.version)
            self._start_refresh()

    def close(self) -> None:
        """Stop background refresh and reject further use.

        Does not wait for an in-flight refresh; its result is discarded.
        Calling ``close`` more than once is a no-op.
        """
        if self._state is ManagerState.CLOSED:
            return
        self._state = ManagerState.CLOSED
        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done():
            task.cancel()
        self._logger.info("%s Prompt manager closed", self._prefix)

    async def __aenter__(self) -> "PromptManager":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Usage
    # ------------------------------------------------------------------

    def exec(self, fn: Callable[[PromptExecutionContext], T]) -> T:
        """Call ``fn`` with a context bound to the current prompt snapshot.

        ``fn`` may be a coroutine function; the coroutine is returned for the
        caller to await and keeps the snapshot it was created with.

        Raises:
            ClosedError: If the manager was closed.
            NotInitializedError: If :meth:`init` has not completed.
        """
        self._ensure_open()
        prompt = self._current
        if prompt is None:
            raise NotInitializedError(self._prompt_id)
        return fn(PromptExecutionContext(prompt))

    async def refresh(self) -> bool:
        """Re-resolve the prompt once and swap in the result on success.

        Failures (including timeouts) keep the previous snapshot, are logged
        and passed to ``on_refresh_error``; they are never raised.

        Returns:
            ``True`` if a new snapshot was swapped in, ``False`` otherwise.

        Raises:
            ClosedError: If the manager was closed.
            NotInitializedError: If :meth:`init` has not completed.
        """
        self._ensure_open()
        if self._current is None:
            raise NotInitializedError(self._prompt_id)
        if self._override_revision is not None:
            self._logger.debug("%s Refresh skipped: pinned to revision override", self._prefix)
            return False

        async with self._refresh_lock:
            previous = self._current
            self._state = ManagerState.REFRESHING
            try:
                prompt = await asyncio.wait_for(
                    self._resolver.resolve(self._prompt_id, self._spec),
                    timeout=self._refresh_timeout,
                )
            except Exception as exc:
                if self._state is ManagerState.CLOSED:
                    return False
                self._state = ManagerState.READY
                self._report_refresh_failure(exc)
                return False
            finally:
                # Also covers cancellation of the caller.
                if self._state is ManagerState.REFRESHING:
                    self._state = ManagerState.READY

            if self._state is ManagerState.CLOSED:
                self._logger.debug("%s Discarding refresh result that arrived after close", self._prefix)
                return False

            self._current = prompt

        if previous is not None and previous.version != prompt.version:
            self._logger.info("%s Updated prompt from v%s to v%s", self._prefix, previous.version, prompt.version)
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._state is ManagerState.CLOSED:
            raise ClosedError(self._prompt_id)

    def _reset_after_failed_init(self) -> None:
        if self._state is not ManagerState.CLOSED:
            self._state = ManagerState.UNINITIALIZED

    async def _initial_resolve(self) -> ResolvedPrompt:
        revision_id = revision_override_for(self._prompt_id, self._settings)
        if revision_id is None:
            return await self._resolver.resolve(self._prompt_id, self._spec)

        if self._spec.is_undeployed:
            raise RevisionOverrideError(
                f"Prompt revision overrides are not supported for prompt managers using '{self._spec.major}'"
            )
        prompt = await self._resolver.resolve_revision_override(self._prompt_id, revision_id, self._spec.major)
        self._override_revision = revision_id
        self._logger.warning("%s Overriding prompt '%s' with revision '%s'!", self._prefix, self._prompt_id, revision_id)
        return prompt

    def _start_refresh(self) -> None:
        if self._refresh_interval <= 0:
            return
        if self._settings.is_testing_context:
            self._logger.info("%s Prompt refreshing is disabled when in a testing context.", self._prefix)
            return
        self._logger.info("%s Refreshing prompt every %g seconds", self._prefix, self._refresh_interval)
        self._refresh_task = asyncio.get_running_loop().create_task(self._refresh_loop())

    async def _refresh_loop(self) -> None:
        while self._state is not ManagerState.CLOSED:
            await asyncio.sleep(self._refresh_interval)
            if self._state is ManagerState.CLOSED:
                return
            await self.refresh()

    def _report_refresh_failure(self, exc: BaseException) -> None:
        reason = "timed out" if isinstance(exc, asyncio.TimeoutError) else "failed"
        # Never log prompt content; only metadata.
        self._logger.warning(
            "%s Prompt refresh %s; keeping version=%s error=%s",
            self._prefix,
            reason,
            self._current.version if self._current else "<none>",
            type(exc).__name__,
        )
        if self._on_refresh_error is None:
            return
        try:
            self._on_refresh_error(exc)
        except Exception as hook_exc:
            self._logger.warning("%s on_refresh_error hook raised %s", self._prefix, type(hook_exc).__name__)
