"""Prompt resolver: fetch, select and normalize.

The resolver asks the injected :class:`~prompt_engine.prompt.base.PromptFetcher`
for the candidate versions of a prompt, lets the version selector pick one,
fetches that version's payload and normalizes it into an immutable
:class:`~prompt_engine.prompt.models.ResolvedPrompt`.

It holds no state between calls; caching and refresh are the manager's job.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Dict, Mapping, Optional, TypeVar

from pydantic import ValidationError

from .base import PromptFetcher, RevisionOverrideFetcher
from .errors import FetchError, PromptEngineError, RevisionOverrideError, SchemaError
from .models import (
    UNDEPLOYED_VERSION,
    CandidateSet,
    RawPromptPayload,
    ResolvedPrompt,
    SelectedVersion,
    Template,
    Tool,
    VersionSpec,
)
from .renderer import parse_placeholders, parse_placeholders_in
from .selector import RandomSource, select_version

T = TypeVar("T")


class PromptResolver:
    """Resolve a prompt id and version spec into a :class:`ResolvedPrompt`.

    Errors:
        FetchError: The fetcher failed (transport, auth, unexpected exception).
        VersionNotFoundError: The spec does not match the fetched candidates.
        SchemaError: A candidate set or payload has an unexpected shape.
    """

    def __init__(
        self,
        fetcher: PromptFetcher,
        *,
        rng: Optional[RandomSource] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not isinstance(fetcher, PromptFetcher):
            raise TypeError(f"Fetcher {type(fetcher).__name__} does not conform to PromptFetcher protocol")
        self._fetcher = fetcher
        self._rng = rng
        self._logger = logger or logging.getLogger(__name__)

    @property
    def fetcher(self) -> PromptFetcher:
        return self._fetcher

    async def resolve(self, prompt_id: str, spec: VersionSpec) -> ResolvedPrompt:
        """Fetch and resolve the version of ``prompt_id`` that ``spec`` selects."""
        if spec.revision_id is not None:
            # Exact undeployed revisions are fetched directly; there is
            # nothing to choose between.
            selected = select_version(spec, CandidateSet(major=UNDEPLOYED_VERSION), self._rng, prompt_id=prompt_id)
        else:
            raw_candidates = await self._call(
                f"list versions of {prompt_id}@v{spec.request_major}",
                self._fetcher.fetch_candidates(prompt_id, spec.request_major),
            )
            candidates = self._validate_candidates(raw_candidates, spec.request_major)
            selected = select_version(spec, candidates, self._rng, prompt_id=prompt_id)

        self._logger.debug(
            "PromptResolver.resolve: prompt=%s spec=v%s.%s selected=%s",
            prompt_id,
            spec.major,
            spec.minor_label,
            selected.version,
        )
        payload = await self._call(
            f"fetch {prompt_id}@v{selected.major}.{selected.minor}",
            self._fetcher.fetch_prompt_version(prompt_id, selected.major, selected.minor),
        )
        return normalize_payload(payload, selected)

    async def resolve_revision_override(self, prompt_id: str, revision_id: str, major: str) -> ResolvedPrompt:
        """Resolve a CI revision override for ``prompt_id`` against ``major``.

        Raises:
            RevisionOverrideError: If the fetcher cannot validate overrides or
                the revision is incompatible with ``major``.
        """
        if not isinstance(self._fetcher, RevisionOverrideFetcher):
            raise RevisionOverrideError(
                f"Fetcher {type(self._fetcher).__name__} does not support revision overrides"
            )
        payload = await self._call(
            f"validate revision {revision_id} of {prompt_id}",
            self._fetcher.validate_revision_override(prompt_id, revision_id, major),
        )
        selected = SelectedVersion(major=major, minor=revision_id, version=f"revision:{revision_id}")
        return normalize_payload(payload, selected)

    async def _call(self, what: str, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except PromptEngineError:
            raise
        except Exception as exc:
            raise FetchError(f"Failed to {what}: {type(exc).__name__}: {exc}") from exc

    @staticmethod
    def _validate_candidates(raw: Any, major: str) -> CandidateSet:
        if isinstance(raw, CandidateSet):
            return raw
        if not isinstance(raw, Mapping):
            raise SchemaError(f"Expected a candidate set mapping, got {type(raw).__name__}")
        data: Dict[str, Any] = dict(raw)
        data.setdefault("major", major)
        try:
            return CandidateSet.model_validate(data)
        except ValidationError as exc:
            raise SchemaError(f"Malformed candidate set for major {major!r}: {exc}") from exc


def _flatten_params(params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    if not params:
        return {}
    nested = params.get("params")
    if isinstance(nested, Mapping):
        return dict(nested)
    return dict(params)


def _tool_name(definition: Mapping[str, Any]) -> Optional[str]:
    function = definition.get("function")
    if isinstance(function, Mapping) and isinstance(function.get("name"), str):
        return function["name"]
    name = definition.get("name")
    return name if isinstance(name, str) else None


def normalize_payload(payload: Any, selected: SelectedVersion) -> ResolvedPrompt:
    """Normalize a raw payload into a :class:`ResolvedPrompt`.

    - ``params`` may be flat or wrapped as ``{"params": {...}}``.
    - Template text may be under ``template`` or ``content``.
    - Tool placeholders come from ``toolsParams`` when the service reports
      them, otherwise from scanning the tool definition.

    Raises:
        SchemaError: If the payload does not match the expected shape.
    """
    try:
        raw = RawPromptPayload.model_validate(payload)
    except ValidationError as exc:
        raise SchemaError(f"Malformed prompt payload for v{selected.major}.{selected.minor}: {exc}") from exc

    templates = tuple(
        Template(id=t.id, version=selected.version, content=t.text, placeholders=parse_placeholders(t.text))
        for t in raw.templates
    )

    declared = {tp.name: tuple(sorted(set(tp.params))) for tp in raw.tools_params or []}
    tools = []
    for definition in raw.tools or []:
        name = _tool_name(definition)
        if name is None:
            raise SchemaError(f"Tool definition without a name in prompt {raw.id!r}")
        placeholders = declared.get(name)
        if placeholders is None:
            placeholders = parse_placeholders_in(definition)
        tools.append(Tool(name=name, definition=dict(definition), placeholders=placeholders))

    revision_id = raw.revision_id
    if revision_id is None and selected.major == UNDEPLOYED_VERSION:
        revision_id = selected.minor

    return ResolvedPrompt(
        id=raw.id,
        version=selected.version,
        revision_id=revision_id,
        templates=templates,
        params=_flatten_params(raw.params),
        tools=tuple(tools),
    )
