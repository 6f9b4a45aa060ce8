"""Fetch collaborator protocols used by the prompt resolver.

This module defines :class:`PromptFetcher`, a small, runtime-checkable
protocol that any prompt source must follow. The bundled HTTP implementation
lives in :mod:`prompt_engine.prompt.api.client`; other sources are wired in
via the ``prompt_engine.fetchers`` entry-point group (see
:mod:`prompt_engine.prompt.loader`).
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Union, runtime_checkable

from .models import CandidateSet


@runtime_checkable
class PromptFetcher(Protocol):
    """Protocol for the component that talks to the remote prompt service.

    Key design points:

    - **Two calls per resolve**: ``fetch_candidates`` reports which minor
      versions (or undeployed revisions) exist for a major version; the
      resolver picks one and asks ``fetch_prompt_version`` for its payload.
    - **Undeployed revisions**: ``major`` is ``"undeployed"`` and ``minor``
      carries the revision id.
    - **Already parsed**: both calls return decoded data; the resolver
      validates the shape and raises ``SchemaError`` on mismatch.

    Implementations should raise :class:`~prompt_engine.prompt.errors.FetchError`
    for transport/auth failures. Any other exception is wrapped into one by
    the resolver.
    """

    async def fetch_candidates(self, prompt_id: str, major: str) -> Union[CandidateSet, Mapping[str, Any]]:
        """Return the versions that currently exist for ``major``."""

        ...

    async def fetch_prompt_version(self, prompt_id: str, major: str, minor: str) -> Mapping[str, Any]:
        """Return the raw payload for one concrete version."""

        ...


@runtime_checkable
class RevisionOverrideFetcher(Protocol):
    """Optional capability: validate and fetch a CI revision override.

    Used only in a CI testing context where a test run pins a prompt to a
    specific revision. Implementations should raise
    :class:`~prompt_engine.prompt.errors.RevisionOverrideError` when the
    revision is not compatible with ``major``.
    """

    async def validate_revision_override(self, prompt_id: str, revision_id: str, major: str) -> Mapping[str, Any]:
        """Return the raw payload of ``revision_id`` if compatible with ``major``."""

        ...
