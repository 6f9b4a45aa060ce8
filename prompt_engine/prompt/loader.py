"""Fetcher loader utilities.

This module maps configuration (primarily the ``PROMPT_ENGINE_FETCHER``
environment variable) to a concrete :class:`PromptFetcher` implementation.

Two sources of fetchers are supported:

* The bundled :class:`~prompt_engine.prompt.api.client.HttpPromptFetcher`,
  used when the key is empty or ``"http"``.
* External packages that register a factory via the
  ``prompt_engine.fetchers`` entry-point group (e.g. a fetcher backed by a
  local prompt bundle or an internal gateway).

Failures to resolve or build an external fetcher never prevent startup; the
loader falls back to the HTTP fetcher and emits a warning.
"""

from __future__ import annotations

import logging
from importlib import metadata
from typing import Iterable, Optional

from prompt_engine.core.config import PromptEngineSettings, get_settings

from .base import PromptFetcher

_LOGGER = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "prompt_engine.fetchers"
_BUILTIN_KEYS = {"", "http"}


def _iter_entry_points(group: str) -> Iterable[metadata.EntryPoint]:
    """Return entry points for ``group``.

    Also used as an indirection point in tests so that behavior can be
    controlled without relying on the real environment.
    """

    try:
        eps = metadata.entry_points()
    except Exception:
        return []

    return eps.select(group=group)


def _default_fetcher(settings: PromptEngineSettings) -> PromptFetcher:
    from .api.client import HttpPromptFetcher

    return HttpPromptFetcher.from_settings(settings)


def load_prompt_fetcher(
    settings: Optional[PromptEngineSettings] = None,
    default: Optional[PromptFetcher] = None,
) -> PromptFetcher:
    """Load the configured :class:`PromptFetcher` instance.

    Resolution algorithm:

    1. Read ``settings.fetcher`` (``PROMPT_ENGINE_FETCHER``); default ``"http"``.
    2. If the key is empty or ``"http"``, return ``default`` when given,
       otherwise build an :class:`HttpPromptFetcher` from settings.
    3. Otherwise, search the ``prompt_engine.fetchers`` entry-point group for
       a matching ``ep.name``, call ``ep.load()`` to obtain a factory and call
       the factory without arguments.
    4. If the result conforms to :class:`PromptFetcher`, use it. Otherwise,
       log a warning and fall back to step 2.

    Raises:
        ValueError: If the HTTP fallback is needed but no API key is configured.
    """

    cfg = settings or get_settings()
    fetcher_key = (cfg.fetcher or "").strip()

    if fetcher_key not in _BUILTIN_KEYS:
        for ep in _iter_entry_points(ENTRY_POINT_GROUP):
            if ep.name != fetcher_key:
                continue
            try:
                factory = ep.load()
                fetcher = factory()
                if isinstance(fetcher, PromptFetcher):
                    return fetcher
                _LOGGER.warning(
                    "PromptFetcherLoader: entry point %s did not return a PromptFetcher; falling back to http",
                    ep.name,
                )
            except Exception as exc:
                _LOGGER.warning(
                    "PromptFetcherLoader: failed to load fetcher; name=%s entry_point=%s error=%s",
                    fetcher_key,
                    ep.name,
                    type(exc).__name__,
                )
            break
        _LOGGER.warning(
            "PromptFetcherLoader: using http fetcher after failing to resolve fetcher_key=%s",
            fetcher_key,
        )

    return default if default is not None else _default_fetcher(cfg)
