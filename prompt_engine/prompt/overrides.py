"""Prompt revision overrides for CI test runs.

When a test run is triggered from CI, ``PROMPT_ENGINE_CI_TEST_RUN_BUILD_ID``
is set and the run may pin prompts to specific revisions so a revision can be
evaluated before it is deployed. Two formats are accepted:

* ``PROMPT_ENGINE_OVERRIDES``: ``{"promptRevisions": {"<prompt id>": "<revision id>"}}``
  (preferred)
* ``PROMPT_ENGINE_OVERRIDES_PROMPT_REVISIONS``: ``{"<prompt id>": "<revision id>"}``
  (legacy)

Overrides are ignored outside a testing context.
"""

from __future__ import annotations

import json
import logging
from typing import Dict, Optional

from prompt_engine.core.config import PromptEngineSettings, get_settings

_LOGGER = logging.getLogger(__name__)


def _parse_json_object(raw: str, source: str) -> Dict[str, object]:
    try:
        data = json.loads(raw)
    except ValueError:
        _LOGGER.warning("Ignoring %s: value is not valid JSON", source)
        return {}
    if not isinstance(data, dict):
        _LOGGER.warning("Ignoring %s: expected a JSON object, got %s", source, type(data).__name__)
        return {}
    return data


def _as_revision_map(value: object) -> Dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items() if isinstance(v, str) and v}


def prompt_revision_overrides(settings: Optional[PromptEngineSettings] = None) -> Dict[str, str]:
    """Return the prompt id -> revision id overrides for the current CI test run.

    The unified format takes precedence over the legacy one. Outside a testing
    context the result is always empty.
    """
    cfg = settings or get_settings()
    if not cfg.is_testing_context:
        return {}

    if cfg.overrides:
        unified = _parse_json_object(cfg.overrides, "PROMPT_ENGINE_OVERRIDES")
        if "promptRevisions" in unified:
            return _as_revision_map(unified["promptRevisions"])

    if cfg.overrides_prompt_revisions:
        legacy = _parse_json_object(cfg.overrides_prompt_revisions, "PROMPT_ENGINE_OVERRIDES_PROMPT_REVISIONS")
        return _as_revision_map(legacy)

    return {}


def revision_override_for(prompt_id: str, settings: Optional[PromptEngineSettings] = None) -> Optional[str]:
    """Return the revision id pinned for ``prompt_id``, if any."""
    return prompt_revision_overrides(settings).get(prompt_id)
