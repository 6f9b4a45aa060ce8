"""Pydantic models for prompt versions, candidates and resolved prompts.

Two families of models live here:

* Domain models (``VersionSpec``, ``CandidateSet``, ``Template``, ``Tool``,
  ``ResolvedPrompt``, ``PromptTracking``) are frozen. A refresh builds new
  instances and never mutates old ones, so snapshots handed to callers stay
  valid.
* Wire DTOs (``RawPromptPayload`` and friends) accept the flexible shapes the
  remote service returns and are normalized into domain models by the
  resolver.

All models share :class:`BaseSchema`, which maps snake_case attributes to the
camelCase keys used on the wire.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Sentinel major version selecting prompt revisions that were never deployed.
UNDEPLOYED_MAJOR = "dangerously-use-undeployed"
# Major version segment the service uses for undeployed revisions.
UNDEPLOYED_VERSION = "undeployed"
LATEST = "latest"


def _to_camel(s: str) -> str:
    """Convert snake_case to camelCase for JSON aliasing."""
    parts = s.split("_")
    return parts[0] + "".join(p.capitalize() or "_" for p in parts[1:])


class BaseSchema(BaseModel):
    """Shared base for prompt engine models.

    - Enables populate_by_name for using either snake_case or camelCase
    - Uses a snake->camel alias generator for JSON interop
    - Frozen: instances are immutable once validated
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
        alias_generator=_to_camel,
        frozen=True,
    )


# ---------------------------------------------------------------------------
# Version specification
# ---------------------------------------------------------------------------


class WeightedMinorVersion(BaseSchema):
    """One entry of a weighted minor version pool.

    Weights are relative, non-negative and need not sum to 100. Entries with
    weight 0 are kept in the pool but can never be selected.
    """

    version: str = Field(min_length=1, description="Minor version identifier.")
    weight: int = Field(ge=0, description="Relative selection weight.")


class RevisionRef(BaseSchema):
    """Explicit reference to an undeployed revision, e.g. ``{"revisionId": "rev-x"}``."""

    revision_id: str = Field(min_length=1)


MinorSpec = Union[RevisionRef, Tuple[WeightedMinorVersion, ...], str]


class VersionSpec(BaseSchema):
    """Which version of a prompt a manager should serve.

    Examples:
        >>> VersionSpec(major="1", minor="latest").minor_label
        'latest'
        >>> VersionSpec(major="2", minor=[{"version": "0", "weight": 10}, {"version": "1", "weight": 90}]).is_weighted
        True
        >>> VersionSpec(major=UNDEPLOYED_MAJOR, minor={"revisionId": "rev-x"}).revision_id
        'rev-x'
    """

    major: str = Field(min_length=1)
    minor: MinorSpec

    @field_validator("major")
    @classmethod
    def _check_major(cls, value: str) -> str:
        if value != UNDEPLOYED_MAJOR and not value.isdigit():
            raise ValueError(f"major version must be numeric or '{UNDEPLOYED_MAJOR}', got {value!r}")
        return value

    @model_validator(mode="after")
    def _check_minor(self) -> "VersionSpec":
        if isinstance(self.minor, tuple):
            if self.is_undeployed:
                raise ValueError("weighted minor versions cannot be used with undeployed revisions")
            if not self.minor:
                raise ValueError("weighted minor version pool must not be empty")
            if not any(entry.weight > 0 for entry in self.minor):
                raise ValueError("weighted minor version pool needs at least one positive weight")
        elif isinstance(self.minor, RevisionRef):
            if not self.is_undeployed:
                raise ValueError(f"revision references require major '{UNDEPLOYED_MAJOR}'")
        elif not self.minor:
            raise ValueError("minor version must not be empty")
        return self

    @property
    def is_undeployed(self) -> bool:
        return self.major == UNDEPLOYED_MAJOR

    @property
    def is_weighted(self) -> bool:
        return isinstance(self.minor, tuple)

    @property
    def request_major(self) -> str:
        """Major version segment used when talking to the fetch collaborator."""
        return UNDEPLOYED_VERSION if self.is_undeployed else self.major

    @property
    def revision_id(self) -> Optional[str]:
        """Exact undeployed revision id, or ``None`` when not pinned to one."""
        if not self.is_undeployed:
            return None
        if isinstance(self.minor, RevisionRef):
            return self.minor.revision_id
        if isinstance(self.minor, str) and self.minor != LATEST:
            return self.minor
        return None

    @property
    def minor_label(self) -> str:
        """Short, log-friendly rendering of the minor spec."""
        if isinstance(self.minor, tuple):
            return ",".join(f"{m.version}:{m.weight}" for m in self.minor)
        if isinstance(self.minor, RevisionRef):
            return self.minor.revision_id
        return self.minor


# ---------------------------------------------------------------------------
# Candidates and selection
# ---------------------------------------------------------------------------


class Revision(BaseSchema):
    """An undeployed revision reported by the service."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    created_at: Optional[datetime] = None


class CandidateSet(BaseSchema):
    """Versions that exist for one major version at fetch time."""

    model_config = ConfigDict(extra="ignore")

    major: str
    minor_versions: Tuple[str, ...] = ()
    revisions: Tuple[Revision, ...] = ()


class SelectedVersion(BaseSchema):
    """The concrete version picked by the version selector.

    ``minor`` is the value passed to the fetcher: a minor id for deployed
    prompts, a revision id for undeployed ones. ``version`` is the display
    string stored on the resolved prompt.
    """

    major: str
    minor: str
    version: str


# ---------------------------------------------------------------------------
# Resolved prompt
# ---------------------------------------------------------------------------


class Template(BaseSchema):
    """A prompt template and the placeholder names it references.

    ``version`` is the version of the prompt the template was resolved from.
    """

    id: str
    version: str
    content: str
    placeholders: Tuple[str, ...] = ()

    @property
    def required_placeholders(self) -> Tuple[str, ...]:
        return tuple(p for p in self.placeholders if not p.endswith("?"))

    @property
    def optional_placeholders(self) -> Tuple[str, ...]:
        return tuple(p[:-1] for p in self.placeholders if p.endswith("?"))


class Tool(BaseSchema):
    """A tool definition (OpenAI function-calling shape) plus its placeholders."""

    name: str
    definition: Dict[str, Any]
    placeholders: Tuple[str, ...] = ()


class ResolvedPrompt(BaseSchema):
    """Immutable snapshot of one fetched prompt version."""

    id: str
    version: str
    revision_id: Optional[str] = None
    templates: Tuple[Template, ...] = ()
    params: Dict[str, Any] = Field(default_factory=dict)
    tools: Tuple[Tool, ...] = ()

    def find_template(self, template_id: str) -> Optional[Template]:
        for template in self.templates:
            if template.id == template_id:
                return template
        return None

    def find_tool(self, name: str) -> Optional[Tool]:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None


class PromptTracking(BaseSchema):
    """Provenance metadata attached to downstream telemetry events."""

    id: str
    version: str
    templates: Tuple[Template, ...]
    params: Optional[Dict[str, Any]] = None
    tools: Optional[Tuple[Dict[str, Any], ...]] = None


# ---------------------------------------------------------------------------
# Wire DTOs
# ---------------------------------------------------------------------------


class RawTemplate(BaseSchema):
    """Template entry as returned by the service (``template`` or ``content``)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    template: Optional[str] = None
    content: Optional[str] = None

    @model_validator(mode="after")
    def _check_text(self) -> "RawTemplate":
        if self.template is None and self.content is None:
            raise ValueError(f"template {self.id!r} has no template text")
        return self

    @property
    def text(self) -> str:
        return self.template if self.template is not None else self.content or ""


class RawToolParams(BaseSchema):
    """Placeholder names the service reports for a tool."""

    model_config = ConfigDict(extra="ignore")

    name: str
    params: List[str] = Field(default_factory=list)


class RawPromptPayload(BaseSchema):
    """Prompt version payload returned by the fetch collaborator."""

    model_config = ConfigDict(extra="ignore")

    id: str
    revision_id: Optional[str] = None
    version: Optional[str] = None
    templates: List[RawTemplate] = Field(default_factory=list)
    params: Optional[Dict[str, Any]] = None
    tools: Optional[List[Dict[str, Any]]] = None
    tools_params: Optional[List[RawToolParams]] = None
