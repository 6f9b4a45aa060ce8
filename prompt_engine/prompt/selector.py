"""Version selection for prompt version specifications.

Pure functions that turn a :class:`~prompt_engine.prompt.models.VersionSpec`
plus the :class:`~prompt_engine.prompt.models.CandidateSet` reported by the
service into one concrete version. Nothing here performs I/O; the random
source used for weighted pools is injected by the caller so selection can be
reproduced with a seeded ``random.Random``.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence, Tuple

from .errors import VersionNotFoundError
from .models import (
    LATEST,
    UNDEPLOYED_VERSION,
    CandidateSet,
    Revision,
    RevisionRef,
    SelectedVersion,
    VersionSpec,
    WeightedMinorVersion,
)


class RandomSource(Protocol):
    def random(self) -> float: ...


_DEFAULT_RNG = random.Random()


def _minor_sort_key(minor: str) -> Tuple[int, int, str]:
    # Numeric minors order numerically and sort before non-numeric ids.
    if minor.isdigit():
        return (0, int(minor), minor)
    return (1, 0, minor)


def latest_minor(minor_versions: Sequence[str]) -> Optional[str]:
    """Return the greatest minor version, or ``None`` when there are none."""
    if not minor_versions:
        return None
    return max(minor_versions, key=_minor_sort_key)


def latest_revision(revisions: Sequence[Revision]) -> Optional[Revision]:
    """Return the most recently created revision.

    Revisions without a timestamp sort oldest; ties go to the later-listed
    revision.
    """
    best: Optional[Revision] = None
    best_key: Optional[datetime] = None
    floor = datetime.min.replace(tzinfo=timezone.utc)
    for revision in revisions:
        created = revision.created_at or floor
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if best_key is None or created >= best_key:
            best, best_key = revision, created
    return best


def choose_weighted(pool: Sequence[WeightedMinorVersion], rng: Optional[RandomSource] = None) -> WeightedMinorVersion:
    """Pick one entry of a weighted pool.

    Draws ``u`` uniformly from ``[0, total)`` where ``total`` is the sum of all
    weights, then walks the pool in order accumulating weights; the first
    entry whose cumulative weight exceeds ``u`` wins. Entries with weight 0
    are never picked.

    Raises:
        ValueError: If no entry has a positive weight.
    """
    eligible = [entry for entry in pool if entry.weight > 0]
    if not eligible:
        raise ValueError("weighted pool has no entry with a positive weight")
    total = sum(entry.weight for entry in eligible)
    draw = (rng or _DEFAULT_RNG).random() * total
    cumulative = 0
    for entry in eligible:
        cumulative += entry.weight
        if draw < cumulative:
            return entry
    # Only reachable if the random source returns 1.0.
    return eligible[-1]


def _require_minor(spec: VersionSpec, candidates: CandidateSet, minor: str, prompt_id: Optional[str]) -> None:
    if minor not in candidates.minor_versions:
        raise VersionNotFoundError(prompt_id, spec.major, minor)


def select_version(
    spec: VersionSpec,
    candidates: CandidateSet,
    rng: Optional[RandomSource] = None,
    *,
    prompt_id: Optional[str] = None,
) -> SelectedVersion:
    """Resolve ``spec`` against ``candidates`` to exactly one version.

    Args:
        spec: The version specification configured by the caller.
        candidates: Versions the service reported for ``spec.major``.
        rng: Random source for weighted pools; defaults to a module-level
            ``random.Random``.
        prompt_id: Only used to enrich error messages.

    Returns:
        The selected version.

    Raises:
        VersionNotFoundError: If the spec names a major, minor or revision
            that the candidate set does not contain.
    """
    if spec.is_undeployed:
        revision_id = spec.revision_id
        if revision_id is not None:
            return SelectedVersion(major=UNDEPLOYED_VERSION, minor=revision_id, version=f"revision:{revision_id}")
        newest = latest_revision(candidates.revisions)
        if newest is None:
            raise VersionNotFoundError(prompt_id, UNDEPLOYED_VERSION, LATEST)
        return SelectedVersion(major=UNDEPLOYED_VERSION, minor=newest.id, version=UNDEPLOYED_VERSION)

    minor = spec.minor
    if isinstance(minor, RevisionRef):  # pragma: no cover - rejected by VersionSpec validation
        raise VersionNotFoundError(prompt_id, spec.major, minor.revision_id)

    if isinstance(minor, tuple):
        for entry in minor:
            _require_minor(spec, candidates, entry.version, prompt_id)
        chosen = choose_weighted(minor, rng).version
    elif minor == LATEST:
        found = latest_minor(candidates.minor_versions)
        if found is None:
            raise VersionNotFoundError(prompt_id, spec.major, LATEST)
        chosen = found
    else:
        _require_minor(spec, candidates, minor, prompt_id)
        chosen = minor

    return SelectedVersion(major=spec.major, minor=chosen, version=f"{spec.major}.{chosen}")
