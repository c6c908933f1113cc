"""Annotation keys recognised on pods and the constraint kind each one decodes to."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Dict, Mapping

DEFAULT_ANNOTATION_PREFIX = "kep-3633-alt.10h.in"


class ConstraintKind(str, Enum):
    """Constraint category; the value is the annotation name under the vendor prefix."""

    POD_AFFINITY_HARD = "podAffinity.requiredDuringSchedulingIgnoredDuringExecution"
    POD_AFFINITY_SOFT = "podAffinity.preferredDuringSchedulingIgnoredDuringExecution"
    POD_ANTI_AFFINITY_HARD = "podAntiAffinity.requiredDuringSchedulingIgnoredDuringExecution"
    POD_ANTI_AFFINITY_SOFT = "podAntiAffinity.preferredDuringSchedulingIgnoredDuringExecution"
    TOPOLOGY_SPREAD = "topologySpreadConstraints"

    @property
    def weighted(self) -> bool:
        return self in (ConstraintKind.POD_AFFINITY_SOFT, ConstraintKind.POD_ANTI_AFFINITY_SOFT)


def annotation_key(kind: ConstraintKind, prefix: str = DEFAULT_ANNOTATION_PREFIX) -> str:
    return f"{normalise_prefix(prefix)}/{kind.value}"


def normalise_prefix(prefix: str) -> str:
    cleaned = (prefix or "").strip().rstrip("/")
    if not cleaned:
        raise ValueError("Annotation prefix must not be empty")
    if "/" in cleaned:
        raise ValueError(f"Annotation prefix must not contain '/': {prefix!r}")
    return cleaned


@lru_cache(maxsize=None)
def _build_table(prefix: str) -> Dict[str, ConstraintKind]:
    return {annotation_key(kind, prefix): kind for kind in ConstraintKind}


def annotation_table(prefix: str = DEFAULT_ANNOTATION_PREFIX) -> Mapping[str, ConstraintKind]:
    """Map each recognised annotation key to its constraint kind, in a fixed order."""

    return dict(_build_table(normalise_prefix(prefix)))


__all__ = [
    "DEFAULT_ANNOTATION_PREFIX",
    "ConstraintKind",
    "annotation_key",
    "annotation_table",
    "normalise_prefix",
]
