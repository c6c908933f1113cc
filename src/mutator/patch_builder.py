"""Build RFC 6902 JSON patches that append scheduling constraints to a pod.

Operations are additive only. Intermediate objects are scaffolded with ``{}``
when missing, a missing array is added whole, and an existing array (even an
empty one) receives one ``/-`` append per element. Every operation is valid
against the original pod once the operations before it have been applied.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from .models import (
    Pod,
    PodAffinity,
    PodAffinityTerm,
    TopologySpreadConstraint,
    WeightedPodAffinityTerm,
    to_json_value,
)

AFFINITY_PATH = "/spec/affinity"
TOPOLOGY_SPREAD_PATH = "/spec/topologySpreadConstraints"
HARD_FIELD = "requiredDuringSchedulingIgnoredDuringExecution"
SOFT_FIELD = "preferredDuringSchedulingIgnoredDuringExecution"


@dataclass(frozen=True)
class PatchOperation:
    path: str
    value: Any
    op: str = "add"

    def to_dict(self) -> Dict[str, Any]:
        return {"op": self.op, "path": self.path, "value": self.value}


@dataclass(frozen=True)
class _Branch:
    name: str
    current: Optional[PodAffinity]
    hard: Sequence[PodAffinityTerm]
    soft: Sequence[WeightedPodAffinityTerm]

    @property
    def needed(self) -> bool:
        return bool(self.hard) or bool(self.soft)

    @property
    def path(self) -> str:
        return f"{AFFINITY_PATH}/{self.name}"


def build_affinity_patch(
    pod: Pod,
    hard_affinity: Sequence[PodAffinityTerm] = (),
    soft_affinity: Sequence[WeightedPodAffinityTerm] = (),
    hard_anti_affinity: Sequence[PodAffinityTerm] = (),
    soft_anti_affinity: Sequence[WeightedPodAffinityTerm] = (),
) -> List[PatchOperation]:
    affinity = pod.spec.affinity
    branches = (
        _Branch("podAffinity", affinity.podAffinity if affinity else None, hard_affinity, soft_affinity),
        _Branch(
            "podAntiAffinity",
            affinity.podAntiAffinity if affinity else None,
            hard_anti_affinity,
            soft_anti_affinity,
        ),
    )

    operations: List[PatchOperation] = []
    if not any(branch.needed for branch in branches):
        return operations

    if affinity is None:
        operations.append(PatchOperation(AFFINITY_PATH, {}))
    for branch in branches:
        if branch.needed and branch.current is None:
            operations.append(PatchOperation(branch.path, {}))

    for branch in branches:
        current = branch.current
        operations.extend(
            _append_operations(
                f"{branch.path}/{HARD_FIELD}",
                current.requiredDuringSchedulingIgnoredDuringExecution if current else None,
                branch.hard,
            )
        )
        operations.extend(
            _append_operations(
                f"{branch.path}/{SOFT_FIELD}",
                current.preferredDuringSchedulingIgnoredDuringExecution if current else None,
                branch.soft,
            )
        )
    return operations


def build_topology_spread_patch(
    pod: Pod, constraints: Sequence[TopologySpreadConstraint] = ()
) -> List[PatchOperation]:
    return _append_operations(TOPOLOGY_SPREAD_PATH, pod.spec.topologySpreadConstraints, constraints)


def _append_operations(
    path: str, existing: Optional[Sequence[Any]], items: Sequence[BaseModel]
) -> List[PatchOperation]:
    if not items:
        return []
    values = [to_json_value(item) for item in items]
    if existing is None:
        return [PatchOperation(path, values)]
    return [PatchOperation(f"{path}/-", value) for value in values]


def render_patch(operations: Sequence[PatchOperation]) -> List[Dict[str, Any]]:
    return [operation.to_dict() for operation in operations]


__all__ = [
    "AFFINITY_PATH",
    "HARD_FIELD",
    "SOFT_FIELD",
    "TOPOLOGY_SPREAD_PATH",
    "PatchOperation",
    "build_affinity_patch",
    "build_topology_spread_patch",
    "render_patch",
]
