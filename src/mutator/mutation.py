from __future__ import annotations

from typing import Dict, List, Mapping

from src.common.annotation_keys import ConstraintKind

from .materializer import ReadyTerm, materialize_annotation
from .models import Pod
from .patch_builder import PatchOperation, build_affinity_patch, build_topology_spread_patch


def collect_constraints(
    pod: Pod, annotation_table: Mapping[str, ConstraintKind]
) -> Dict[ConstraintKind, List[ReadyTerm]]:
    """Materialize every recognised annotation present on ``pod``.

    Raises ``DecodeError`` for the first annotation that cannot be decoded.
    """

    labels = pod.labels
    annotations = pod.annotations
    appending: Dict[ConstraintKind, List[ReadyTerm]] = {kind: [] for kind in ConstraintKind}
    for key, kind in annotation_table.items():
        source = annotations.get(key)
        if source is None:
            continue
        appending[kind].extend(materialize_annotation(kind, source, labels, key=key))
    return appending


def build_pod_patch(pod: Pod, annotation_table: Mapping[str, ConstraintKind]) -> List[PatchOperation]:
    appending = collect_constraints(pod, annotation_table)
    operations = build_affinity_patch(
        pod,
        appending[ConstraintKind.POD_AFFINITY_HARD],
        appending[ConstraintKind.POD_AFFINITY_SOFT],
        appending[ConstraintKind.POD_ANTI_AFFINITY_HARD],
        appending[ConstraintKind.POD_ANTI_AFFINITY_SOFT],
    )
    operations.extend(build_topology_spread_patch(pod, appending[ConstraintKind.TOPOLOGY_SPREAD]))
    return operations


__all__ = ["build_pod_patch", "collect_constraints"]
