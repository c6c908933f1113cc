"""Patch construction for scheduling constraints declared in pod annotations."""

from .mutation import build_pod_patch, collect_constraints
from .patch_builder import PatchOperation, build_affinity_patch, build_topology_spread_patch

__all__ = [
    "PatchOperation",
    "build_affinity_patch",
    "build_pod_patch",
    "build_topology_spread_patch",
    "collect_constraints",
]
