import copy
import itertools
import unittest
from typing import Any, Dict, List, Optional

import jsonpatch

from src.mutator.models import (
    LabelSelector,
    Pod,
    PodAffinityTerm,
    TopologySpreadConstraint,
    WeightedPodAffinityTerm,
)
from src.mutator.patch_builder import (
    PatchOperation,
    build_affinity_patch,
    build_topology_spread_patch,
    render_patch,
)

HARD = "requiredDuringSchedulingIgnoredDuringExecution"
SOFT = "preferredDuringSchedulingIgnoredDuringExecution"

# (branch, field) for each leaf list, in the order the builder emits them.
LEAVES = [
    ("podAffinity", HARD),
    ("podAffinity", SOFT),
    ("podAntiAffinity", HARD),
    ("podAntiAffinity", SOFT),
]


def _basic_pod() -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": "nginx-00000000-0000", "namespace": "default"},
        "spec": {
            "containers": [
                {
                    "name": "nginx",
                    "image": "nginx:mainline-alpine",
                    "ports": [{"name": "web", "containerPort": 80, "protocol": "TCP"}],
                }
            ]
        },
    }


def _hard_term(topology_key: str) -> PodAffinityTerm:
    return PodAffinityTerm(
        labelSelector=LabelSelector(matchLabels={"app": "nginx"}),
        topologyKey=topology_key,
    )


def _soft_term(topology_key: str) -> WeightedPodAffinityTerm:
    return WeightedPodAffinityTerm(weight=50, podAffinityTerm=_hard_term(topology_key))


def _spread(topology_key: str) -> TopologySpreadConstraint:
    return TopologySpreadConstraint(
        maxSkew=1,
        topologyKey=topology_key,
        whenUnsatisfiable="DoNotSchedule",
        labelSelector=LabelSelector(matchLabels={"app": "nginx"}),
    )


def _make_terms(field: str, count: int, prefix: str) -> List[Any]:
    factory = _hard_term if field == HARD else _soft_term
    return [factory(f"topology.kubernetes.io/{prefix}{idx}") for idx in range(count)]


def _pod_with_existing(existing: List[Optional[int]]) -> Dict[str, Any]:
    """``existing[i]`` is None for an absent leaf array, else the number of elements it holds."""

    raw = _basic_pod()
    for (branch, field), size in zip(LEAVES, existing):
        if size is None:
            continue
        affinity = raw["spec"].setdefault("affinity", {})
        node = affinity.setdefault(branch, {})
        node[field] = [term.model_dump(mode="json", exclude_none=True) for term in _make_terms(field, size, "host")]
    return raw


def _apply(raw: Dict[str, Any], operations: List[PatchOperation]) -> Dict[str, Any]:
    return jsonpatch.apply_patch(raw, render_patch(operations), in_place=False)


def _leaf(document: Dict[str, Any], branch: str, field: str) -> Optional[List[Any]]:
    return ((document["spec"].get("affinity") or {}).get(branch) or {}).get(field)


class AffinityPatchGridTests(unittest.TestCase):
    def test_append_length_and_order_over_all_tree_shapes(self) -> None:
        existing_choices = (None, 0, 1)
        append_choices = (0, 1, 2)
        for existing in itertools.product(existing_choices, repeat=4):
            for appending in itertools.product(append_choices, repeat=4):
                raw = _pod_with_existing(list(existing))
                snapshot = copy.deepcopy(raw)
                lists = [_make_terms(field, count, "zone") for (_, field), count in zip(LEAVES, appending)]
                operations = build_affinity_patch(Pod.model_validate(raw), *lists)
                patched = _apply(raw, operations)

                self.assertEqual(raw, snapshot)
                self.assertTrue(all(op.op == "add" for op in operations))
                for (branch, field), before, added in zip(LEAVES, existing, lists):
                    before_len = before or 0
                    result = _leaf(patched, branch, field)
                    if before is None and not added:
                        self.assertIsNone(result)
                        continue
                    self.assertEqual(len(result), before_len + len(added), (existing, appending, branch, field))
                    self.assertEqual(result[:before_len], _leaf(snapshot, branch, field) or [])
                    self.assertEqual(
                        result[before_len:],
                        [term.model_dump(mode="json", exclude_none=True) for term in added],
                    )

    def test_no_appends_emit_nothing(self) -> None:
        pod = Pod.model_validate(_basic_pod())
        self.assertEqual(build_affinity_patch(pod), [])
        self.assertEqual(build_topology_spread_patch(pod), [])


class AffinityPatchShapeTests(unittest.TestCase):
    def test_empty_pod_scaffolds_affinity_then_branch(self) -> None:
        pod = Pod.model_validate(_basic_pod())
        operations = build_affinity_patch(pod, hard_anti_affinity=[_hard_term("zone")])
        self.assertEqual(
            [(op.op, op.path) for op in operations],
            [
                ("add", "/spec/affinity"),
                ("add", "/spec/affinity/podAntiAffinity"),
                ("add", f"/spec/affinity/podAntiAffinity/{HARD}"),
            ],
        )
        self.assertEqual(operations[0].value, {})
        self.assertEqual(operations[1].value, {})
        self.assertEqual(len(operations[2].value), 1)

    def test_scaffold_minimality_with_existing_anti_affinity(self) -> None:
        raw = _basic_pod()
        raw["spec"]["affinity"] = {"podAntiAffinity": {HARD: [{"topologyKey": "host"}]}}
        operations = build_affinity_patch(Pod.model_validate(raw), hard_affinity=[_hard_term("zone")])
        self.assertEqual(
            [op.path for op in operations],
            ["/spec/affinity/podAffinity", f"/spec/affinity/podAffinity/{HARD}"],
        )

    def test_existing_empty_affinity_object_is_not_rescaffolded(self) -> None:
        raw = _basic_pod()
        raw["spec"]["affinity"] = {}
        operations = build_affinity_patch(Pod.model_validate(raw), soft_affinity=[_soft_term("zone")])
        self.assertEqual(
            [op.path for op in operations],
            ["/spec/affinity/podAffinity", f"/spec/affinity/podAffinity/{SOFT}"],
        )

    def test_existing_branch_object_without_arrays(self) -> None:
        raw = _basic_pod()
        raw["spec"]["affinity"] = {"podAffinity": {}}
        operations = build_affinity_patch(Pod.model_validate(raw), hard_affinity=[_hard_term("zone")])
        self.assertEqual([op.path for op in operations], [f"/spec/affinity/podAffinity/{HARD}"])

    def test_existing_term_receives_one_append_per_element(self) -> None:
        raw = _basic_pod()
        raw["spec"]["affinity"] = {"podAffinity": {HARD: [{"topologyKey": "original"}]}}
        appending = [_hard_term("zone")]
        operations = build_affinity_patch(Pod.model_validate(raw), hard_affinity=appending)
        self.assertEqual(len(operations), 1)
        self.assertEqual(operations[0].path, f"/spec/affinity/podAffinity/{HARD}/-")
        patched = _apply(raw, operations)
        result = patched["spec"]["affinity"]["podAffinity"][HARD]
        self.assertEqual(len(result), 2)
        self.assertEqual(result[0], {"topologyKey": "original"})

    def test_empty_existing_array_uses_element_appends(self) -> None:
        raw = _basic_pod()
        raw["spec"]["affinity"] = {"podAntiAffinity": {SOFT: []}}
        appending = [_soft_term("zone0"), _soft_term("zone1")]
        operations = build_affinity_patch(Pod.model_validate(raw), soft_anti_affinity=appending)
        self.assertEqual(
            [op.path for op in operations],
            [f"/spec/affinity/podAntiAffinity/{SOFT}/-", f"/spec/affinity/podAntiAffinity/{SOFT}/-"],
        )
        self.assertEqual(operations[1].value["podAffinityTerm"]["topologyKey"], "zone1")

    def test_scaffolds_precede_leaves_in_fixed_order(self) -> None:
        pod = Pod.model_validate(_basic_pod())
        operations = build_affinity_patch(
            pod,
            [_hard_term("a")],
            [_soft_term("b")],
            [_hard_term("c")],
            [_soft_term("d")],
        )
        self.assertEqual(
            [op.path for op in operations],
            [
                "/spec/affinity",
                "/spec/affinity/podAffinity",
                "/spec/affinity/podAntiAffinity",
                f"/spec/affinity/podAffinity/{HARD}",
                f"/spec/affinity/podAffinity/{SOFT}",
                f"/spec/affinity/podAntiAffinity/{HARD}",
                f"/spec/affinity/podAntiAffinity/{SOFT}",
            ],
        )

    def test_operation_renders_as_rfc6902(self) -> None:
        operation = PatchOperation("/spec/affinity", {})
        self.assertEqual(operation.to_dict(), {"op": "add", "path": "/spec/affinity", "value": {}})


class TopologySpreadPatchTests(unittest.TestCase):
    def test_append_length_over_before_and_append_sizes(self) -> None:
        for before, count in itertools.product((None, 0, 1, 2, 3), range(4)):
            raw = _basic_pod()
            if before is not None:
                raw["spec"]["topologySpreadConstraints"] = [
                    _spread(f"host{idx}").model_dump(mode="json", exclude_none=True) for idx in range(before)
                ]
            appending = [_spread(f"zone{idx}") for idx in range(count)]
            operations = build_topology_spread_patch(Pod.model_validate(raw), appending)
            patched = _apply(raw, operations)
            result = patched["spec"].get("topologySpreadConstraints")
            if before is None and count == 0:
                self.assertIsNone(result)
                self.assertEqual(operations, [])
                continue
            self.assertEqual(len(result), (before or 0) + count)
            self.assertEqual([c["topologyKey"] for c in result[before or 0 :]], [f"zone{i}" for i in range(count)])

    def test_absent_array_is_added_whole(self) -> None:
        operations = build_topology_spread_patch(Pod.model_validate(_basic_pod()), [_spread("a"), _spread("b")])
        self.assertEqual(len(operations), 1)
        self.assertEqual(operations[0].path, "/spec/topologySpreadConstraints")
        self.assertEqual([c["topologyKey"] for c in operations[0].value], ["a", "b"])

    def test_present_array_gets_element_appends(self) -> None:
        raw = _basic_pod()
        raw["spec"]["topologySpreadConstraints"] = [{"maxSkew": 1, "topologyKey": "x", "whenUnsatisfiable": "DoNotSchedule"}]
        operations = build_topology_spread_patch(Pod.model_validate(raw), [_spread("a"), _spread("b")])
        self.assertEqual([op.path for op in operations], ["/spec/topologySpreadConstraints/-"] * 2)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
