"""Turn decoded annotation terms into standard Kubernetes constraint objects."""

from __future__ import annotations

from typing import List, Mapping, Optional, Sequence, Union

from src.common.annotation_keys import ConstraintKind

from .decoder import DecodedTerm, decode
from .models import (
    ExtendedPodAffinityTerm,
    ExtendedTopologySpreadConstraint,
    ExtendedWeightedPodAffinityTerm,
    LabelSelector,
    PodAffinityTerm,
    TopologySpreadConstraint,
    WeightedPodAffinityTerm,
)
from .resolver import resolve_requirements

ReadyTerm = Union[PodAffinityTerm, WeightedPodAffinityTerm, TopologySpreadConstraint]


def materialize_affinity_term(
    term: ExtendedPodAffinityTerm, labels: Mapping[str, str]
) -> PodAffinityTerm:
    ready = term.standard()
    ready.labelSelector = _with_requirements(
        ready.labelSelector, term.matchLabelKeys, term.mismatchLabelKeys, labels
    )
    return ready


def materialize_weighted_term(
    term: ExtendedWeightedPodAffinityTerm, labels: Mapping[str, str]
) -> WeightedPodAffinityTerm:
    return WeightedPodAffinityTerm(
        weight=term.weight,
        podAffinityTerm=materialize_affinity_term(term.podAffinityTerm, labels),
    )


def materialize_spread_constraint(
    constraint: ExtendedTopologySpreadConstraint, labels: Mapping[str, str]
) -> TopologySpreadConstraint:
    # matchLabelKeys is dropped by standard(); it only lives on in matchExpressions.
    ready = constraint.standard()
    ready.labelSelector = _with_requirements(
        ready.labelSelector, constraint.matchLabelKeys, (), labels
    )
    return ready


def materialize(
    kind: ConstraintKind, terms: Sequence[DecodedTerm], labels: Mapping[str, str]
) -> List[ReadyTerm]:
    """Resolve every decoded term of ``kind`` against ``labels``, keeping term order."""

    if kind is ConstraintKind.TOPOLOGY_SPREAD:
        return [materialize_spread_constraint(term, labels) for term in terms]
    if kind.weighted:
        return [materialize_weighted_term(term, labels) for term in terms]
    return [materialize_affinity_term(term, labels) for term in terms]


def materialize_annotation(
    kind: ConstraintKind,
    value: str,
    labels: Mapping[str, str],
    key: Optional[str] = None,
) -> List[ReadyTerm]:
    """Decode one annotation value and materialize its terms.

    Raises ``DecodeError`` when the value cannot be decoded.
    """

    return materialize(kind, decode(kind, value, key=key), labels)


def _with_requirements(
    selector: Optional[LabelSelector],
    match_label_keys: Sequence[str],
    mismatch_label_keys: Sequence[str],
    labels: Mapping[str, str],
) -> LabelSelector:
    if selector is None:
        selector = LabelSelector()
    # Expressions declared on the annotation term come first.
    expressions = list(selector.matchExpressions or [])
    expressions.extend(resolve_requirements(match_label_keys, mismatch_label_keys, labels))
    selector.matchExpressions = expressions
    return selector


__all__ = [
    "ReadyTerm",
    "materialize",
    "materialize_affinity_term",
    "materialize_annotation",
    "materialize_spread_constraint",
    "materialize_weighted_term",
]
