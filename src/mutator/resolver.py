"""Turn label-key references into label selector requirements using the pod's own labels."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from .models import LabelSelectorOperator, LabelSelectorRequirement


def resolve_match(key: str, labels: Mapping[str, str]) -> Optional[LabelSelectorRequirement]:
    """Select pods sharing this pod's value of ``key`` (``In``)."""

    return _resolve(key, labels, LabelSelectorOperator.IN)


def resolve_mismatch(key: str, labels: Mapping[str, str]) -> Optional[LabelSelectorRequirement]:
    """Select pods not sharing this pod's value of ``key`` (``NotIn``)."""

    return _resolve(key, labels, LabelSelectorOperator.NOT_IN)


def absent_key_requirement(
    key: str, operator: LabelSelectorOperator
) -> Optional[LabelSelectorRequirement]:
    """Requirement used when the pod has no label ``key``.

    A referenced key missing from the pod contributes nothing to the selector.
    """

    return None


def resolve_requirements(
    match_label_keys: Iterable[str],
    mismatch_label_keys: Iterable[str],
    labels: Mapping[str, str],
) -> List[LabelSelectorRequirement]:
    """Resolve both key lists, match-derived requirements first, in declaration order."""

    requirements: List[LabelSelectorRequirement] = []
    for key in match_label_keys:
        requirement = resolve_match(key, labels)
        if requirement is not None:
            requirements.append(requirement)
    for key in mismatch_label_keys:
        requirement = resolve_mismatch(key, labels)
        if requirement is not None:
            requirements.append(requirement)
    return requirements


def _resolve(
    key: str, labels: Mapping[str, str], operator: LabelSelectorOperator
) -> Optional[LabelSelectorRequirement]:
    if key not in labels:
        return absent_key_requirement(key, operator)
    return LabelSelectorRequirement(key=key, operator=operator, values=[labels[key]])


__all__ = [
    "absent_key_requirement",
    "resolve_match",
    "resolve_mismatch",
    "resolve_requirements",
]
