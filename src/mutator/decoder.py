from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError

from src.common.annotation_keys import ConstraintKind
from src.common.errors import DecodeError

from .models import (
    ExtendedPodAffinityTerm,
    ExtendedTopologySpreadConstraint,
    ExtendedWeightedPodAffinityTerm,
)

DecodedTerm = Union[
    ExtendedPodAffinityTerm,
    ExtendedWeightedPodAffinityTerm,
    ExtendedTopologySpreadConstraint,
]

_AFFINITY_TERMS = TypeAdapter(List[ExtendedPodAffinityTerm])
_WEIGHTED_TERMS = TypeAdapter(List[ExtendedWeightedPodAffinityTerm])
_SPREAD_CONSTRAINTS = TypeAdapter(List[ExtendedTopologySpreadConstraint])

_ADAPTERS: Dict[ConstraintKind, TypeAdapter] = {
    ConstraintKind.POD_AFFINITY_HARD: _AFFINITY_TERMS,
    ConstraintKind.POD_AFFINITY_SOFT: _WEIGHTED_TERMS,
    ConstraintKind.POD_ANTI_AFFINITY_HARD: _AFFINITY_TERMS,
    ConstraintKind.POD_ANTI_AFFINITY_SOFT: _WEIGHTED_TERMS,
    ConstraintKind.TOPOLOGY_SPREAD: _SPREAD_CONSTRAINTS,
}


def decode(kind: ConstraintKind, value: str, key: Optional[str] = None) -> List[DecodedTerm]:
    """Decode an annotation value into the extended terms for ``kind``.

    ``key`` names the annotation in error messages; it defaults to the kind.
    """

    adapter = _ADAPTERS[kind]
    try:
        return adapter.validate_json(value)
    except ValidationError as exc:
        raise DecodeError(key or kind.value, _summarise(exc)) from exc


def _summarise(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or str(exc)


__all__ = ["DecodedTerm", "decode"]
