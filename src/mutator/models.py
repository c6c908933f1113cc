"""Kubernetes object shapes read from pods and annotations.

Only the members the webhook needs are modelled. Unknown members are ignored
when decoding, matching how the API server's typed clients treat them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator


class _KubeModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class LabelSelectorOperator(str, Enum):
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


class LabelSelectorRequirement(_KubeModel):
    key: str
    operator: LabelSelectorOperator
    values: Optional[List[str]] = None


class LabelSelector(_KubeModel):
    matchLabels: Optional[Dict[str, str]] = None
    matchExpressions: Optional[List[LabelSelectorRequirement]] = None


class PodAffinityTerm(_KubeModel):
    labelSelector: Optional[LabelSelector] = None
    namespaces: Optional[List[str]] = None
    topologyKey: str
    namespaceSelector: Optional[LabelSelector] = None


class WeightedPodAffinityTerm(_KubeModel):
    weight: StrictInt
    podAffinityTerm: PodAffinityTerm


class TopologySpreadConstraint(_KubeModel):
    maxSkew: StrictInt
    topologyKey: str
    whenUnsatisfiable: str
    labelSelector: Optional[LabelSelector] = None
    minDomains: Optional[StrictInt] = None
    nodeAffinityPolicy: Optional[str] = None
    nodeTaintsPolicy: Optional[str] = None


# Annotation-side shapes: the standard shape plus label keys resolved against
# the pod's own labels at admission time.

_LABEL_KEY_FIELDS = {"matchLabelKeys", "mismatchLabelKeys"}


def _null_as_empty(value: Any) -> Any:
    # null on an optional list member means the member is absent.
    return [] if value is None else value


class ExtendedPodAffinityTerm(PodAffinityTerm):
    matchLabelKeys: List[str] = Field(default_factory=list)
    mismatchLabelKeys: List[str] = Field(default_factory=list)

    label_keys_null_as_empty = field_validator("matchLabelKeys", "mismatchLabelKeys", mode="before")(
        _null_as_empty
    )

    def standard(self) -> PodAffinityTerm:
        """Return an independent copy of the term without the label-key lists."""

        return PodAffinityTerm.model_validate(self.model_dump(exclude=_LABEL_KEY_FIELDS))


class ExtendedWeightedPodAffinityTerm(_KubeModel):
    weight: StrictInt
    podAffinityTerm: ExtendedPodAffinityTerm


class ExtendedTopologySpreadConstraint(TopologySpreadConstraint):
    matchLabelKeys: List[str] = Field(default_factory=list)

    label_keys_null_as_empty = field_validator("matchLabelKeys", mode="before")(_null_as_empty)

    def standard(self) -> TopologySpreadConstraint:
        return TopologySpreadConstraint.model_validate(self.model_dump(exclude={"matchLabelKeys"}))


# Pod-side shapes. Existing constraint arrays are kept as raw JSON: the patch
# builder only needs to know whether they are present.


class PodAffinity(_KubeModel):
    requiredDuringSchedulingIgnoredDuringExecution: Optional[List[Dict[str, Any]]] = None
    preferredDuringSchedulingIgnoredDuringExecution: Optional[List[Dict[str, Any]]] = None


class Affinity(_KubeModel):
    podAffinity: Optional[PodAffinity] = None
    podAntiAffinity: Optional[PodAffinity] = None


class PodSpec(_KubeModel):
    affinity: Optional[Affinity] = None
    topologySpreadConstraints: Optional[List[Dict[str, Any]]] = None


class ObjectMeta(_KubeModel):
    name: Optional[str] = None
    generateName: Optional[str] = None
    namespace: Optional[str] = None
    labels: Optional[Dict[str, str]] = None
    annotations: Optional[Dict[str, str]] = None


class Pod(_KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PodSpec

    @property
    def labels(self) -> Dict[str, str]:
        return dict(self.metadata.labels or {})

    @property
    def annotations(self) -> Dict[str, str]:
        return dict(self.metadata.annotations or {})


def to_json_value(model: BaseModel) -> Dict[str, Any]:
    """Serialise a model into plain JSON data, omitting unset optional members."""

    return model.model_dump(mode="json", exclude_none=True)


__all__ = [
    "Affinity",
    "ExtendedPodAffinityTerm",
    "ExtendedTopologySpreadConstraint",
    "ExtendedWeightedPodAffinityTerm",
    "LabelSelector",
    "LabelSelectorOperator",
    "LabelSelectorRequirement",
    "ObjectMeta",
    "Pod",
    "PodAffinity",
    "PodAffinityTerm",
    "PodSpec",
    "TopologySpreadConstraint",
    "WeightedPodAffinityTerm",
    "to_json_value",
]
