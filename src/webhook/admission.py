"""AdmissionReview handling: accept the envelope, build the patch, wrap the response."""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import jsonpatch
from pydantic import BaseModel, ConfigDict, ValidationError

from src.common.annotation_keys import annotation_table
from src.common.errors import AnnotationError, EnvelopeError, InternalError
from src.mutator.models import Pod
from src.mutator.mutation import build_pod_patch
from src.mutator.patch_builder import PatchOperation, render_patch

from .settings import Settings

logger = logging.getLogger(__name__)

ADMISSION_API_VERSION = "admission.k8s.io/v1"
ADMISSION_KIND = "AdmissionReview"
PATCH_TYPE_JSON_PATCH = "JSONPatch"


class GroupVersionResource(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    group: str = ""
    version: str
    resource: str

    def key(self) -> Tuple[str, str, str]:
        return (self.group, self.version, self.resource)


PODS_V1 = GroupVersionResource(group="", version="v1", resource="pods")


class AdmissionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    uid: str
    resource: GroupVersionResource
    subResource: Optional[str] = None
    operation: str
    name: Optional[str] = None
    namespace: Optional[str] = None
    object: Optional[Dict[str, Any]] = None


class AdmissionReview(BaseModel):
    model_config = ConfigDict(extra="ignore")

    apiVersion: Optional[str] = None
    kind: Optional[str] = None
    request: Optional[AdmissionRequest] = None


@dataclass(frozen=True)
class AcceptedRequest:
    request: AdmissionRequest
    pod: Pod
    raw_pod: Dict[str, Any]


def validate_review(body: bytes) -> AcceptedRequest:
    """Accept only CREATE of core/v1 pods (no subresource); raise ``EnvelopeError`` otherwise."""

    try:
        review = AdmissionReview.model_validate_json(body)
    except ValidationError as exc:
        raise EnvelopeError(str(exc), "invalid request: failed to unmarshal request body") from exc

    request = review.request
    if request is None:
        raise EnvelopeError('request does not contain "request" field')
    if request.operation != "CREATE":
        raise EnvelopeError("handle CREATE operation only")
    if request.resource.key() != PODS_V1.key():
        raise EnvelopeError("accept only core/v1/pods")
    if request.subResource:
        raise EnvelopeError("accept only core/v1/pods itself, not subresources")

    if request.object is None:
        raise EnvelopeError("request.object is missing", "failed to unmarshal request.object as core/v1/pods")
    try:
        pod = Pod.model_validate(request.object)
    except ValidationError as exc:
        raise EnvelopeError(str(exc), "failed to unmarshal request.object as core/v1/pods") from exc
    return AcceptedRequest(request=request, pod=pod, raw_pod=request.object)


def build_response(uid: str, operations: Sequence[PatchOperation]) -> Dict[str, Any]:
    response: Dict[str, Any] = {"uid": uid, "allowed": True}
    if operations:
        response["patchType"] = PATCH_TYPE_JSON_PATCH
        response["patch"] = encode_patch(operations)
    return {"apiVersion": ADMISSION_API_VERSION, "kind": ADMISSION_KIND, "response": response}


def encode_patch(operations: Sequence[PatchOperation]) -> str:
    try:
        document = jsonpatch.JsonPatch(render_patch(operations)).to_string()
    except (jsonpatch.InvalidJsonPatch, TypeError, ValueError) as exc:
        raise InternalError(f"failed to encode patch: {exc}", cause=exc) from exc
    return base64.b64encode(document.encode("utf-8")).decode("ascii")


def verify_patch(raw_pod: Dict[str, Any], operations: Sequence[PatchOperation]) -> Dict[str, Any]:
    """Apply the patch to a copy of the pod; raise ``InternalError`` on any conflict."""

    try:
        return jsonpatch.apply_patch(raw_pod, render_patch(operations), in_place=False)
    except (jsonpatch.JsonPatchException, jsonpatch.JsonPointerException) as exc:
        raise InternalError(f"generated patch does not apply: {exc}", cause=exc) from exc


def mutate_review(body: bytes, settings: Settings) -> Dict[str, Any]:
    """Handle one AdmissionReview body and return the response review.

    Envelope problems raise ``EnvelopeError``. A malformed annotation admits the
    pod unmodified.
    """

    accepted = validate_review(body)
    request = accepted.request
    operations: List[PatchOperation]
    try:
        operations = build_pod_patch(accepted.pod, annotation_table(settings.annotation_prefix))
    except AnnotationError as exc:
        logger.warning("uid=%s: admitting pod without patch: %s", request.uid, exc)
        operations = []

    if operations:
        if settings.verify_patches:
            verify_patch(accepted.raw_pod, operations)
        metadata = accepted.pod.metadata
        logger.info(
            "uid=%s ns=%s name=%s: patch with %d operation(s)",
            request.uid,
            request.namespace or metadata.namespace,
            metadata.name or metadata.generateName,
            len(operations),
        )
    return build_response(request.uid, operations)


__all__ = [
    "ADMISSION_API_VERSION",
    "AcceptedRequest",
    "AdmissionRequest",
    "AdmissionReview",
    "GroupVersionResource",
    "PODS_V1",
    "build_response",
    "encode_patch",
    "mutate_review",
    "validate_review",
    "verify_patch",
]
