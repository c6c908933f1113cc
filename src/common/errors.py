"""Error kinds shared by the mutation engine and the HTTP layer."""

from __future__ import annotations

from typing import Any, Dict, Optional


class WebhookError(Exception):
    """Base class for every error raised by the webhook."""


class EnvelopeError(WebhookError):
    """Raised when the AdmissionReview envelope cannot be accepted (HTTP 400)."""

    def __init__(self, error: str, message: str = "invalid request") -> None:
        super().__init__(f"{message}: {error}" if message else error)
        self.error = error
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message}


class AnnotationError(WebhookError):
    """Raised when a constraint annotation on the pod cannot be used.

    Never surfaces to the client: the pod is admitted without a patch.
    """

    def __init__(self, key: str, detail: str) -> None:
        super().__init__(f"annotation {key}: {detail}")
        self.key = key
        self.detail = detail


class DecodeError(AnnotationError):
    """Raised when an annotation value is not a JSON array of the expected shape."""


class InternalError(WebhookError):
    """Raised when the webhook fails to encode its own output (HTTP 500)."""

    def __init__(self, error: str, message: str = "server failure", cause: Optional[BaseException] = None) -> None:
        super().__init__(f"{message}: {error}")
        self.error = error
        self.message = message
        self.cause = cause

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message}


__all__ = [
    "WebhookError",
    "EnvelopeError",
    "AnnotationError",
    "DecodeError",
    "InternalError",
]
