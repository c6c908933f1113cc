"""HTTP surface of the webhook: envelope handling, FastAPI app and CLI."""

from .admission import build_response, mutate_review, validate_review
from .settings import Settings, load_settings

__all__ = [
    "Settings",
    "build_response",
    "load_settings",
    "mutate_review",
    "validate_review",
]
