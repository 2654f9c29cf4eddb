# orders_core/errors.py
from __future__ import annotations

"""
Error taxonomy for the order workflow core.

Business failures (InvalidTransition, NotFound, InvalidState, ValidationError)
are normally carried inside outcome objects and only raised by the
*_or_raise helpers. Infrastructure failures (StoreTimeout, StoreUnavailable)
always propagate.
"""

from typing import Any, Dict, Optional


class LabTrackError(Exception):
    code = "error"
    http_status = 400

    def __init__(self, message: str, *, object_id: Any = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.object_id = object_id
        self.details = details or {}

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code, "detail": self.message}
        if self.object_id is not None:
            out["object_id"] = self.object_id
        if self.details:
            out.update(self.details)
        return out


# ===============================================================
# Business failures
# ===============================================================

class InvalidTransition(LabTrackError):
    """Order status machine precondition failed."""

    code = "invalid_transition"


class NotFound(LabTrackError):
    code = "not_found"
    http_status = 404


class InvalidState(LabTrackError):
    """Result is already terminal (verified or rejected)."""

    code = "invalid_state"
    http_status = 409


class ValidationError(LabTrackError):
    code = "validation_error"


# ===============================================================
# Infrastructure failures
# ===============================================================

class StoreError(LabTrackError):
    code = "store_error"
    http_status = 503


class StoreTimeout(StoreError):
    code = "store_timeout"
    http_status = 504


class StoreUnavailable(StoreError):
    code = "store_unavailable"
    http_status = 503


__all__ = [
    "LabTrackError",
    "InvalidTransition",
    "NotFound",
    "InvalidState",
    "ValidationError",
    "StoreError",
    "StoreTimeout",
    "StoreUnavailable",
]
