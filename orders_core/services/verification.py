# orders_core/services/verification.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from orders_core import notifier
from orders_core.errors import InvalidState, LabTrackError, NotFound, ValidationError
from orders_core.models import Result, WorkflowTransition
from orders_core.store import store_call
from orders_core.workflows import (
    RESULT_ENTERED,
    RESULT_PENDING_VERIFICATION,
    VERIFICATION_PENDING,
    VERIFICATION_REJECTED,
    VERIFICATION_VERIFIED,
    actor_name,
    coerce_pk,
)

logger = logging.getLogger(__name__)


@dataclass
class VerificationOutcome:
    ok: bool
    result_id: Any
    action: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    order_id: Optional[int] = None
    error: Optional[LabTrackError] = None

    def __bool__(self) -> bool:
        return self.ok

    @property
    def message(self) -> str:
        return self.error.message if self.error is not None else ""

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ok": self.ok,
            "result_id": self.result_id,
            "action": self.action,
            "from_status": self.from_status,
            "to_status": self.to_status,
        }
        if self.error is not None:
            out["error"] = self.error.as_dict()
        return out


def _failure(result_id, action: str, error: LabTrackError, from_status: Optional[str] = None) -> VerificationOutcome:
    logger.info("Result %s %s refused: %s", result_id, action, error.message)
    return VerificationOutcome(ok=False, result_id=result_id, action=action, from_status=from_status, error=error)


# Result ids arrive as raw strings from bulk payloads
coerce_result_id = coerce_pk


def _decide(
    result_id: Any,
    action: str,
    *,
    target: str,
    actor: Any,
    comment: Optional[str],
    now=None,
) -> VerificationOutcome:
    pk = coerce_result_id(result_id)
    if pk is None:
        return _failure(result_id, action, NotFound(f"Result {result_id} not found.", object_id=result_id))

    now = now or timezone.now()
    performer = actor_name(actor)

    with store_call(f"result {action}"):
        with transaction.atomic():
            row = (
                Result.objects.select_for_update()
                .filter(pk=pk)
                .values("order_id", "verification_status")
                .first()
            )
            if row is None:
                return _failure(result_id, action, NotFound(f"Result {result_id} not found.", object_id=result_id))

            current = row["verification_status"]
            if current != VERIFICATION_PENDING:
                return _failure(
                    result_id,
                    action,
                    InvalidState(
                        f"cannot {action}: already {current}",
                        object_id=result_id,
                        details={"verification_status": current},
                    ),
                    from_status=current,
                )

            updated = Result.objects.filter(pk=pk, verification_status=VERIFICATION_PENDING).update(
                verification_status=target,
                verified_at=now,
                verified_by=performer,
                review_comment=comment,
                manually_verified=True,
            )
            if updated != 1:
                return _failure(
                    result_id,
                    action,
                    InvalidState(f"cannot {action}: result changed concurrently", object_id=result_id),
                    from_status=current,
                )

            WorkflowTransition.objects.create(
                kind="result",
                object_id=pk,
                from_status=current,
                to_status=target,
                action=action,
                performed_by=performer,
                comment=comment or "",
            )
            notifier.publish_on_commit(row["order_id"], source=f"result.{action}")

    logger.info("Result %s %s by %s", pk, target, performer)
    return VerificationOutcome(
        ok=True,
        result_id=result_id,
        action=action,
        from_status=current,
        to_status=target,
        order_id=row["order_id"],
    )


def approve(result_id: Any, *, actor: Any = None, notes: Optional[str] = None, now=None) -> VerificationOutcome:
    """
    pending_verification -> verified.

    Records who verified and when, stores the notes as the review comment
    and marks the result as manually verified.
    """
    notes = (notes or "").strip() or None
    return _decide(result_id, "approve", target=VERIFICATION_VERIFIED, actor=actor, comment=notes, now=now)


def reject(result_id: Any, reason: Optional[str], *, actor: Any = None, now=None) -> VerificationOutcome:
    """
    pending_verification -> rejected. A non-blank reason is required.
    """
    reason = (reason or "").strip()
    if not reason:
        return _failure(result_id, "reject", ValidationError("A rejection reason is required.", object_id=result_id))
    return _decide(result_id, "reject", target=VERIFICATION_REJECTED, actor=actor, comment=reason, now=now)


def submit_result(result_id: Any, *, actor: Any = None) -> VerificationOutcome:
    """
    Move a draft (entered) result into the verification queue.
    """
    pk = coerce_result_id(result_id)
    if pk is None:
        return _failure(result_id, "submit", NotFound(f"Result {result_id} not found.", object_id=result_id))

    performer = actor_name(actor)

    with store_call("result submit"):
        with transaction.atomic():
            row = (
                Result.objects.select_for_update()
                .filter(pk=pk)
                .values("order_id", "status", "verification_status")
                .first()
            )
            if row is None:
                return _failure(result_id, "submit", NotFound(f"Result {result_id} not found.", object_id=result_id))

            if row["verification_status"] != VERIFICATION_PENDING:
                return _failure(
                    result_id,
                    "submit",
                    InvalidState(f"cannot submit: already {row['verification_status']}", object_id=result_id),
                    from_status=row["status"],
                )
            if row["status"] != RESULT_ENTERED:
                return _failure(
                    result_id,
                    "submit",
                    InvalidState("cannot submit: already submitted for verification", object_id=result_id),
                    from_status=row["status"],
                )

            updated = Result.objects.filter(
                pk=pk,
                status=RESULT_ENTERED,
                verification_status=VERIFICATION_PENDING,
            ).update(status=RESULT_PENDING_VERIFICATION)
            if updated != 1:
                return _failure(
                    result_id,
                    "submit",
                    InvalidState("cannot submit: result changed concurrently", object_id=result_id),
                    from_status=row["status"],
                )

            WorkflowTransition.objects.create(
                kind="result",
                object_id=pk,
                from_status=RESULT_ENTERED,
                to_status=RESULT_PENDING_VERIFICATION,
                action="submit",
                performed_by=performer,
            )
            notifier.publish_on_commit(row["order_id"], source="result.submit")

    return VerificationOutcome(
        ok=True,
        result_id=result_id,
        action="submit",
        from_status=RESULT_ENTERED,
        to_status=RESULT_PENDING_VERIFICATION,
        order_id=row["order_id"],
    )


__all__ = [
    "VerificationOutcome",
    "approve",
    "reject",
    "submit_result",
    "coerce_result_id",
]
