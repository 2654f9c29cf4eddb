# orders_core/services/verification_bulk.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from orders_core.errors import StoreError
from orders_core.services.verification import approve, reject

logger = logging.getLogger(__name__)


@dataclass
class BulkOutcome:
    success: bool
    success_count: int = 0
    failed_ids: List[Any] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.success

    def as_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "success_count": self.success_count,
            "failed_ids": list(self.failed_ids),
            "errors": dict(self.errors),
        }


def _run(ids: Iterable[Any], decide, label: str) -> BulkOutcome:
    """
    Apply `decide(id)` to each id independently.

    - Never raises for per-item failures
    - No cross-row atomicity: earlier successes stay committed
    - Duplicated ids are attempted each time
    """
    ids = list(ids or [])
    if not ids:
        return BulkOutcome(success=False)

    outcome = BulkOutcome(success=True)

    for result_id in ids:
        try:
            single = decide(result_id)
        except StoreError as exc:
            # one unreachable row must not abort the rest of the batch
            logger.error("Bulk %s of result %s hit a store error: %s", label, result_id, exc)
            outcome.failed_ids.append(result_id)
            outcome.errors[str(result_id)] = exc.message
            continue

        if single:
            outcome.success_count += 1
        else:
            outcome.failed_ids.append(result_id)
            outcome.errors[str(result_id)] = single.message

    outcome.success = not outcome.failed_ids
    logger.info(
        "Bulk %s: %d succeeded, %d failed",
        label,
        outcome.success_count,
        len(outcome.failed_ids),
    )
    return outcome


def bulk_approve(ids: Iterable[Any], *, actor: Any = None, notes: Optional[str] = None) -> BulkOutcome:
    return _run(ids, lambda rid: approve(rid, actor=actor, notes=notes), "approve")


def bulk_reject(ids: Iterable[Any], reason: Optional[str], *, actor: Any = None) -> BulkOutcome:
    """
    Reject every id with the same reason. A blank reason fails the whole
    call without attempting any id.
    """
    ids = list(ids or [])
    if not (reason or "").strip():
        message = "A rejection reason is required."
        return BulkOutcome(
            success=False,
            success_count=0,
            failed_ids=list(ids),
            errors={str(rid): message for rid in ids},
        )
    return _run(ids, lambda rid: reject(rid, reason, actor=actor), "reject")


__all__ = [
    "BulkOutcome",
    "bulk_approve",
    "bulk_reject",
]
