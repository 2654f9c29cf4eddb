# orders_core/workflows/consistency.py
from __future__ import annotations

"""
Order status vs. sample-collection consistency check.

The check is pure and never raises. It only reports; repair is a separate,
explicit action (see orders_core.workflows.executor.repair_order).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from orders_core.workflows import (
    IN_PROGRESS,
    ORDER_CREATED,
    ORDER_STATES,
    PENDING_COLLECTION,
    SAMPLE_COLLECTED,
    normalize_state,
)


@dataclass(frozen=True)
class ConsistencyReport:
    order_id: Any
    current_status: str
    has_collected_sample: bool
    is_consistent: bool
    recommended_status: str
    issue: Optional[str] = None
    pair_violation: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "current_status": self.current_status,
            "has_collected_sample": self.has_collected_sample,
            "is_consistent": self.is_consistent,
            "recommended_status": self.recommended_status,
            "issue": self.issue,
            "pair_violation": self.pair_violation,
        }


def check_consistency(order: Any) -> ConsistencyReport:
    """
    Classify an order (model instance or mapping) as consistent or not.

    Collected-ness is decided by sample_collected_at alone; a
    sample_collected_by without a timestamp (or the reverse) is reported as
    a pair violation.
    """
    def _get(name: str):
        if isinstance(order, dict):
            return order.get(name)
        return getattr(order, name, None)

    order_id = _get("id") if _get("id") is not None else _get("pk")
    collected_at = _get("sample_collected_at")
    collected_by = _get("sample_collected_by")
    status = normalize_state(_get("status"))

    has_collected = collected_at is not None
    pair_violation = has_collected != bool(collected_by)

    if status not in ORDER_STATES:
        return ConsistencyReport(
            order_id=order_id,
            current_status=status,
            has_collected_sample=has_collected,
            is_consistent=False,
            recommended_status=SAMPLE_COLLECTED if has_collected else PENDING_COLLECTION,
            issue=f"Unknown order status '{status}'",
            pair_violation=pair_violation,
        )

    if has_collected and status in (ORDER_CREATED, PENDING_COLLECTION):
        return ConsistencyReport(
            order_id=order_id,
            current_status=status,
            has_collected_sample=True,
            is_consistent=False,
            recommended_status=SAMPLE_COLLECTED,
            issue="Sample is collected but status shows pending collection",
            pair_violation=pair_violation,
        )

    if not has_collected and status in (SAMPLE_COLLECTED, IN_PROGRESS):
        return ConsistencyReport(
            order_id=order_id,
            current_status=status,
            has_collected_sample=False,
            is_consistent=False,
            recommended_status=PENDING_COLLECTION,
            issue="Status shows collected but sample collection data is missing",
            pair_violation=pair_violation,
        )

    return ConsistencyReport(
        order_id=order_id,
        current_status=status,
        has_collected_sample=has_collected,
        is_consistent=True,
        recommended_status=status,
        issue="Sample collection fields are only partially set" if pair_violation else None,
        pair_violation=pair_violation,
    )
