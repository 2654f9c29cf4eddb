# orders_core/selectors.py

from __future__ import annotations

"""
Read-side queries. Nothing here writes, and progress is recomputed from the
stored rows on every call.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Mapping, Optional, Tuple

from django.db.models import Exists, OuterRef, Prefetch, Q

from orders_core.errors import NotFound, ValidationError
from orders_core.filters import VerificationQueueFilter
from orders_core.models import Order, OrderTest, Result, ResultValue, WorkflowTransition
from orders_core.store import store_call
from orders_core.workflows import VERIFICATION_PENDING, VERIFICATION_REJECTED, VERIFICATION_VERIFIED
from orders_core.workflows.progress import (
    PanelObservation,
    PanelStatus,
    PanelSubmissions,
    ProgressCounts,
    analyte_key,
    compute,
    compute_from_submissions,
)

logger = logging.getLogger(__name__)

PROGRESS_METHODS = ("panel", "analyte")


def get_order(order_id: Any) -> Order:
    with store_call("load order"):
        order = Order.objects.filter(pk=order_id).first()
    if order is None:
        raise NotFound(f"Order {order_id} not found.", object_id=order_id)
    return order


# ===============================================================
# Panel rows
# ===============================================================

def _panel_rows(order_id: Any) -> List[Tuple[OrderTest, Tuple[str, ...], List[Dict[str, Any]]]]:
    """
    (order_test, expected analyte keys, submissions) per panel of the order.
    """
    with store_call("load order panels"):
        order_tests = list(
            OrderTest.objects.filter(order_id=order_id)
            .select_related("test_group")
            .prefetch_related("test_group__analytes")
        )
        results = list(
            Result.objects.filter(order_id=order_id)
            .prefetch_related(Prefetch("values", queryset=ResultValue.objects.order_by("id")))
            .order_by("created_at", "id")
        )

    by_group: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
    for result in results:
        by_group[result.test_group_id].append(
            {
                "status": result.status,
                "verification_status": result.verification_status,
                "values": [
                    {"analyte_id": v.analyte_id, "analyte_name": v.analyte_name}
                    for v in result.values.all()
                ],
            }
        )

    rows = []
    for ot in order_tests:
        expected = tuple(analyte_key(a.id, a.name) for a in ot.test_group.analytes.all())
        rows.append((ot, expected, by_group.get(ot.test_group_id, [])))
    return rows


def _keys_in(submissions, expected, *, verification: Optional[str] = None, exclude: Optional[str] = None):
    keys = set()
    for sub in submissions:
        if verification is not None and sub["verification_status"] != verification:
            continue
        if exclude is not None and sub["verification_status"] == exclude:
            continue
        for value in sub["values"]:
            key = analyte_key(value.get("analyte_id"), value.get("analyte_name"))
            if key in expected:
                keys.add(key)
    return keys


def _panel_observation(ot: OrderTest, expected_keys: Tuple[str, ...], submissions) -> PanelObservation:
    expected = set(expected_keys)
    entered = _keys_in(submissions, expected, exclude=VERIFICATION_REJECTED)
    verified = _keys_in(submissions, expected, verification=VERIFICATION_VERIFIED)
    is_verified = bool(expected) and verified >= expected

    if is_verified:
        status = PanelStatus.VERIFIED
    elif not entered:
        status = PanelStatus.NOT_STARTED
    elif len(entered) < len(expected):
        status = PanelStatus.IN_PROGRESS
    else:
        status = PanelStatus.COMPLETE

    return PanelObservation(
        order_test_id=ot.pk,
        test_group_id=ot.test_group_id,
        expected_analytes=len(expected),
        entered_analytes=len(entered),
        has_results=bool(entered),
        is_verified=is_verified,
        panel_status=status,
    )


def panel_observations_for_order(order_id: Any) -> List[PanelObservation]:
    return [_panel_observation(ot, keys, subs) for ot, keys, subs in _panel_rows(order_id)]


def analyte_submissions_for_order(order_id: Any) -> List[PanelSubmissions]:
    return [
        PanelSubmissions(
            order_test_id=ot.pk,
            test_group_id=ot.test_group_id,
            expected_keys=keys,
            submissions=tuple(subs),
        )
        for ot, keys, subs in _panel_rows(order_id)
    ]


def order_progress(order_id: Any, method: str = "panel") -> ProgressCounts:
    """
    Progress of one order.

    method="panel" counts from the panel projection; method="analyte" ranks
    each analyte across all of its submissions. Both return the same shape.
    """
    method = (method or "panel").strip().lower()
    if method not in PROGRESS_METHODS:
        raise ValidationError(
            f"Unknown progress method '{method}'.",
            details={"allowed": list(PROGRESS_METHODS)},
        )

    get_order(order_id)
    logger.debug("Computing progress for order %s (%s)", order_id, method)

    if method == "analyte":
        return compute_from_submissions(analyte_submissions_for_order(order_id))
    return compute(panel_observations_for_order(order_id))


# ===============================================================
# Timeline
# ===============================================================

def order_timeline(order_id: Any):
    """
    Transitions of the order and of its results, oldest first.
    """
    get_order(order_id)
    with store_call("load order timeline"):
        result_ids = list(Result.objects.filter(order_id=order_id).values_list("id", flat=True))
        return list(
            WorkflowTransition.objects.filter(
                Q(kind="order", object_id=order_id) | Q(kind="result", object_id__in=result_ids)
            ).order_by("created_at", "id")
        )


# ===============================================================
# Verification queue
# ===============================================================

def verification_queue(params: Optional[Mapping[str, Any]] = None):
    """
    Results awaiting verification, filtered by VerificationQueueFilter.

    Returns (queryset, stats) where stats = {total, pending, flagged, critical}.
    flagged counts critical results plus results with any H/L/C value.
    """
    abnormal = ResultValue.objects.filter(result_id=OuterRef("pk")).exclude(flag="")
    base = (
        Result.objects.filter(verification_status=VERIFICATION_PENDING)
        .select_related("order", "test_group")
        .prefetch_related("values")
        .annotate(has_abnormal=Exists(abnormal))
        .order_by("order_id", "test_group__name", "-created_at")
    )

    fs = VerificationQueueFilter(data=params or {}, queryset=base)
    if not fs.is_valid():
        errors = {name: [str(e) for e in msgs] for name, msgs in fs.errors.items()}
        raise ValidationError("Invalid verification filters.", details={"errors": errors})

    with store_call("load verification queue"):
        qs = fs.qs
        rows = list(qs.prefetch_related(None).values_list("verification_status", "critical_flag", "has_abnormal"))

    stats = {
        "total": len(rows),
        "pending": sum(1 for status, _, _ in rows if status == VERIFICATION_PENDING),
        "flagged": sum(1 for _, critical, abnormal in rows if critical or abnormal),
        "critical": sum(1 for _, critical, _ in rows if critical),
    }
    return qs, stats


__all__ = [
    "PROGRESS_METHODS",
    "get_order",
    "panel_observations_for_order",
    "analyte_submissions_for_order",
    "order_progress",
    "order_timeline",
    "verification_queue",
]
