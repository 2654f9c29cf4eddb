# orders_core/workflows/consistency_scanner.py
from __future__ import annotations

import logging
from typing import Any, Iterator, List

from django.db.models import Q
from django.utils import timezone

from orders_core.models import AuditLog, Order
from orders_core.store import store_call
from orders_core.workflows import IN_PROGRESS, ORDER_CREATED, PENDING_COLLECTION, SAMPLE_COLLECTED, actor_name
from orders_core.workflows.consistency import ConsistencyReport, check_consistency

logger = logging.getLogger(__name__)


def _candidates():
    """
    Orders that can possibly fail the consistency check. The check itself
    still decides; this only narrows the scan.
    """
    collected = Q(sample_collected_at__isnull=False)
    return Order.objects.filter(
        (Q(status__in=[ORDER_CREATED, PENDING_COLLECTION]) & collected)
        | (Q(status__in=[SAMPLE_COLLECTED, IN_PROGRESS]) & ~collected)
    ).order_by("id")


def iter_inconsistent_orders() -> Iterator[ConsistencyReport]:
    with store_call("consistency scan"):
        for order in _candidates().iterator():
            report = check_consistency(order)
            if not report.is_consistent:
                yield report


def scan_inconsistent_orders(*, record: bool = True, actor: Any = None, now=None) -> List[ConsistencyReport]:
    """
    Report every inconsistent order. Never repairs.

    With record=True a single AuditLog row summarises the scan.
    """
    now = now or timezone.now()
    reports = list(iter_inconsistent_orders())

    for report in reports:
        logger.warning(
            "Order %s inconsistent: %s (recommended %s)",
            report.order_id,
            report.issue,
            report.recommended_status,
        )

    if record:
        with store_call("record consistency scan"):
            AuditLog.objects.create(
                action="order.consistency_scan",
                actor=actor_name(actor),
                details={
                    "scanned_at": now.isoformat(),
                    "inconsistent": len(reports),
                    "orders": [r.as_dict() for r in reports],
                },
            )

    logger.info("Consistency scan found %d inconsistent order(s)", len(reports))
    return reports
