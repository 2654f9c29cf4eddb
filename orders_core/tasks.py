# orders_core/tasks.py
from __future__ import annotations

from celery import shared_task

from orders_core.workflows.consistency_scanner import scan_inconsistent_orders


@shared_task
def scan_order_consistency() -> int:
    """Periodic report of inconsistent orders. Never repairs."""
    return len(scan_inconsistent_orders(actor="celery"))
