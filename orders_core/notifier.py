# orders_core/notifier.py
from __future__ import annotations

"""
Change feed for orders.

Observers learn that "something changed for order N" and must re-fetch;
the notification carries no payload of record. Delivery happens after the
writing transaction commits, in commit order per order, and may repeat
(at-least-once), so observers must be idempotent.
"""

import logging
import threading
import uuid
from typing import Any, Callable, Tuple

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

# Sent with kwargs: order_id, source
order_changed = Signal()

# Fixed pool of locks; an order always maps to the same stripe. Reentrant so
# an observer may publish for another order from inside its callback.
LOCK_STRIPES = 64
_order_locks: Tuple[Any, ...] = tuple(threading.RLock() for _ in range(LOCK_STRIPES))


def _lock_for(order_id: Any):
    return _order_locks[hash(str(order_id)) % LOCK_STRIPES]


def subscribe(order_id: Any, callback: Callable[..., Any]) -> Callable[[], bool]:
    """
    Call `callback(order_id=..., source=...)` whenever the given order changes.

    Returns an unsubscribe function.
    """
    key = str(order_id)
    uid = f"order-changed:{key}:{uuid.uuid4().hex}"

    def _receiver(sender, order_id=None, source="", **kwargs):
        if str(order_id) != key:
            return None
        return callback(order_id=order_id, source=source)

    order_changed.connect(_receiver, weak=False, dispatch_uid=uid)

    def _unsubscribe() -> bool:
        return order_changed.disconnect(dispatch_uid=uid)

    return _unsubscribe


def publish(order_id: Any, source: str = "") -> int:
    """
    Deliver a change notification now. Returns the number of receivers that
    ran without error; failures are logged, never raised.
    """
    delivered = 0
    with _lock_for(order_id):
        responses = order_changed.send_robust(sender=publish, order_id=order_id, source=source)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                "Order change observer failed for order %s (%s): %r",
                order_id,
                source,
                response,
                exc_info=(type(response), response, response.__traceback__),
            )
            continue
        delivered += 1
    return delivered


def publish_on_commit(order_id: Any, source: str = "") -> None:
    """
    Schedule a notification for when the current transaction commits.
    Outside a transaction it is delivered immediately.
    """
    transaction.on_commit(lambda: publish(order_id, source))
