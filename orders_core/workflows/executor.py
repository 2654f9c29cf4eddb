# orders_core/workflows/executor.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from orders_core import notifier
from orders_core.errors import InvalidTransition, LabTrackError, NotFound
from orders_core.models import Order, WorkflowTransition
from orders_core.store import store_call
from orders_core.workflows import (
    ORDER_ACTIONS,
    PENDING_COLLECTION,
    REPAIR,
    action_allowed,
    actor_name,
    allowed_actions,
    coerce_pk,
    normalize_action,
)
from orders_core.workflows.consistency import check_consistency

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    ok: bool
    order_id: Any
    action: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    changed: bool = False
    order: Optional[Order] = None
    error: Optional[LabTrackError] = None

    def __bool__(self) -> bool:
        return self.ok

    def as_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ok": self.ok,
            "order_id": self.order_id,
            "action": self.action,
            "from_status": self.from_status,
            "to_status": self.to_status,
            "changed": self.changed,
        }
        if self.error is not None:
            out["error"] = self.error.as_dict()
        return out


def _failure(order_id, action: str, error: LabTrackError, from_status: Optional[str] = None) -> TransitionResult:
    logger.info("Order %s action %s refused: %s", order_id, action, error.message)
    return TransitionResult(
        ok=False,
        order_id=order_id,
        action=action,
        from_status=from_status,
        error=error,
    )


def apply(order_id: Any, action: str, actor: Any = None, *, comment: str = "", now=None) -> TransitionResult:
    """
    Apply one status machine action to an order.

    Business failures (unknown order, unknown action, precondition not met)
    come back as ok=False with a typed error. Store failures raise.
    """
    now = now or timezone.now()
    action_name = normalize_action(action)
    performer = actor_name(actor)

    rule = ORDER_ACTIONS.get(action_name)
    if rule is None:
        return _failure(
            order_id,
            action_name,
            InvalidTransition(f"Unknown order action '{action}'.", object_id=order_id),
        )

    pk = coerce_pk(order_id)
    if pk is None:
        return _failure(order_id, action_name, NotFound(f"Order {order_id} not found.", object_id=order_id))

    with store_call(f"order {action_name}"):
        with transaction.atomic():
            row = (
                Order.objects.select_for_update()
                .filter(pk=pk)
                .values("status", "sample_collected_at")
                .first()
            )
            if row is None:
                return _failure(order_id, action_name, NotFound(f"Order {order_id} not found.", object_id=order_id))

            current = row["status"]
            if not action_allowed(action_name, status=current, sample_collected_at=row["sample_collected_at"]):
                return _failure(
                    order_id,
                    action_name,
                    InvalidTransition(
                        _precondition_message(action_name, current),
                        object_id=order_id,
                        details={"current_status": current},
                    ),
                    from_status=current,
                )

            # Conditional update: the precondition is re-checked by the UPDATE itself.
            qs = Order.objects.filter(pk=pk)
            if rule.from_states is None:
                qs = qs.filter(sample_collected_at__isnull=False)
            else:
                qs = qs.filter(status__in=rule.from_states)

            updates: Dict[str, Any] = {
                "status": rule.target,
                "status_updated_at": now,
                "status_updated_by": performer,
                "updated_at": now,
            }
            if rule.sets_collection:
                updates["sample_collected_at"] = now
                updates["sample_collected_by"] = performer
            if rule.clears_collection:
                updates["sample_collected_at"] = None
                updates["sample_collected_by"] = None

            if qs.update(**updates) != 1:
                return _failure(
                    order_id,
                    action_name,
                    InvalidTransition(
                        f"Order {order_id} changed concurrently; {action_name} no longer applies.",
                        object_id=order_id,
                    ),
                    from_status=current,
                )

            WorkflowTransition.objects.create(
                kind="order",
                object_id=pk,
                from_status=current,
                to_status=rule.target,
                action=action_name,
                performed_by=performer,
                comment=comment or "",
            )
            notifier.publish_on_commit(pk, source=f"order.{action_name}")

        order = Order.objects.get(pk=pk)

    logger.info("Order %s %s: %s -> %s by %s", order_id, action_name, current, rule.target, performer)
    return TransitionResult(
        ok=True,
        order_id=order_id,
        action=action_name,
        from_status=current,
        to_status=rule.target,
        changed=True,
        order=order,
    )


def apply_or_raise(order_id: Any, action: str, actor: Any = None, **kwargs) -> Order:
    result = apply(order_id, action, actor, **kwargs)
    if not result.ok:
        raise result.error
    return result.order


def _precondition_message(action: str, current: str) -> str:
    rule = ORDER_ACTIONS[action]
    if rule.from_states is None:
        return f"Cannot {action.replace('_', ' ')}: no sample has been collected for this order."
    expected = " or ".join(sorted(rule.from_states))
    return f"Cannot {action.replace('_', ' ')} while order is '{current}' (requires {expected})."


def order_allowed_actions(order: Order):
    return allowed_actions(order.status, order.sample_collected_at)


# ===============================================================
# Explicit consistency repair
# ===============================================================

def repair_order(order_id: Any, actor: Any = None, *, now=None) -> TransitionResult:
    """
    Move an inconsistent order to the recommended status.

    Never invoked implicitly. A consistent order is left untouched
    (ok=True, changed=False).
    """
    now = now or timezone.now()
    performer = actor_name(actor)

    pk = coerce_pk(order_id)
    if pk is None:
        return _failure(order_id, REPAIR, NotFound(f"Order {order_id} not found.", object_id=order_id))

    with store_call("order repair"):
        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=pk).first()
            if order is None:
                return _failure(order_id, REPAIR, NotFound(f"Order {order_id} not found.", object_id=order_id))

            report = check_consistency(order)
            if report.is_consistent:
                return TransitionResult(
                    ok=True,
                    order_id=order_id,
                    action=REPAIR,
                    from_status=order.status,
                    to_status=order.status,
                    changed=False,
                    order=order,
                )

            updates: Dict[str, Any] = {
                "status": report.recommended_status,
                "status_updated_at": now,
                "status_updated_by": performer,
                "updated_at": now,
            }
            if report.recommended_status == PENDING_COLLECTION:
                updates["sample_collected_at"] = None
                updates["sample_collected_by"] = None

            updated = Order.objects.filter(
                pk=pk,
                status=order.status,
                sample_collected_at__isnull=order.sample_collected_at is None,
            ).update(**updates)
            if updated != 1:
                return _failure(
                    order_id,
                    REPAIR,
                    InvalidTransition(f"Order {order_id} changed concurrently; re-check before repairing.", object_id=order_id),
                    from_status=order.status,
                )

            WorkflowTransition.objects.create(
                kind="order",
                object_id=pk,
                from_status=order.status,
                to_status=report.recommended_status,
                action=REPAIR,
                performed_by=performer,
                comment=report.issue or "",
            )
            notifier.publish_on_commit(pk, source="order.repair")

        repaired = Order.objects.get(pk=pk)

    logger.warning(
        "Order %s repaired: %s -> %s (%s)",
        order_id,
        report.current_status,
        report.recommended_status,
        report.issue,
    )
    return TransitionResult(
        ok=True,
        order_id=order_id,
        action=REPAIR,
        from_status=report.current_status,
        to_status=report.recommended_status,
        changed=True,
        order=repaired,
    )
