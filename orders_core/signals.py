# orders_core/signals.py
from __future__ import annotations

from threading import local

from django.db.models.signals import post_save
from django.dispatch import receiver

from orders_core.models import AuditLog, Result, WorkflowTransition
from orders_core.workflows import SYSTEM_ACTOR, actor_name

# ===============================================================
# Thread-local user storage
# ===============================================================
_state = local()


def set_current_user(user):
    _state.user = user


def get_current_user():
    return getattr(_state, "user", None)


def _current_actor() -> str:
    user = get_current_user()
    if user is None or not getattr(user, "is_authenticated", False):
        return SYSTEM_ACTOR
    return actor_name(user)


def _log(action: str, *, actor: str | None, details: dict) -> AuditLog:
    return AuditLog.objects.create(
        action=action,
        actor=actor or _current_actor(),
        details=details,
    )


# ===============================================================
# Workflow transitions (orders and results)
# ===============================================================
@receiver(post_save, sender=WorkflowTransition)
def audit_workflow_transition(sender, instance: WorkflowTransition, created: bool, **kwargs):
    """
    One audit entry per transition row. Runs inside the transaction that
    wrote the transition, so both commit or neither does.
    """
    if not created:
        return

    _log(
        f"WORKFLOW {instance.kind.upper()} {instance.object_id}: "
        f"{instance.from_status} -> {instance.to_status}",
        actor=instance.performed_by,
        details={
            "kind": instance.kind,
            "object_id": instance.object_id,
            "action": instance.action,
            "from": instance.from_status,
            "to": instance.to_status,
            "comment": instance.comment,
        },
    )


# ===============================================================
# Result entry
# ===============================================================
@receiver(post_save, sender=Result)
def audit_result_recorded(sender, instance: Result, created: bool, **kwargs):
    if not created:
        return

    _log(
        f"RESULT RECORDED {instance.pk}",
        actor=instance.entered_by,
        details={
            "order_id": instance.order_id,
            "test_group_id": instance.test_group_id,
            "status": instance.status,
            "critical": instance.critical_flag,
        },
    )
