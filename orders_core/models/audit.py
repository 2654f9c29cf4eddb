# orders_core/models/audit.py

from django.db import models


class WorkflowTransition(models.Model):
    """
    Immutable log of status changes made by the order status machine and
    the result verification pipeline.
    """

    KIND_CHOICES = (
        ("order", "Order"),
        ("result", "Result"),
    )

    kind = models.CharField(max_length=32, choices=KIND_CHOICES)
    object_id = models.PositiveBigIntegerField()
    from_status = models.CharField(max_length=64)
    to_status = models.CharField(max_length=64)
    action = models.CharField(max_length=64, blank=True)
    performed_by = models.CharField(max_length=255, blank=True)
    comment = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["kind", "object_id"], name="transition_kind_obj_idx"),
        ]

    def __str__(self):
        return (
            f"{self.kind}:{self.object_id} "
            f"{self.from_status} -> {self.to_status}"
        )


class AuditLog(models.Model):
    """Track actions for compliance and traceability."""

    action = models.CharField(max_length=255, db_index=True)
    actor = models.CharField(max_length=255, blank=True)
    details = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["action", "created_at"], name="audit_action_time_idx"),
        ]

    def __str__(self):
        return f"{self.created_at} - {self.actor or 'system'} - {self.action}"
