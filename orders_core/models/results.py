# orders_core/models/results.py

from django.db import models

from orders_core.models.core import Analyte, Order, TestGroup
from orders_core.workflows import (
    RESULT_ENTERED,
    RESULT_PENDING_VERIFICATION,
    VERIFICATION_PENDING,
    VERIFICATION_REJECTED,
    VERIFICATION_TERMINAL,
    VERIFICATION_VERIFIED,
)
from orders_core.workflows.guards import ImmutableRowMixin, WorkflowWriteGuardMixin


class Result(WorkflowWriteGuardMixin, models.Model):
    """
    One submission event: the values entered for one panel of one order.

    Only the status / verification fields ever change after creation, and
    only through the verification pipeline.
    """

    WORKFLOW_FIELDS = ("status", "verification_status")

    class Status(models.TextChoices):
        ENTERED = RESULT_ENTERED, "Entered"
        PENDING_VERIFICATION = RESULT_PENDING_VERIFICATION, "Pending verification"

    class VerificationStatus(models.TextChoices):
        PENDING = VERIFICATION_PENDING, "Pending verification"
        VERIFIED = VERIFICATION_VERIFIED, "Verified"
        REJECTED = VERIFICATION_REJECTED, "Rejected"

    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="results")
    test_group = models.ForeignKey(TestGroup, on_delete=models.PROTECT, related_name="results")

    status = models.CharField(max_length=32, choices=Status.choices, default=Status.ENTERED)
    verification_status = models.CharField(
        max_length=32,
        choices=VerificationStatus.choices,
        default=VerificationStatus.PENDING,
        db_index=True,
    )

    verified_by = models.CharField(max_length=255, null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)
    review_comment = models.TextField(null=True, blank=True)
    critical_flag = models.BooleanField(default=False)
    manually_verified = models.BooleanField(default=False)

    entered_by = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "results"
        ordering = ["order_id", "test_group_id", "-created_at", "-id"]
        indexes = [
            models.Index(fields=["order", "test_group"], name="result_order_group_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.verification_status in VERIFICATION_TERMINAL

    def __str__(self):
        return f"Result {self.pk} ({self.verification_status})"


class ResultValue(ImmutableRowMixin, models.Model):
    class Flag(models.TextChoices):
        NORMAL = "", "Normal"
        HIGH = "H", "High"
        LOW = "L", "Low"
        CRITICAL = "C", "Critical"

    result = models.ForeignKey(Result, on_delete=models.CASCADE, related_name="values")
    analyte = models.ForeignKey(
        Analyte,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="result_values",
    )
    analyte_name = models.CharField(max_length=255)
    value = models.CharField(max_length=255, blank=True)
    unit = models.CharField(max_length=50, blank=True)
    reference_range = models.CharField(max_length=100, blank=True)
    flag = models.CharField(max_length=2, choices=Flag.choices, blank=True, default=Flag.NORMAL)

    class Meta:
        db_table = "result_values"
        ordering = ["result_id", "id"]

    def __str__(self):
        return f"{self.analyte_name}={self.value}{self.flag and f' ({self.flag})'}"
