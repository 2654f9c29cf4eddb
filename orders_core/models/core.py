# orders_core/models/core.py

from django.db import models
from django.db.models import Q

from orders_core.workflows import ORDER_CREATED, ORDER_STATES
from orders_core.workflows.guards import WorkflowWriteGuardMixin


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================
# Catalog (read-only here; maintained by the catalog screens)
# ============================================================
class Analyte(TimeStampedModel):
    name = models.CharField(max_length=255)
    code = models.CharField(max_length=50, blank=True)
    unit = models.CharField(max_length=50, blank=True)
    reference_range = models.CharField(max_length=100, blank=True)
    low_critical = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    high_critical = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)

    def __str__(self):
        return self.name


class TestGroup(TimeStampedModel):
    """A panel: analytes ordered and reported together."""

    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=255)
    department = models.CharField(max_length=100, blank=True)
    tat_hours = models.PositiveIntegerField(null=True, blank=True)
    analytes = models.ManyToManyField(Analyte, related_name="test_groups", blank=True)

    def __str__(self):
        return f"{self.code} - {self.name}"


# ============================================================
# Order
# ============================================================
class Order(WorkflowWriteGuardMixin, TimeStampedModel):
    WORKFLOW_FIELDS = ("status", "sample_collected_at", "sample_collected_by")

    class Priority(models.TextChoices):
        NORMAL = "Normal", "Normal"
        URGENT = "Urgent", "Urgent"
        STAT = "STAT", "STAT"

    patient_name = models.CharField(max_length=255, blank=True)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.NORMAL)

    status = models.CharField(
        max_length=32,
        choices=[(s, s) for s in ORDER_STATES],
        default=ORDER_CREATED,
        db_index=True,
    )

    sample_collected_at = models.DateTimeField(null=True, blank=True)
    sample_collected_by = models.CharField(max_length=255, null=True, blank=True)

    status_updated_at = models.DateTimeField(null=True, blank=True)
    status_updated_by = models.CharField(max_length=255, blank=True)

    test_groups = models.ManyToManyField(TestGroup, through="OrderTest", related_name="orders")

    class Meta:
        db_table = "orders"
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                name="order_sample_collected_pair",
                condition=(
                    Q(sample_collected_at__isnull=True, sample_collected_by__isnull=True)
                    | Q(sample_collected_at__isnull=False, sample_collected_by__isnull=False)
                ),
            ),
            models.CheckConstraint(
                name="order_status_known",
                condition=Q(status__in=ORDER_STATES),
            ),
        ]

    @property
    def has_collected_sample(self) -> bool:
        return self.sample_collected_at is not None

    def __str__(self):
        return f"Order {self.pk} ({self.status})"


class OrderTest(TimeStampedModel):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="order_tests")
    test_group = models.ForeignKey(TestGroup, on_delete=models.PROTECT, related_name="order_tests")

    class Meta:
        db_table = "order_tests"
        unique_together = ("order", "test_group")
        ordering = ["id"]

    def __str__(self):
        return f"{self.order_id}:{self.test_group_id}"
