# orders_core/admin.py

from django.contrib import admin, messages

from .models import (
    Analyte,
    AuditLog,
    Order,
    OrderTest,
    Result,
    ResultValue,
    TestGroup,
    WorkflowTransition,
)
from .services.verification_bulk import bulk_approve
from .workflows.executor import repair_order


class ReadOnlyAdminMixin:
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================
# Workflow transitions (READ-ONLY AUDIT LOG)
# =============================================================

@admin.register(WorkflowTransition)
class WorkflowTransitionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = (
        "kind",
        "object_id",
        "action",
        "from_status",
        "to_status",
        "performed_by",
        "created_at",
    )
    list_filter = ("kind", "action", "to_status")
    search_fields = ("object_id", "performed_by")
    ordering = ("-created_at",)
    readonly_fields = [f.name for f in WorkflowTransition._meta.fields]


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ("created_at", "actor", "action")
    search_fields = ("action", "actor")
    ordering = ("-created_at",)
    readonly_fields = [f.name for f in AuditLog._meta.fields]


# =============================================================
# Catalog
# =============================================================

@admin.register(Analyte)
class AnalyteAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "unit", "reference_range", "low_critical", "high_critical")
    search_fields = ("name", "code")


@admin.register(TestGroup)
class TestGroupAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "department", "tat_hours")
    search_fields = ("code", "name")
    list_filter = ("department",)
    filter_horizontal = ("analytes",)


# =============================================================
# Orders
# =============================================================

class OrderTestInline(admin.TabularInline):
    model = OrderTest
    extra = 0


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "patient_name", "priority", "status", "sample_collected_at", "status_updated_at")
    list_filter = ("status", "priority")
    search_fields = ("id", "patient_name")
    inlines = (OrderTestInline,)
    actions = ("repair_selected_orders",)

    # Workflow-controlled; changed only through the status machine.
    readonly_fields = (
        "status",
        "sample_collected_at",
        "sample_collected_by",
        "status_updated_at",
        "status_updated_by",
    )

    def repair_selected_orders(self, request, queryset):
        repaired = 0
        for order in queryset:
            outcome = repair_order(order.pk, actor=request.user)
            if not outcome:
                self.message_user(request, f"Order {order.pk}: {outcome.error.message}", level=messages.WARNING)
            elif outcome.changed:
                repaired += 1

        self.message_user(request, f"Repaired {repaired} order(s).", level=messages.SUCCESS)

    repair_selected_orders.short_description = "Repair status/collection inconsistencies"


# =============================================================
# Results
# =============================================================

class ResultValueInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = ResultValue
    extra = 0
    readonly_fields = ("analyte", "analyte_name", "value", "unit", "reference_range", "flag")


@admin.register(Result)
class ResultAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "order",
        "test_group",
        "status",
        "verification_status",
        "critical_flag",
        "verified_by",
        "verified_at",
    )
    list_filter = ("verification_status", "status", "critical_flag")
    search_fields = ("order__id", "order__patient_name", "test_group__name")
    inlines = (ResultValueInline,)
    actions = ("approve_selected",)

    readonly_fields = (
        "status",
        "verification_status",
        "verified_by",
        "verified_at",
        "review_comment",
        "manually_verified",
        "critical_flag",
        "entered_by",
    )

    def approve_selected(self, request, queryset):
        outcome = bulk_approve(list(queryset.values_list("pk", flat=True)), actor=request.user)
        if outcome.success_count:
            self.message_user(request, f"Approved {outcome.success_count} result(s).", level=messages.SUCCESS)
        for rid, message in outcome.errors.items():
            self.message_user(request, f"Result {rid}: {message}", level=messages.WARNING)

    approve_selected.short_description = "Approve selected results"
