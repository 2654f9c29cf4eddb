# orders_core/urls.py

from django.urls import path

from .views import HealthCheckView, OrderWorkflowDefinitionView

# -------------------------------------------------
# Orders: status machine, consistency, progress
# -------------------------------------------------
from .views_orders import (
    OrderConsistencyRepairView,
    OrderConsistencyView,
    OrderDetailView,
    OrderProgressView,
    OrderResultEntryView,
    OrderTimelineView,
    OrderTransitionView,
)

# -------------------------------------------------
# Results: verification pipeline
# -------------------------------------------------
from .views_results import (
    BulkApproveView,
    BulkRejectView,
    ResultApproveView,
    ResultRejectView,
    ResultSubmitView,
    VerificationQueueView,
)

urlpatterns = [
    path("health/", HealthCheckView.as_view(), name="health"),
    path("workflows/order/", OrderWorkflowDefinitionView.as_view(), name="order-workflow-definition"),

    path("orders/<int:pk>/", OrderDetailView.as_view(), name="order-detail"),
    path("orders/<int:pk>/transition/", OrderTransitionView.as_view(), name="order-transition"),
    path("orders/<int:pk>/consistency/", OrderConsistencyView.as_view(), name="order-consistency"),
    path(
        "orders/<int:pk>/consistency/repair/",
        OrderConsistencyRepairView.as_view(),
        name="order-consistency-repair",
    ),
    path("orders/<int:pk>/progress/", OrderProgressView.as_view(), name="order-progress"),
    path("orders/<int:pk>/timeline/", OrderTimelineView.as_view(), name="order-timeline"),
    path("orders/<int:pk>/results/", OrderResultEntryView.as_view(), name="order-result-entry"),

    path("results/bulk/approve/", BulkApproveView.as_view(), name="result-bulk-approve"),
    path("results/bulk/reject/", BulkRejectView.as_view(), name="result-bulk-reject"),
    path("results/verification/", VerificationQueueView.as_view(), name="result-verification-queue"),
    path("results/<int:pk>/submit/", ResultSubmitView.as_view(), name="result-submit"),
    path("results/<int:pk>/approve/", ResultApproveView.as_view(), name="result-approve"),
    path("results/<int:pk>/reject/", ResultRejectView.as_view(), name="result-reject"),
]
