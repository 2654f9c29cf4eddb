# orders_core/views_results.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from labtrack.pagination import DefaultPagination
from orders_core.selectors import verification_queue
from orders_core.serializers import (
    ApproveRequestSerializer,
    BulkApproveSerializer,
    BulkRejectSerializer,
    RejectRequestSerializer,
    ResultSerializer,
)
from orders_core.services.verification import approve, reject, submit_result
from orders_core.services.verification_bulk import bulk_approve, bulk_reject


def _outcome_response(outcome) -> Response:
    if not outcome:
        raise outcome.error
    return Response(outcome.as_dict())


# ===============================================================
# Single result
# ===============================================================

class ResultSubmitView(APIView):
    """
    POST /lab/results/<pk>/submit/

    entered -> pending_verification
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Results"], request=None)
    def post(self, request, pk: int):
        return _outcome_response(submit_result(pk, actor=request.user))


class ResultApproveView(APIView):
    """
    POST /lab/results/<pk>/approve/

    Payload: {"notes": "optional"}
    Already verified or rejected results answer 409.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Verification"], request=ApproveRequestSerializer)
    def post(self, request, pk: int):
        ser = ApproveRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return _outcome_response(approve(pk, actor=request.user, notes=ser.validated_data.get("notes")))


class ResultRejectView(APIView):
    """
    POST /lab/results/<pk>/reject/

    Payload: {"reason": "required"}
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Verification"], request=RejectRequestSerializer)
    def post(self, request, pk: int):
        ser = RejectRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return _outcome_response(reject(pk, ser.validated_data.get("reason"), actor=request.user))


# ===============================================================
# Bulk verification
# ===============================================================

class BulkApproveView(APIView):
    """
    POST /lab/results/bulk/approve/

    Payload: {"ids": [1, 2, 3], "notes": "optional"}

    Always 200. Per-id failures are listed in failed_ids / errors and do
    not undo the successes.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Verification"], request=BulkApproveSerializer)
    def post(self, request):
        ser = BulkApproveSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        outcome = bulk_approve(
            ser.validated_data["ids"],
            actor=request.user,
            notes=ser.validated_data.get("notes"),
        )
        return Response(outcome.as_dict())


class BulkRejectView(APIView):
    """
    POST /lab/results/bulk/reject/

    Payload: {"ids": [1, 2, 3], "reason": "required"}
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Verification"], request=BulkRejectSerializer)
    def post(self, request):
        ser = BulkRejectSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        outcome = bulk_reject(
            ser.validated_data["ids"],
            ser.validated_data.get("reason"),
            actor=request.user,
        )
        return Response(outcome.as_dict())


# ===============================================================
# Verification queue
# ===============================================================

class VerificationQueueView(APIView):
    """
    GET /lab/results/verification/

    Results awaiting verification plus {total, pending, flagged, critical}.
    """
    permission_classes = [IsAuthenticated]
    pagination_class = DefaultPagination

    @extend_schema(
        tags=["Verification"],
        parameters=[
            OpenApiParameter("date_filter", str, enum=["today", "last7days", "custom"]),
            OpenApiParameter("start_date", str),
            OpenApiParameter("end_date", str),
            OpenApiParameter("critical", bool),
            OpenApiParameter("search", str),
            OpenApiParameter("order", int),
        ],
        responses=ResultSerializer(many=True),
    )
    def get(self, request):
        qs, stats = verification_queue(request.query_params)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(qs, request, view=self)
        response = paginator.get_paginated_response(ResultSerializer(page, many=True).data)
        response.data["stats"] = stats
        return response
