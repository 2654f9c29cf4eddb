# orders_core/views_orders.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from orders_core.selectors import PROGRESS_METHODS, get_order, order_progress, order_timeline
from orders_core.serializers import (
    OrderSerializer,
    ResultEntrySerializer,
    ResultSerializer,
    TransitionRequestSerializer,
    WorkflowTransitionSerializer,
)
from orders_core.services.results import record_result
from orders_core.workflows.consistency import check_consistency
from orders_core.workflows.executor import apply, order_allowed_actions, repair_order


def _order_payload(order) -> dict:
    return {
        "order": OrderSerializer(order).data,
        "consistency": check_consistency(order).as_dict(),
        "allowed_actions": order_allowed_actions(order),
    }


# ===============================================================
# Order detail
# ===============================================================

class OrderDetailView(APIView):
    """
    GET /lab/orders/<pk>/

    The order, its consistency report and the actions currently allowed.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Orders"])
    def get(self, request, pk: int):
        return Response(_order_payload(get_order(pk)))


# ===============================================================
# Status machine
# ===============================================================

class OrderTransitionView(APIView):
    """
    POST /lab/orders/<pk>/transition/

    Payload:
      {"action": "mark_collected", "comment": "optional"}

    Refused transitions come back as 400 (404 for an unknown order) with an
    actionable message; nothing is written.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Orders"], request=TransitionRequestSerializer)
    def post(self, request, pk: int):
        ser = TransitionRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = apply(
            pk,
            ser.validated_data["action"],
            request.user,
            comment=ser.validated_data.get("comment", ""),
        )
        if not result:
            raise result.error

        return Response({"transition": result.as_dict(), **_order_payload(result.order)})


# ===============================================================
# Consistency
# ===============================================================

class OrderConsistencyView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Orders"])
    def get(self, request, pk: int):
        return Response(check_consistency(get_order(pk)).as_dict())


class OrderConsistencyRepairView(APIView):
    """
    POST /lab/orders/<pk>/consistency/repair/

    Moves an inconsistent order to the recommended status. A consistent
    order is returned unchanged (changed=false).
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Orders"], request=None)
    def post(self, request, pk: int):
        result = repair_order(pk, request.user)
        if not result:
            raise result.error
        return Response({"repair": result.as_dict(), **_order_payload(result.order)})


# ===============================================================
# Progress / timeline
# ===============================================================

class OrderProgressView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        tags=["Orders"],
        parameters=[
            OpenApiParameter(
                name="method",
                description="Counting method",
                required=False,
                type=str,
                enum=list(PROGRESS_METHODS),
            )
        ],
    )
    def get(self, request, pk: int):
        method = request.query_params.get("method") or "panel"
        progress = order_progress(pk, method)
        return Response({"order_id": pk, "method": method, **progress.as_dict()})


class OrderTimelineView(APIView):
    """
    GET /lab/orders/<pk>/timeline/

    Status changes of the order and of its results, oldest first.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Orders"])
    def get(self, request, pk: int):
        transitions = order_timeline(pk)
        return Response(
            {
                "order_id": pk,
                "timeline": WorkflowTransitionSerializer(transitions, many=True).data,
            }
        )


# ===============================================================
# Result entry
# ===============================================================

class OrderResultEntryView(APIView):
    """
    POST /lab/orders/<pk>/results/

    Payload:
      {
        "test_group_id": 3,
        "mode": "submit" | "draft",
        "values": [{"analyte_id": 7, "value": "5.2"}, ...]
      }
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Results"], request=ResultEntrySerializer, responses=ResultSerializer)
    def post(self, request, pk: int):
        ser = ResultEntrySerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = record_result(
            pk,
            ser.validated_data["test_group_id"],
            ser.validated_data["values"],
            actor=request.user,
            mode=ser.validated_data["mode"],
        )
        return Response(ResultSerializer(result).data, status=status.HTTP_201_CREATED)
