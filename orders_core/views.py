# orders_core/views.py

from django.db import connection
from drf_spectacular.utils import extend_schema
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .store import store_call
from .workflows import workflow_definition


# ===============================================================
# Health
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        with store_call("health check"):
            connection.ensure_connection()
        return Response({"status": "ok", "service": "LabTrack"})


# ===============================================================
# Workflow definition (static metadata)
# ===============================================================
class OrderWorkflowDefinitionView(APIView):
    """
    GET /lab/workflows/order/

    States, actions with their preconditions, and the result verification
    states. Stable JSON for UI.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Workflows"])
    def get(self, request):
        return Response(workflow_definition())
