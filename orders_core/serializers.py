from __future__ import annotations

from rest_framework import serializers

from .models import Order, Result, ResultValue, WorkflowTransition
from .services.results import ENTRY_MODES


# ===============================================================
# Read shapes
# ===============================================================

class OrderSerializer(serializers.ModelSerializer):
    has_collected_sample = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = (
            "id",
            "patient_name",
            "priority",
            "status",
            "sample_collected_at",
            "sample_collected_by",
            "has_collected_sample",
            "status_updated_at",
            "status_updated_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class ResultValueSerializer(serializers.ModelSerializer):
    class Meta:
        model = ResultValue
        fields = ("id", "analyte", "analyte_name", "value", "unit", "reference_range", "flag")
        read_only_fields = fields


class ResultSerializer(serializers.ModelSerializer):
    values = ResultValueSerializer(many=True, read_only=True)
    test_group_name = serializers.CharField(source="test_group.name", read_only=True)
    patient_name = serializers.CharField(source="order.patient_name", read_only=True)

    class Meta:
        model = Result
        fields = (
            "id",
            "order",
            "test_group",
            "test_group_name",
            "patient_name",
            "status",
            "verification_status",
            "verified_by",
            "verified_at",
            "review_comment",
            "critical_flag",
            "manually_verified",
            "entered_by",
            "created_at",
            "values",
        )
        read_only_fields = fields


class WorkflowTransitionSerializer(serializers.ModelSerializer):
    class Meta:
        model = WorkflowTransition
        fields = (
            "id",
            "kind",
            "object_id",
            "action",
            "from_status",
            "to_status",
            "performed_by",
            "comment",
            "created_at",
        )
        read_only_fields = fields


# ===============================================================
# Request payloads
# ===============================================================

class TransitionRequestSerializer(serializers.Serializer):
    action = serializers.CharField()
    comment = serializers.CharField(required=False, allow_blank=True, default="")


class ResultValueInputSerializer(serializers.Serializer):
    analyte_id = serializers.IntegerField(required=False, allow_null=True)
    analyte_name = serializers.CharField(required=False, allow_blank=True)
    value = serializers.CharField(allow_blank=True)
    unit = serializers.CharField(required=False, allow_blank=True)
    reference_range = serializers.CharField(required=False, allow_blank=True)
    flag = serializers.CharField(required=False, allow_blank=True)


class ResultEntrySerializer(serializers.Serializer):
    test_group_id = serializers.IntegerField()
    mode = serializers.ChoiceField(choices=sorted(ENTRY_MODES), default="submit")
    values = ResultValueInputSerializer(many=True)


class ApproveRequestSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RejectRequestSerializer(serializers.Serializer):
    # Blank is accepted here; the pipeline reports it as a validation failure.
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class BulkApproveSerializer(serializers.Serializer):
    # Ids are passed through untouched so failures echo what the caller sent.
    ids = serializers.ListField(allow_empty=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BulkRejectSerializer(serializers.Serializer):
    ids = serializers.ListField(allow_empty=True)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
