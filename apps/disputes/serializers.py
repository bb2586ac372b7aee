from rest_framework import serializers
from django.utils.translation import gettext_lazy as _

from apps.core.serializers import TimestampedModelSerializer, UserShortSerializer
from apps.orders.models import Order, OrderOutcome
from .models import (
    RESOLVED_STATUSES,
    TRIAGE_STATUSES,
    Dispute,
    DisputeMessage,
    DisputeReason,
    DisputeStatus,
)


class DisputeCreateSerializer(serializers.Serializer):
    """Serializer for opening disputes"""

    order_id = serializers.UUIDField(required=True)
    reason = serializers.ChoiceField(choices=DisputeReason.choices, required=True)
    description = serializers.CharField(required=True, max_length=5000)
    evidence_urls = serializers.ListField(
        child=serializers.CharField(max_length=2000), required=False, default=list
    )

    def validate_order_id(self, value):
        """Validate the order exists and keep it for the view"""
        try:
            self.order = Order.objects.get(id=value)
        except Order.DoesNotExist:
            raise serializers.ValidationError(_("Order not found"))
        return value


class DisputeMessageSerializer(serializers.ModelSerializer):
    sender = UserShortSerializer(read_only=True)

    class Meta:
        model = DisputeMessage
        fields = ["id", "sender", "message", "is_admin", "created_at"]
        read_only_fields = fields


class DisputeMessageCreateSerializer(serializers.Serializer):
    message = serializers.CharField(max_length=5000)
    is_admin = serializers.BooleanField(required=False, default=False)


class DisputeListSerializer(TimestampedModelSerializer):
    """Lightweight serializer for dispute lists"""

    reason_display = serializers.CharField(source="get_reason_display", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "order",
            "raised_by",
            "reason",
            "reason_display",
            "status",
            "status_display",
            "created_at",
        ]
        read_only_fields = fields


class DisputeDetailSerializer(TimestampedModelSerializer):
    """Detailed serializer for dispute with related data"""

    raised_by = UserShortSerializer(read_only=True)
    admin = UserShortSerializer(read_only=True)
    reason_display = serializers.CharField(source="get_reason_display", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    order_status = serializers.CharField(source="order.status", read_only=True)
    order_amount = serializers.DecimalField(
        source="order.amount", max_digits=12, decimal_places=2, read_only=True
    )
    messages = DisputeMessageSerializer(many=True, read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "order",
            "order_status",
            "order_amount",
            "raised_by",
            "reason",
            "reason_display",
            "description",
            "evidence_urls",
            "status",
            "status_display",
            "admin",
            "admin_notes",
            "resolution_notes",
            "order_outcome",
            "resolved_at",
            "messages",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class DisputeResolutionSerializer(serializers.Serializer):
    """Serializer for resolving disputes (admin only)"""

    status = serializers.ChoiceField(
        choices=[(value, DisputeStatus(value).label) for value in RESOLVED_STATUSES]
    )
    admin_notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
    resolution_notes = serializers.CharField(
        required=False, allow_blank=True, max_length=2000
    )
    order_outcome = serializers.ChoiceField(
        choices=OrderOutcome.choices, required=False, default=OrderOutcome.RESUME
    )


class DisputeStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[(value, DisputeStatus(value).label) for value in TRIAGE_STATUSES]
    )
    admin_notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class DisputeCloseSerializer(serializers.Serializer):
    admin_notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)
