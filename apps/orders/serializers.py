from rest_framework import serializers

from apps.core.serializers import TimestampedModelSerializer, UserShortSerializer
from .models import Order, OrderStatus, OrderStatusHistory


class OrderSerializer(TimestampedModelSerializer):
    buyer = UserShortSerializer(read_only=True)
    seller = UserShortSerializer(read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "offer",
            "listing_id",
            "buyer",
            "seller",
            "amount",
            "status",
            "status_display",
            "pre_dispute_status",
            "pickup_date",
            "pickup_time",
            "pickup_address",
            "pickup_notes",
            "delivery_confirmed_at",
            "seller_confirmed_at",
            "buyer_confirmed_at",
            "completed_at",
            "cancelled_at",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = UserShortSerializer(read_only=True)

    class Meta:
        model = OrderStatusHistory
        fields = ["id", "previous_status", "status", "changed_by", "notes", "created_at"]
        read_only_fields = fields


class SchedulePickupSerializer(serializers.Serializer):
    pickup_date = serializers.DateField()
    pickup_time = serializers.TimeField()
    pickup_address = serializers.CharField(max_length=1000)
    pickup_notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class AdvanceOrderSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[
            (OrderStatus.IN_TRANSIT, OrderStatus.IN_TRANSIT.label),
            (OrderStatus.DELIVERED, OrderStatus.DELIVERED.label),
        ]
    )
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=2000)
