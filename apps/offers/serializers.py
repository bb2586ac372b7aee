from django.contrib.auth import get_user_model
from rest_framework import serializers

from apps.core.serializers import TimestampedModelSerializer, UserShortSerializer
from .models import Offer, OfferResponse

User = get_user_model()


class OfferSerializer(TimestampedModelSerializer):
    buyer = UserShortSerializer(read_only=True)
    seller = UserShortSerializer(read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    order_id = serializers.SerializerMethodField()

    class Meta:
        model = Offer
        fields = [
            "id",
            "listing_id",
            "buyer",
            "seller",
            "amount",
            "message",
            "status",
            "status_display",
            "parent_offer",
            "counter_amount",
            "counter_message",
            "responded_at",
            "paid_at",
            "version",
            "order_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_order_id(self, obj):
        order = getattr(obj, "order", None)
        return str(order.pk) if order is not None else None


class OfferCreateSerializer(serializers.Serializer):
    """Serializer for proposing an offer"""

    listing_id = serializers.UUIDField()
    seller = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    message = serializers.CharField(
        required=False, allow_blank=True, max_length=2000
    )


class OfferRespondSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=OfferResponse.choices)
    counter_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )
    counter_message = serializers.CharField(
        required=False, allow_blank=True, max_length=2000
    )

    def validate(self, attrs):
        if attrs["action"] == OfferResponse.COUNTER and attrs.get("counter_amount") is None:
            raise serializers.ValidationError(
                {"counter_amount": "A counter amount is required to counter an offer"}
            )
        return attrs
