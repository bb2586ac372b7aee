from django.contrib.auth import get_user_model
from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from apps.core.serializers import UserShortSerializer
from apps.orders.models import Order
from .models import Review

User = get_user_model()


class ReviewCreateSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    reviewee = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    rating = serializers.IntegerField()
    comment = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate_order_id(self, value):
        try:
            self.order = Order.objects.get(id=value)
        except Order.DoesNotExist:
            raise serializers.ValidationError(_("Order not found"))
        return value


class ReviewSerializer(serializers.ModelSerializer):
    reviewer = UserShortSerializer(read_only=True)
    reviewee = UserShortSerializer(read_only=True)

    class Meta:
        model = Review
        fields = ["id", "order", "reviewer", "reviewee", "rating", "comment", "created_at"]
        read_only_fields = fields


class PublicReviewSerializer(serializers.ModelSerializer):
    """What anyone can see about a user's reviews: no order, no reviewer."""

    class Meta:
        model = Review
        fields = ["id", "rating", "comment", "created_at"]
        read_only_fields = fields


class UserRatingSerializer(serializers.Serializer):
    average_rating = serializers.DecimalField(max_digits=3, decimal_places=2)
    total_reviews = serializers.IntegerField()
