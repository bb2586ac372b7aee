import logging

from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, permissions, viewsets
from rest_framework.decorators import action

from apps.core.permissions import IsTradeParticipantOrStaff
from apps.core.views import BaseResponseMixin
from apps.reviews.services import ReviewGateService
from .filters import OrderFilter
from .models import Order
from .serializers import (
    AdvanceOrderSerializer,
    CancelOrderSerializer,
    OrderSerializer,
    OrderStatusHistorySerializer,
    SchedulePickupSerializer,
)
from .services import OrderFulfillmentService

logger = logging.getLogger("orders_performance")


class OrderViewSet(
    BaseResponseMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for order fulfillment
    - List: GET /orders/
    - Detail: GET /orders/{id}/
    - Schedule pickup: POST /orders/{id}/schedule-pickup/ (seller)
    - Advance: POST /orders/{id}/advance/
    - Confirm delivery: POST /orders/{id}/confirm-delivery/
    - Cancel: POST /orders/{id}/cancel/
    - History: GET /orders/{id}/history/
    - Review eligibility: GET /orders/{id}/can-review/
    """

    permission_classes = [permissions.IsAuthenticated, IsTradeParticipantOrStaff]
    filter_backends = [DjangoFilterBackend]
    filterset_class = OrderFilter

    def get_serializer_class(self):
        if self.action == "schedule_pickup":
            return SchedulePickupSerializer
        if self.action == "advance":
            return AdvanceOrderSerializer
        if self.action == "cancel":
            return CancelOrderSerializer
        return OrderSerializer

    def get_queryset(self):
        user = self.request.user
        queryset = Order.objects.select_related("buyer", "seller")
        if user.is_staff:
            return queryset
        return queryset.filter(Q(buyer=user) | Q(seller=user))

    def _validated(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return serializer.validated_data

    @action(detail=True, methods=["post"], url_path="schedule-pickup")
    def schedule_pickup(self, request, pk=None):
        order = self.get_object()
        data = self._validated(request)
        result = OrderFulfillmentService.schedule_pickup(
            order,
            request.user,
            data["pickup_date"],
            data["pickup_time"],
            data["pickup_address"],
            notes=data.get("pickup_notes"),
        )
        return self.result_response(result, OrderSerializer, message="Pickup scheduled")

    @action(detail=True, methods=["post"])
    def advance(self, request, pk=None):
        order = self.get_object()
        data = self._validated(request)
        result = OrderFulfillmentService.advance(
            order, request.user, data["status"], notes=data.get("notes")
        )
        return self.result_response(result, OrderSerializer)

    @action(detail=True, methods=["post"], url_path="confirm-delivery")
    def confirm_delivery(self, request, pk=None):
        result = OrderFulfillmentService.confirm_delivery(self.get_object(), request.user)
        return self.result_response(result, OrderSerializer, message="Delivery confirmed")

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        order = self.get_object()
        data = self._validated(request)
        result = OrderFulfillmentService.cancel(order, request.user, data["reason"])
        return self.result_response(result, OrderSerializer, message="Order cancelled")

    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        entries = OrderFulfillmentService.history(self.get_object())
        return self.success_response(
            data=OrderStatusHistorySerializer(entries, many=True).data
        )

    @action(detail=True, methods=["get"], url_path="can-review")
    def can_review(self, request, pk=None):
        order = self.get_object()
        return self.success_response(
            data={"can_review": ReviewGateService.can_review(order, request.user)}
        )
