import logging

from django.db.models import Q
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action

from apps.core.permissions import IsTradeParticipantOrStaff
from apps.core.views import BaseResponseMixin
from .filters import OfferFilter
from .models import Offer
from .serializers import (
    OfferCreateSerializer,
    OfferRespondSerializer,
    OfferSerializer,
)
from .services import OfferLedgerService

logger = logging.getLogger("offers_performance")


class OfferViewSet(
    BaseResponseMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for the offer ledger
    - Propose: POST /offers/
    - List: GET /offers/
    - Detail: GET /offers/{id}/
    - Respond: POST /offers/{id}/respond/ (seller)
    - Accept counter: POST /offers/{id}/accept-counter/ (buyer)
    - Withdraw: POST /offers/{id}/withdraw/ (buyer)
    - Mark paid: POST /offers/{id}/mark-paid/ (buyer)
    - Chain: GET /offers/{id}/chain/
    """

    permission_classes = [permissions.IsAuthenticated, IsTradeParticipantOrStaff]
    filter_backends = [DjangoFilterBackend]
    filterset_class = OfferFilter

    def get_serializer_class(self):
        if self.action == "create":
            return OfferCreateSerializer
        if self.action == "respond":
            return OfferRespondSerializer
        return OfferSerializer

    def get_queryset(self):
        """Filter queryset based on user permissions"""
        user = self.request.user
        queryset = Offer.objects.select_related("buyer", "seller", "order")
        if user.is_staff:
            return queryset
        return queryset.filter(Q(buyer=user) | Q(seller=user))

    def create(self, request, *args, **kwargs):
        start_time = timezone.now()

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = OfferLedgerService.propose(
            listing_id=data["listing_id"],
            buyer=request.user,
            seller=data["seller"],
            amount=data["amount"],
            message=data.get("message"),
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"Propose offer via API finished in {duration:.2f}ms")
        return self.result_response(
            result,
            OfferSerializer,
            message="Offer submitted",
            success_status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def respond(self, request, pk=None):
        offer = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = OfferLedgerService.respond(
            offer,
            request.user,
            data["action"],
            counter_amount=data.get("counter_amount"),
            counter_message=data.get("counter_message"),
        )
        return self.result_response(result, OfferSerializer)

    @action(detail=True, methods=["post"], url_path="accept-counter")
    def accept_counter(self, request, pk=None):
        result = OfferLedgerService.accept_counter(self.get_object(), request.user)
        return self.result_response(
            result,
            OfferSerializer,
            message="Counter offer accepted",
            success_status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def withdraw(self, request, pk=None):
        result = OfferLedgerService.withdraw(self.get_object(), request.user)
        return self.result_response(result, OfferSerializer, message="Offer withdrawn")

    @action(detail=True, methods=["post"], url_path="mark-paid")
    def mark_paid(self, request, pk=None):
        result = OfferLedgerService.mark_paid(self.get_object(), request.user)
        return self.result_response(result, OfferSerializer, message="Payment recorded")

    @action(detail=True, methods=["get"])
    def chain(self, request, pk=None):
        """The negotiation chain leading to this offer, oldest first."""
        chain = OfferLedgerService.negotiation_chain(self.get_object())
        return self.success_response(
            data=OfferSerializer(chain, many=True, context=self.get_serializer_context()).data
        )
