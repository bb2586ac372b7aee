import logging

from django.db.models import Q
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action

from apps.core.permissions import IsTradeParticipantOrStaff
from apps.core.views import BaseResponseMixin
from apps.disputes.utils.filters import DisputeFilter
from .models import Dispute
from .serializers import (
    DisputeCloseSerializer,
    DisputeCreateSerializer,
    DisputeDetailSerializer,
    DisputeListSerializer,
    DisputeMessageCreateSerializer,
    DisputeMessageSerializer,
    DisputeResolutionSerializer,
    DisputeStatusSerializer,
)
from .services import DisputeCaseService

logger = logging.getLogger("disputes_performance")


class DisputeViewSet(
    BaseResponseMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for managing disputes
    - Open: POST /disputes/
    - List: GET /disputes/
    - Detail: GET /disputes/{id}/
    - Messages: GET/POST /disputes/{id}/messages/
    - Triage: POST /disputes/{id}/status/ (admin only)
    - Resolve: POST /disputes/{id}/resolve/ (admin only)
    - Close: POST /disputes/{id}/close/ (admin only)
    - My Disputes: GET /disputes/my/
    """

    permission_classes = [permissions.IsAuthenticated, IsTradeParticipantOrStaff]
    filter_backends = [DjangoFilterBackend]
    filterset_class = DisputeFilter

    def get_serializer_class(self):
        if self.action == "create":
            return DisputeCreateSerializer
        elif self.action == "resolve":
            return DisputeResolutionSerializer
        elif self.action == "update_status":
            return DisputeStatusSerializer
        elif self.action == "close":
            return DisputeCloseSerializer
        elif self.action == "messages":
            return DisputeMessageCreateSerializer
        elif self.action == "list" or self.action == "my_disputes":
            return DisputeListSerializer
        return DisputeDetailSerializer

    def get_queryset(self):
        """Filter queryset based on user permissions"""
        user = self.request.user
        queryset = Dispute.objects.select_related("order", "raised_by", "admin")

        if user.is_staff:
            return queryset
        # Users can only see disputes on their own orders
        return queryset.filter(Q(order__buyer=user) | Q(order__seller=user))

    def create(self, request, *args, **kwargs):
        """Open a new dispute"""
        start_time = timezone.now()

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = DisputeCaseService.open(
            serializer.order,
            request.user,
            data["reason"],
            data["description"],
            evidence_urls=data.get("evidence_urls"),
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"Open dispute via API finished in {duration:.2f}ms")
        return self.result_response(
            result,
            DisputeDetailSerializer,
            message="Dispute opened",
            success_status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        dispute = self.get_object()
        if request.method == "GET":
            return self.success_response(
                data=DisputeMessageSerializer(dispute.messages.all(), many=True).data
            )

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DisputeCaseService.post_message(
            dispute,
            request.user,
            serializer.validated_data["message"],
            is_admin=serializer.validated_data["is_admin"],
        )
        return self.result_response(
            result,
            DisputeMessageSerializer,
            message="Message posted",
            success_status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        """Move a dispute between review states (admin/staff only)"""
        dispute = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DisputeCaseService.update_status(
            dispute,
            request.user,
            serializer.validated_data["status"],
            notes=serializer.validated_data.get("admin_notes"),
        )
        return self.result_response(result, DisputeDetailSerializer)

    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        """Resolve a dispute (admin/staff only)"""
        dispute = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = DisputeCaseService.resolve(
            dispute,
            request.user,
            data["status"],
            notes=data.get("admin_notes"),
            resolution=data.get("resolution_notes"),
            order_outcome=data["order_outcome"],
        )
        return self.result_response(
            result, DisputeDetailSerializer, message="Dispute resolved"
        )

    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):
        dispute = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DisputeCaseService.close(
            dispute, request.user, notes=serializer.validated_data.get("admin_notes")
        )
        return self.result_response(
            result, DisputeDetailSerializer, message="Dispute closed"
        )

    @action(detail=False, methods=["get"])
    def my(self, request):
        """Get current user's disputes"""
        status_filter = request.query_params.get("status")

        disputes = DisputeCaseService.get_user_disputes(request.user, status_filter)
        serializer = DisputeListSerializer(disputes, many=True)
        return self.success_response(data=serializer.data)
