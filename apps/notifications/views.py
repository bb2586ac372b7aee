from rest_framework import mixins, permissions, viewsets
from rest_framework.decorators import action

from apps.core.views import BaseResponseMixin
from .models import Notification
from .serializers import NotificationSerializer
from .services.notification_service import NotificationService


class NotificationViewSet(
    BaseResponseMixin, mixins.ListModelMixin, viewsets.GenericViewSet
):
    """
    In-app notifications of the current user
    - List: GET /notifications/
    - Mark all read: POST /notifications/mark-all-read/
    """

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        return Notification.objects.filter(recipient=self.request.user)

    @action(detail=False, methods=["post"], url_path="mark-all-read")
    def mark_all_read(self, request):
        updated = NotificationService.mark_all_read(request.user)
        return self.success_response(data={"updated": updated})
