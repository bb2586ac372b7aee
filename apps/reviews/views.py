import logging

from django.contrib.auth import get_user_model
from rest_framework import permissions, status, viewsets
from rest_framework.generics import get_object_or_404
from rest_framework.decorators import action

from apps.core.views import BaseResponseMixin
from .serializers import (
    PublicReviewSerializer,
    ReviewCreateSerializer,
    ReviewSerializer,
    UserRatingSerializer,
)
from .services import ReviewGateService

User = get_user_model()
logger = logging.getLogger("reviews_performance")


class ReviewViewSet(BaseResponseMixin, viewsets.GenericViewSet):
    """
    ViewSet for reviews
    - Submit: POST /reviews/
    - A user's reviews: GET /reviews/users/{user_id}/
    - A user's rating: GET /reviews/users/{user_id}/rating/
    """

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ReviewCreateSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ReviewGateService.submit_review(
            serializer.order,
            request.user,
            data["reviewee"],
            data["rating"],
            comment=data.get("comment"),
        )
        return self.result_response(
            result,
            ReviewSerializer,
            message="Review submitted",
            success_status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path=r"users/(?P<user_id>[^/.]+)")
    def user_reviews(self, request, user_id=None):
        user = get_object_or_404(User, pk=user_id)
        reviews = ReviewGateService.get_user_reviews(user)
        return self.success_response(
            data=PublicReviewSerializer(reviews, many=True).data
        )

    @action(
        detail=False, methods=["get"], url_path=r"users/(?P<user_id>[^/.]+)/rating"
    )
    def user_rating(self, request, user_id=None):
        user = get_object_or_404(User, pk=user_id)
        stats = ReviewGateService.get_user_rating(user)
        return self.success_response(data=UserRatingSerializer(stats).data)
