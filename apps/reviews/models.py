from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from apps.core.models import UUIDBaseModel


class Review(UUIDBaseModel):
    """
    Feedback one party leaves for the other once an order is completed.
    One review per (order, reviewer).
    """

    order = models.ForeignKey(
        "orders.Order", on_delete=models.PROTECT, related_name="reviews"
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reviews_given",
    )
    reviewee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="reviews_received",
    )
    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    comment = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["reviewee", "-created_at"], name="review_reviewee_recent_idx"
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "reviewer"], name="unique_review_per_order_reviewer"
            ),
            models.CheckConstraint(
                condition=Q(rating__gte=1) & Q(rating__lte=5),
                name="review_rating_range",
            ),
        ]

    def __str__(self):
        return f"{self.reviewer_id} rated {self.reviewee_id} {self.rating}/5"
