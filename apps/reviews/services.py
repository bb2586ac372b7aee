import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from django.core.cache import cache
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.utils import timezone

from apps.core.events import EventPublisher
from apps.core.exceptions import InvalidInput, NotEligible
from apps.core.results import returns_result
from apps.core.utils.cache_key_manager import CacheKeyManager
from apps.core.utils.cache_manager import CacheManager
from apps.core.utils.trade_engine import trade_engine_setting
from apps.orders.models import Order, OrderStatus
from apps.reviews.models import Review

logger = logging.getLogger("reviews_performance")


class ReviewGateService:
    """Mutual feedback, unlocked once an order is completed."""

    @staticmethod
    def can_review(order: Order, actor) -> bool:
        """Completed order, actor is a party, and has not reviewed it yet."""
        if order.status != OrderStatus.COMPLETED or not order.is_party(actor):
            return False
        return not Review.objects.filter(order=order, reviewer=actor).exists()

    @classmethod
    @returns_result
    @transaction.atomic
    def submit_review(
        cls, order: Order, reviewer, reviewee, rating, comment: Optional[str] = None
    ) -> Review:
        start_time = timezone.now()

        # bool is an int subclass, reject it explicitly
        if not isinstance(rating, int) or isinstance(rating, bool):
            raise InvalidInput("Rating must be a whole number", field="rating")
        if not 1 <= rating <= 5:
            raise InvalidInput("Rating must be between 1 and 5", field="rating")

        order = Order.objects.get(pk=order.pk)
        if not cls.can_review(order, reviewer):
            raise NotEligible("You are not eligible to review this order")
        counterpart = order.counterpart_of(reviewer)
        if reviewee is None or reviewee.pk != counterpart.pk:
            raise NotEligible("You can only review the other party of this order")

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    order=order,
                    reviewer=reviewer,
                    reviewee=reviewee,
                    rating=rating,
                    comment=comment or "",
                )
        except IntegrityError:
            raise NotEligible("You have already reviewed this order")

        transaction.on_commit(lambda: cls.invalidate_user_rating_cache(reviewee.pk))
        EventPublisher.publish(
            "review",
            review.pk,
            None,
            "submitted",
            actor=reviewer,
            order=order.pk,
            reviewee=reviewee.pk,
            rating=rating,
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Review {review.id} on order {order.id} submitted by {reviewer.pk} "
            f"in {duration:.2f}ms"
        )
        return review

    @staticmethod
    def get_user_rating(user, use_cache=True):
        """Average rating and review count received by ``user``."""
        cache_key = CacheKeyManager.make_key("review", "user_rating", user_id=user.pk)

        if use_cache:
            cached_stats = cache.get(cache_key)
            if cached_stats is not None:
                logger.info(f"Rating stats cache hit for user {user.pk}")
                return cached_stats

        start_time = timezone.now()

        stats = Review.objects.filter(reviewee=user).aggregate(
            average_rating=Avg("rating"), total_reviews=Count("id")
        )
        average = stats["average_rating"]
        result = {
            "average_rating": (
                Decimal(str(average)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
                if average is not None
                else Decimal("0.00")
            ),
            "total_reviews": stats["total_reviews"],
        }

        if use_cache:
            cache.set(cache_key, result, trade_engine_setting("RATING_CACHE_TIMEOUT"))

        elapsed = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"Calculated rating stats for user {user.pk} in {elapsed:.2f}ms")
        return result

    @staticmethod
    def get_user_reviews(user):
        """Public list of reviews received by ``user``, newest first."""
        return Review.objects.filter(reviewee=user).order_by("-created_at")

    @staticmethod
    def invalidate_user_rating_cache(user_id):
        CacheManager.invalidate("review", user_id=user_id)
        logger.info(f"Invalidated rating cache for user {user_id}")
