import pytest
from django.urls import reverse

from apps.reviews.services import ReviewGateService


@pytest.mark.django_db
class TestReviewAPI:
    def test_submit_and_read_back(self, client_for, completed_order, buyer, seller, outsider):
        submitted = client_for(buyer).post(
            reverse("review-list"),
            {
                "order_id": str(completed_order.pk),
                "reviewee": str(seller.pk),
                "rating": 4,
                "comment": "Good sorting, slight delay",
            },
            format="json",
        )
        assert submitted.status_code == 201
        assert submitted.data["data"]["rating"] == 4

        reviews = client_for(outsider).get(reverse("review-user-reviews", args=[seller.pk]))
        assert reviews.data["data"][0]["comment"] == "Good sorting, slight delay"
        assert "order" not in reviews.data["data"][0]

        rating = client_for(outsider).get(reverse("review-user-rating", args=[seller.pk]))
        assert rating.data["data"] == {"average_rating": "4.00", "total_reviews": 1}

    def test_not_eligible_is_422(self, client_for, delivered_order, buyer, seller):
        response = client_for(buyer).post(
            reverse("review-list"),
            {"order_id": str(delivered_order.pk), "reviewee": str(seller.pk), "rating": 5},
            format="json",
        )

        assert response.status_code == 422
        assert response.data["code"] == "not_eligible"

    def test_out_of_range_rating(self, client_for, completed_order, buyer, seller):
        response = client_for(buyer).post(
            reverse("review-list"),
            {"order_id": str(completed_order.pk), "reviewee": str(seller.pk), "rating": 7},
            format="json",
        )

        assert response.status_code == 400
        assert response.data["code"] == "invalid_input"
        assert not ReviewGateService.get_user_reviews(seller).exists()

    def test_unknown_user(self, client_for, buyer):
        response = client_for(buyer).get(reverse("review-user-rating", args=["not-a-user"]))

        assert response.status_code == 404
