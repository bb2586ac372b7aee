import pytest
from django.urls import reverse

from apps.offers.models import Offer, OfferStatus


@pytest.mark.django_db
class TestOfferAPI:
    def test_buyer_proposes(self, client_for, buyer, seller, listing_id):
        response = client_for(buyer).post(
            reverse("offer-list"),
            {
                "listing_id": str(listing_id),
                "seller": str(seller.pk),
                "amount": "1000.00",
                "message": "Collect Friday?",
            },
            format="json",
        )

        assert response.status_code == 201
        data = response.data["data"]
        assert data["status"] == OfferStatus.PENDING
        assert data["amount"] == "1000.00"
        assert data["buyer"]["id"] == str(buyer.pk)
        assert data["order_id"] is None

    def test_engine_rejection_keeps_error_code(self, client_for, seller, listing_id):
        response = client_for(seller).post(
            reverse("offer-list"),
            {"listing_id": str(listing_id), "seller": str(seller.pk), "amount": "10.00"},
            format="json",
        )

        assert response.status_code == 403
        assert response.data["status"] == "error"
        assert response.data["code"] == "forbidden"

    def test_malformed_payload(self, client_for, buyer, seller):
        response = client_for(buyer).post(
            reverse("offer-list"),
            {"listing_id": "nope", "seller": str(seller.pk), "amount": "abc"},
            format="json",
        )

        assert response.status_code == 400
        assert not Offer.objects.exists()

    def test_counter_then_accept(self, client_for, pending_offer, buyer, seller):
        countered = client_for(seller).post(
            reverse("offer-respond", args=[pending_offer.pk]),
            {"action": "counter", "counter_amount": "1200.00"},
            format="json",
        )
        assert countered.status_code == 200
        assert countered.data["data"]["status"] == OfferStatus.COUNTERED

        accepted = client_for(buyer).post(
            reverse("offer-accept-counter", args=[pending_offer.pk])
        )
        assert accepted.status_code == 201
        assert accepted.data["data"]["amount"] == "1200.00"
        assert accepted.data["data"]["order_id"] is not None

        again = client_for(buyer).post(
            reverse("offer-accept-counter", args=[pending_offer.pk])
        )
        assert again.status_code == 409
        assert again.data["code"] == "conflict"

    def test_counter_needs_amount(self, client_for, pending_offer, seller):
        response = client_for(seller).post(
            reverse("offer-respond", args=[pending_offer.pk]),
            {"action": "counter"},
            format="json",
        )

        assert response.status_code == 400
        assert "counter_amount" in response.data

    def test_outsider_cannot_see_offer(self, client_for, pending_offer, outsider):
        response = client_for(outsider).get(reverse("offer-detail", args=[pending_offer.pk]))

        assert response.status_code == 404

    def test_list_filtered_by_role(self, client_for, pending_offer, buyer, seller):
        as_buyer = client_for(buyer).get(reverse("offer-list"), {"role": "buyer"})
        as_seller = client_for(seller).get(reverse("offer-list"), {"role": "buyer"})

        assert [o["id"] for o in as_buyer.data["results"]] == [str(pending_offer.pk)]
        assert as_seller.data["results"] == []

    def test_chain(self, client_for, countered_offer, buyer):
        accepted = client_for(buyer).post(
            reverse("offer-accept-counter", args=[countered_offer.pk])
        )

        response = client_for(buyer).get(
            reverse("offer-chain", args=[accepted.data["data"]["id"]])
        )

        assert [o["id"] for o in response.data["data"]] == [
            str(countered_offer.pk),
            accepted.data["data"]["id"],
        ]

    def test_withdraw_and_mark_paid(self, client_for, make_offer, buyer, seller):
        first = make_offer("100.00")
        second = make_offer("200.00")
        client = client_for(buyer)

        withdrawn = client.post(reverse("offer-withdraw", args=[first.pk]))
        assert withdrawn.data["data"]["status"] == OfferStatus.WITHDRAWN

        client_for(seller).post(
            reverse("offer-respond", args=[second.pk]), {"action": "accept"}, format="json"
        )
        paid = client.post(reverse("offer-mark-paid", args=[second.pk]))
        assert paid.status_code == 200
        assert paid.data["data"]["status"] == OfferStatus.PAID
