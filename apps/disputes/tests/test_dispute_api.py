import pytest
from django.urls import reverse

from apps.disputes.models import DisputeStatus
from apps.orders.models import OrderStatus


@pytest.fixture
def opened(client_for, in_transit_order, buyer):
    response = client_for(buyer).post(
        reverse("dispute-list"),
        {
            "order_id": str(in_transit_order.pk),
            "reason": "wrong_material",
            "description": "Received PET instead of HDPE",
            "evidence_urls": ["https://files.example.com/bale.jpg"],
        },
        format="json",
    )
    assert response.status_code == 201
    return response.data["data"]


@pytest.mark.django_db
class TestDisputeAPI:
    def test_open_marks_order_disputed(self, opened):
        assert opened["status"] == DisputeStatus.OPEN
        assert opened["order_status"] == OrderStatus.DISPUTED
        assert opened["evidence_urls"] == ["https://files.example.com/bale.jpg"]

    def test_second_open_conflicts(self, opened, client_for, in_transit_order, seller):
        response = client_for(seller).post(
            reverse("dispute-list"),
            {"order_id": str(in_transit_order.pk), "reason": "other", "description": "Me too"},
            format="json",
        )

        assert response.status_code == 409
        assert response.data["code"] == "conflict"

    def test_unknown_order(self, client_for, buyer):
        response = client_for(buyer).post(
            reverse("dispute-list"),
            {
                "order_id": "00000000-0000-0000-0000-000000000000",
                "reason": "other",
                "description": "Where is it",
            },
            format="json",
        )

        assert response.status_code == 400
        assert "order_id" in response.data

    def test_conversation(self, opened, client_for, buyer, seller):
        url = reverse("dispute-messages", args=[opened["id"]])

        posted = client_for(seller).post(url, {"message": "It was HDPE when loaded"}, format="json")
        listed = client_for(buyer).get(url)

        assert posted.status_code == 201
        assert [m["message"] for m in listed.data["data"]] == ["It was HDPE when loaded"]

    def test_resolution_by_staff(self, opened, client_for, admin_user, buyer, in_transit_order):
        forbidden = client_for(buyer).post(
            reverse("dispute-resolve", args=[opened["id"]]),
            {"status": "resolved_buyer_favor"},
            format="json",
        )
        assert forbidden.status_code == 403

        resolved = client_for(admin_user).post(
            reverse("dispute-resolve", args=[opened["id"]]),
            {
                "status": "resolved_buyer_favor",
                "resolution_notes": "Seller refunds and collects the bales",
                "order_outcome": "cancel",
            },
            format="json",
        )
        assert resolved.status_code == 200
        assert resolved.data["data"]["status"] == DisputeStatus.RESOLVED_BUYER_FAVOR
        assert resolved.data["data"]["order_status"] == OrderStatus.CANCELLED

        closed = client_for(admin_user).post(reverse("dispute-close", args=[opened["id"]]))
        assert closed.data["data"]["status"] == DisputeStatus.CLOSED

    def test_triage(self, opened, client_for, admin_user):
        response = client_for(admin_user).post(
            reverse("dispute-update-status", args=[opened["id"]]),
            {"status": "under_review", "admin_notes": "Requested weighbridge ticket"},
            format="json",
        )

        assert response.data["data"]["status"] == DisputeStatus.UNDER_REVIEW
        assert response.data["data"]["admin_notes"] == "Requested weighbridge ticket"

    def test_my_disputes(self, opened, client_for, seller, outsider):
        mine = client_for(seller).get(reverse("dispute-my"))
        theirs = client_for(outsider).get(reverse("dispute-my"))

        assert [d["id"] for d in mine.data["data"]] == [opened["id"]]
        assert theirs.data["data"] == []
