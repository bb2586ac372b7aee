import pytest

from apps.disputes.models import Dispute, DisputeMessage, DisputeStatus
from apps.disputes.services import DisputeCaseService
from apps.orders.models import OrderOutcome, OrderStatus


@pytest.fixture
def open_dispute(in_transit_order, buyer):
    return DisputeCaseService.open(
        in_transit_order,
        buyer,
        "quality_issue",
        "Bales are wet and mixed with film",
        evidence_urls=["https://files.example.com/weighbridge.jpg"],
    ).unwrap()


@pytest.mark.django_db
class TestOpenDispute:
    def test_open_interrupts_order(self, open_dispute, in_transit_order):
        in_transit_order.refresh_from_db()

        assert open_dispute.status == DisputeStatus.OPEN
        assert open_dispute.evidence_urls == ["https://files.example.com/weighbridge.jpg"]
        assert in_transit_order.status == OrderStatus.DISPUTED
        assert in_transit_order.pre_dispute_status == OrderStatus.IN_TRANSIT

    def test_publishes_dispute_and_order_events(
        self, in_transit_order, seller, captured_events, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            DisputeCaseService.open(in_transit_order, seller, "payment_issue", "Not paid")

        changes = sorted((e.entity, e.from_status or "", e.to_status) for e in captured_events)
        assert changes == [("dispute", "", "open"), ("order", "in_transit", "disputed")]

    def test_second_open_conflicts(self, open_dispute, in_transit_order, seller):
        result = DisputeCaseService.open(
            in_transit_order, seller, "other", "Buyer refuses to unload"
        )

        assert result.error_code == "conflict"
        assert Dispute.objects.filter(order=in_transit_order).count() == 1

    def test_stale_order_copy_still_conflicts(self, in_transit_order, buyer, seller):
        DisputeCaseService.open(in_transit_order, buyer, "other", "First").unwrap()
        in_transit_order.status = OrderStatus.IN_TRANSIT

        result = DisputeCaseService.open(in_transit_order, seller, "other", "Second")

        assert result.error_code == "conflict"

    def test_outsider_cannot_open(self, in_transit_order, outsider):
        result = DisputeCaseService.open(in_transit_order, outsider, "other", "Nosy")

        assert result.error_code == "forbidden"

    @pytest.mark.parametrize(
        "reason, description, evidence",
        [
            ("bad_vibes", "Something", None),
            ("other", "   ", None),
            ("other", "Something", "https://not-a-list.example.com"),
            ("other", "Something", ["ok", ""]),
        ],
    )
    def test_invalid_input(self, in_transit_order, buyer, reason, description, evidence):
        result = DisputeCaseService.open(
            in_transit_order, buyer, reason, description, evidence_urls=evidence
        )

        assert result.error_code == "invalid_input"
        in_transit_order.refresh_from_db()
        assert in_transit_order.status == OrderStatus.IN_TRANSIT

    def test_completed_order_cannot_be_disputed(self, completed_order, buyer):
        result = DisputeCaseService.open(completed_order, buyer, "other", "Too late")

        assert result.error_code == "invalid_transition"

    def test_disputed_order_cannot_be_cancelled_directly(self, open_dispute, in_transit_order, buyer):
        from apps.orders.services import OrderFulfillmentService

        in_transit_order.refresh_from_db()
        result = OrderFulfillmentService.cancel(in_transit_order, buyer, "Give up")

        assert result.error_code == "invalid_transition"


@pytest.mark.django_db
class TestResolveDispute:
    def test_mutual_resolution_resumes_order(self, open_dispute, admin_user):
        result = DisputeCaseService.resolve(
            open_dispute,
            admin_user,
            DisputeStatus.RESOLVED_MUTUAL,
            notes="Spoke to both parties",
            resolution="Seller delivers remaining 200kg",
        )

        dispute = result.value
        assert dispute.status == DisputeStatus.RESOLVED_MUTUAL
        assert dispute.admin == admin_user
        assert dispute.resolved_at is not None
        assert dispute.order_outcome == OrderOutcome.RESUME
        dispute.order.refresh_from_db()
        assert dispute.order.status == OrderStatus.IN_TRANSIT
        assert dispute.order.pre_dispute_status == ""

    def test_order_can_be_disputed_again_after_resolution(
        self, open_dispute, admin_user, in_transit_order, seller
    ):
        DisputeCaseService.resolve(
            open_dispute, admin_user, DisputeStatus.RESOLVED_MUTUAL
        ).unwrap()
        in_transit_order.refresh_from_db()

        result = DisputeCaseService.open(
            in_transit_order, seller, "communication_issue", "Buyer stopped replying"
        )

        assert result.ok
        assert Dispute.objects.filter(order=in_transit_order).count() == 2

    def test_buyer_favor_can_cancel_order(self, open_dispute, admin_user):
        DisputeCaseService.resolve(
            open_dispute,
            admin_user,
            DisputeStatus.RESOLVED_BUYER_FAVOR,
            order_outcome=OrderOutcome.CANCEL,
        ).unwrap()

        open_dispute.order.refresh_from_db()
        assert open_dispute.order.status == OrderStatus.CANCELLED
        assert open_dispute.order.cancelled_at is not None

    def test_seller_favor_can_complete_order(self, open_dispute, admin_user):
        DisputeCaseService.resolve(
            open_dispute,
            admin_user,
            DisputeStatus.RESOLVED_SELLER_FAVOR,
            order_outcome=OrderOutcome.COMPLETE,
        ).unwrap()

        open_dispute.order.refresh_from_db()
        assert open_dispute.order.status == OrderStatus.COMPLETED

    def test_only_staff_resolve(self, open_dispute, seller):
        result = DisputeCaseService.resolve(
            open_dispute, seller, DisputeStatus.RESOLVED_SELLER_FAVOR
        )

        assert result.error_code == "forbidden"
        open_dispute.refresh_from_db()
        assert open_dispute.status == DisputeStatus.OPEN

    def test_resolution_status_must_be_final(self, open_dispute, admin_user):
        result = DisputeCaseService.resolve(
            open_dispute, admin_user, DisputeStatus.UNDER_REVIEW
        )

        assert result.error_code == "invalid_input"

    def test_cannot_resolve_twice(self, open_dispute, admin_user):
        DisputeCaseService.resolve(
            open_dispute, admin_user, DisputeStatus.RESOLVED_MUTUAL
        ).unwrap()

        result = DisputeCaseService.resolve(
            open_dispute, admin_user, DisputeStatus.RESOLVED_BUYER_FAVOR
        )

        assert result.error_code == "invalid_transition"

    def test_stale_resolution_rolls_back(self, open_dispute, admin_user):
        stale_copy = Dispute.objects.get(pk=open_dispute.pk)
        DisputeCaseService.resolve(
            open_dispute, admin_user, DisputeStatus.RESOLVED_MUTUAL
        ).unwrap()
        DisputeCaseService.close(open_dispute, admin_user).unwrap()

        result = DisputeCaseService.resolve(
            stale_copy, admin_user, DisputeStatus.RESOLVED_BUYER_FAVOR
        )

        assert result.error_code == "stale_state"
        open_dispute.refresh_from_db()
        assert open_dispute.status == DisputeStatus.CLOSED


@pytest.mark.django_db
class TestTriageAndClose:
    def test_triage_moves_between_review_states(self, open_dispute, admin_user):
        reviewed = DisputeCaseService.update_status(
            open_dispute, admin_user, DisputeStatus.UNDER_REVIEW, notes="Looking"
        ).value
        assert reviewed.status == DisputeStatus.UNDER_REVIEW
        assert reviewed.admin_notes == "Looking"

        waiting = DisputeCaseService.update_status(
            reviewed, admin_user, DisputeStatus.AWAITING_RESPONSE
        ).value
        assert waiting.status == DisputeStatus.AWAITING_RESPONSE

    def test_triage_rejects_final_statuses(self, open_dispute, admin_user):
        result = DisputeCaseService.update_status(
            open_dispute, admin_user, DisputeStatus.CLOSED
        )

        assert result.error_code == "invalid_input"

    def test_close_requires_resolution(self, open_dispute, admin_user):
        result = DisputeCaseService.close(open_dispute, admin_user)

        assert result.error_code == "invalid_transition"

    def test_close_after_resolution(self, open_dispute, admin_user):
        DisputeCaseService.resolve(
            open_dispute, admin_user, DisputeStatus.RESOLVED_MUTUAL
        ).unwrap()

        result = DisputeCaseService.close(open_dispute, admin_user, notes="Done")

        assert result.value.status == DisputeStatus.CLOSED


@pytest.mark.django_db
class TestMessages:
    def test_parties_and_staff_can_write(self, open_dispute, buyer, seller, admin_user):
        DisputeCaseService.post_message(open_dispute, buyer, "Photos attached").unwrap()
        DisputeCaseService.post_message(open_dispute, seller, "Scale was broken").unwrap()
        DisputeCaseService.post_message(
            open_dispute, admin_user, "Please send weighbridge ticket", is_admin=True
        ).unwrap()

        messages = list(open_dispute.messages.all())
        assert [m.sender for m in messages] == [buyer, seller, admin_user]
        assert [m.is_admin for m in messages] == [False, False, True]

    def test_outsider_cannot_write(self, open_dispute, outsider):
        result = DisputeCaseService.post_message(open_dispute, outsider, "Hello")

        assert result.error_code == "forbidden"

    def test_party_cannot_post_as_admin(self, open_dispute, buyer):
        result = DisputeCaseService.post_message(open_dispute, buyer, "Trust me", is_admin=True)

        assert result.error_code == "forbidden"

    def test_empty_message(self, open_dispute, buyer):
        assert DisputeCaseService.post_message(open_dispute, buyer, "  ").error_code == "invalid_input"

    def test_resolved_dispute_is_read_only_for_parties(
        self, open_dispute, admin_user, buyer
    ):
        DisputeCaseService.resolve(
            open_dispute, admin_user, DisputeStatus.RESOLVED_MUTUAL
        ).unwrap()

        assert (
            DisputeCaseService.post_message(open_dispute, buyer, "One more thing").error_code
            == "invalid_transition"
        )
        assert DisputeCaseService.post_message(open_dispute, admin_user, "Closing note").ok
        assert DisputeMessage.objects.filter(dispute=open_dispute).count() == 1


@pytest.mark.django_db
def test_user_disputes_lists_both_sides(open_dispute, buyer, seller, outsider):
    assert list(DisputeCaseService.get_user_disputes(buyer)) == [open_dispute]
    assert list(DisputeCaseService.get_user_disputes(seller)) == [open_dispute]
    assert list(DisputeCaseService.get_user_disputes(outsider)) == []
    assert list(
        DisputeCaseService.get_user_disputes(buyer, status_filter=DisputeStatus.CLOSED)
    ) == []
