import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.offers.listings import register_listing_owner, resolve_listing_owner
from apps.offers.models import Offer, OfferStatus
from apps.offers.services import OfferLedgerService
from apps.offers.tasks import expire_stale_offers
from apps.orders.models import Order, OrderStatus


@pytest.mark.django_db
class TestPropose:
    def test_creates_pending_offer(self, buyer, seller, listing_id):
        result = OfferLedgerService.propose(listing_id, buyer, seller, "1000.00")

        assert result.ok
        offer = result.value
        assert offer.status == OfferStatus.PENDING
        assert offer.amount == Decimal("1000.00")
        assert offer.version == 0
        assert offer.buyer == buyer
        assert offer.seller == seller

    def test_cannot_offer_to_yourself(self, seller, listing_id):
        result = OfferLedgerService.propose(listing_id, seller, seller, "1000.00")

        assert result.error_code == "forbidden"
        assert Offer.objects.count() == 0

    @pytest.mark.parametrize("amount", [None, 0, "-5", "abc", "10.123", True])
    def test_rejects_bad_amounts(self, buyer, seller, listing_id, amount):
        result = OfferLedgerService.propose(listing_id, buyer, seller, amount)

        assert result.error_code == "invalid_input"
        assert Offer.objects.count() == 0

    def test_unknown_listing(self, buyer, seller):
        result = OfferLedgerService.propose(uuid.uuid4(), buyer, seller, "10.00")

        assert result.error_code == "invalid_input"
        assert result.message == "Listing not found"

    def test_seller_must_own_listing(self, buyer, outsider, listing_id):
        result = OfferLedgerService.propose(listing_id, buyer, outsider, "10.00")

        assert result.error_code == "invalid_input"

    def test_publishes_pending_event(
        self, buyer, seller, listing_id, captured_events, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            offer = OfferLedgerService.propose(listing_id, buyer, seller, "10.00").value

        assert [(e.entity, e.id, e.from_status, e.to_status) for e in captured_events] == [
            ("offer", str(offer.pk), None, "pending")
        ]


@pytest.mark.django_db
class TestRespond:
    def test_accept_creates_order(self, pending_offer, seller):
        result = OfferLedgerService.respond(pending_offer, seller, "accept")

        assert result.ok
        offer = result.value
        assert offer.status == OfferStatus.ACCEPTED
        assert offer.version == 1
        assert offer.responded_at is not None

        order = Order.objects.get(offer=offer)
        assert order.status == OrderStatus.PENDING_PICKUP
        assert order.amount == offer.amount
        assert order.buyer_id == offer.buyer_id
        assert order.seller_id == offer.seller_id
        assert order.listing_id == offer.listing_id

    def test_accept_publishes_offer_and_order_events(
        self, pending_offer, seller, captured_events, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            OfferLedgerService.respond(pending_offer, seller, "accept")

        changes = [(e.entity, e.from_status, e.to_status) for e in captured_events]
        assert changes == [
            ("offer", "pending", "accepted"),
            ("order", None, "pending_pickup"),
        ]

    def test_decline(self, pending_offer, seller):
        result = OfferLedgerService.respond(pending_offer, seller, "decline")

        assert result.value.status == OfferStatus.DECLINED
        assert not Order.objects.exists()

    def test_counter_records_terms(self, pending_offer, seller):
        result = OfferLedgerService.respond(
            pending_offer, seller, "counter", counter_amount="1200.00", counter_message="Best I can do"
        )

        offer = result.value
        assert offer.status == OfferStatus.COUNTERED
        assert offer.counter_amount == Decimal("1200.00")
        assert offer.counter_message == "Best I can do"
        assert offer.amount == Decimal("1000.00")

    def test_counter_requires_amount(self, pending_offer, seller):
        result = OfferLedgerService.respond(pending_offer, seller, "counter")

        assert result.error_code == "invalid_input"
        pending_offer.refresh_from_db()
        assert pending_offer.status == OfferStatus.PENDING
        assert pending_offer.version == 0

    def test_only_seller_can_respond(self, pending_offer, buyer):
        result = OfferLedgerService.respond(pending_offer, buyer, "accept")

        assert result.error_code == "forbidden"

    def test_unknown_action(self, pending_offer, seller):
        result = OfferLedgerService.respond(pending_offer, seller, "maybe")

        assert result.error_code == "invalid_input"

    def test_cannot_respond_twice(self, countered_offer, seller):
        result = OfferLedgerService.respond(countered_offer, seller, "accept")

        assert result.error_code == "invalid_transition"

    def test_losing_a_race_is_stale(self, pending_offer, seller):
        other_copy = Offer.objects.get(pk=pending_offer.pk)

        assert OfferLedgerService.respond(pending_offer, seller, "accept").ok
        result = OfferLedgerService.respond(other_copy, seller, "decline")

        assert result.error_code == "stale_state"
        pending_offer.refresh_from_db()
        assert pending_offer.status == OfferStatus.ACCEPTED
        assert Order.objects.count() == 1

    def test_existing_order_rolls_back_acceptance(self, pending_offer, seller, buyer):
        Order.objects.create(
            offer=pending_offer,
            listing_id=pending_offer.listing_id,
            buyer=buyer,
            seller=seller,
            amount=pending_offer.amount,
        )

        result = OfferLedgerService.respond(pending_offer, seller, "accept")

        assert result.error_code == "conflict"
        pending_offer.refresh_from_db()
        assert pending_offer.status == OfferStatus.PENDING
        assert pending_offer.version == 0


@pytest.mark.django_db
class TestCounterNegotiation:
    def test_accepting_counter_creates_accepted_child(self, countered_offer, buyer):
        result = OfferLedgerService.accept_counter(countered_offer, buyer)

        assert result.ok
        accepted = result.value
        assert accepted.pk != countered_offer.pk
        assert accepted.status == OfferStatus.ACCEPTED
        assert accepted.amount == Decimal("1200.00")
        assert accepted.parent_offer_id == countered_offer.pk
        assert Order.objects.get(offer=accepted).amount == Decimal("1200.00")

        countered_offer.refresh_from_db()
        assert countered_offer.status == OfferStatus.COUNTERED
        assert countered_offer.version == 2
        assert countered_offer.is_superseded

    def test_accepted_counter_is_announced_before_its_order(
        self, countered_offer, buyer, captured_events, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            accepted = OfferLedgerService.accept_counter(countered_offer, buyer).value

        assert [(e.entity, e.id, e.to_status) for e in captured_events] == [
            ("offer", str(accepted.pk), "accepted"),
            ("order", str(accepted.order.pk), "pending_pickup"),
        ]

    def test_counter_accepted_only_once(self, countered_offer, buyer):
        assert OfferLedgerService.accept_counter(countered_offer, buyer).ok

        result = OfferLedgerService.accept_counter(countered_offer, buyer)

        assert result.error_code == "conflict"
        assert Offer.objects.filter(parent_offer=countered_offer).count() == 1

    def test_only_buyer_accepts_counter(self, countered_offer, seller):
        result = OfferLedgerService.accept_counter(countered_offer, seller)

        assert result.error_code == "forbidden"

    def test_pending_offer_has_no_counter(self, pending_offer, buyer):
        result = OfferLedgerService.accept_counter(pending_offer, buyer)

        assert result.error_code == "invalid_transition"

    def test_withdraw_after_counter_accepted(self, countered_offer, buyer):
        stale_copy = Offer.objects.get(pk=countered_offer.pk)
        OfferLedgerService.accept_counter(countered_offer, buyer).unwrap()

        result = OfferLedgerService.withdraw(stale_copy, buyer)

        assert result.error_code == "invalid_transition"
        stale_copy.refresh_from_db()
        assert stale_copy.status == OfferStatus.COUNTERED

    def test_accept_after_withdraw_is_stale(self, countered_offer, buyer):
        stale_copy = Offer.objects.get(pk=countered_offer.pk)
        OfferLedgerService.withdraw(countered_offer, buyer).unwrap()

        result = OfferLedgerService.accept_counter(stale_copy, buyer)

        assert result.error_code == "stale_state"
        assert not Offer.objects.filter(parent_offer=countered_offer).exists()
        assert not Order.objects.exists()

    def test_negotiation_chain(self, countered_offer, buyer):
        accepted = OfferLedgerService.accept_counter(countered_offer, buyer).value

        chain = OfferLedgerService.negotiation_chain(accepted)

        assert [offer.pk for offer in chain] == [countered_offer.pk, accepted.pk]


@pytest.mark.django_db
class TestWithdrawAndPayment:
    def test_withdraw_pending(self, pending_offer, buyer):
        result = OfferLedgerService.withdraw(pending_offer, buyer)

        assert result.value.status == OfferStatus.WITHDRAWN

    def test_only_buyer_withdraws(self, pending_offer, seller):
        assert OfferLedgerService.withdraw(pending_offer, seller).error_code == "forbidden"

    def test_cannot_withdraw_accepted(self, accepted_order, pending_offer, buyer):
        result = OfferLedgerService.withdraw(pending_offer, buyer)

        assert result.error_code == "invalid_transition"

    def test_mark_paid(self, accepted_order, pending_offer, buyer):
        result = OfferLedgerService.mark_paid(pending_offer, buyer)

        assert result.value.status == OfferStatus.PAID
        assert result.value.paid_at is not None

    def test_mark_paid_requires_acceptance(self, pending_offer, buyer):
        result = OfferLedgerService.mark_paid(pending_offer, buyer)

        assert result.error_code == "invalid_transition"


def _age(offer, hours):
    Offer.objects.filter(pk=offer.pk).update(
        created_at=timezone.now() - timedelta(hours=hours)
    )


@pytest.mark.django_db
class TestExpiry:
    def test_expires_inactive_offer(self, pending_offer):
        _age(pending_offer, 169)

        result = OfferLedgerService.expire_if_stale(pending_offer.pk)

        assert result.value.status == OfferStatus.EXPIRED

    def test_recent_offer_untouched(self, pending_offer):
        result = OfferLedgerService.expire_if_stale(pending_offer.pk)

        assert result.ok
        assert result.message == "Offer is still active"
        assert result.value.status == OfferStatus.PENDING

    def test_counter_resets_the_clock(self, countered_offer):
        _age(countered_offer, 500)

        result = OfferLedgerService.expire_if_stale(countered_offer.pk)

        assert result.value.status == OfferStatus.COUNTERED

    def test_superseded_counter_is_not_expired(self, countered_offer, buyer):
        OfferLedgerService.accept_counter(countered_offer, buyer).unwrap()
        Offer.objects.filter(pk=countered_offer.pk).update(
            responded_at=timezone.now() - timedelta(hours=500)
        )

        result = OfferLedgerService.expire_if_stale(countered_offer.pk)

        assert result.message == "Offer is not open"
        assert result.value.status == OfferStatus.COUNTERED

    def test_unknown_offer(self):
        result = OfferLedgerService.expire_if_stale(uuid.uuid4())

        assert result.error_code == "not_found"

    def test_expiry_window_from_settings(self, pending_offer, settings):
        settings.TRADE_ENGINE = {"OFFER_EXPIRY_HOURS": 1}
        _age(pending_offer, 2)

        result = OfferLedgerService.expire_if_stale(pending_offer.pk)

        assert result.value.status == OfferStatus.EXPIRED

    def test_periodic_task_expires_only_stale_offers(self, make_offer):
        stale = make_offer("500.00")
        fresh = make_offer("600.00")
        _age(stale, 200)

        expired = expire_stale_offers.apply().get()

        assert expired == 1
        stale.refresh_from_db()
        fresh.refresh_from_db()
        assert stale.status == OfferStatus.EXPIRED
        assert fresh.status == OfferStatus.PENDING


@pytest.mark.django_db
class TestListingOwnership:
    def test_register_moves_ownership(self, listing_id, outsider):
        register_listing_owner(listing_id, outsider)

        assert resolve_listing_owner(listing_id) == outsider.pk

    def test_resolver_is_configurable(self, settings, buyer, seller):
        settings.TRADE_ENGINE = {
            "LISTING_OWNER_RESOLVER": "apps.offers.tests.test_offer_services.owner_is_seller"
        }

        result = OfferLedgerService.propose(uuid.uuid4(), buyer, seller, "25.00")

        assert result.ok


def owner_is_seller(listing_id):
    from django.contrib.auth import get_user_model

    return get_user_model().objects.get(email="seller@test.com").pk
