import uuid
from datetime import date, time

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from apps.core.events import domain_event
from apps.offers.listings import register_listing_owner
from apps.offers.services import OfferLedgerService
from apps.orders.models import OrderStatus
from apps.orders.services import OrderFulfillmentService

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def buyer(db):
    return User.objects.create_user(
        email="buyer@test.com",
        password="testpass123",
        first_name="Bola",
        last_name="Ade",
        user_type="BUYER",
    )


@pytest.fixture
def seller(db):
    return User.objects.create_user(
        email="seller@test.com",
        password="testpass123",
        first_name="Sani",
        last_name="Musa",
        company_name="Musa Recycling",
        user_type="SELLER",
    )


@pytest.fixture
def outsider(db):
    return User.objects.create_user(email="outsider@test.com", password="testpass123")


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        is_staff=True,
        user_type="ADMIN",
    )


@pytest.fixture
def listing_id(seller):
    listing = uuid.uuid4()
    register_listing_owner(listing, seller)
    return listing


@pytest.fixture
def make_offer(buyer, seller, listing_id):
    def _make(amount="1000.00", message="Can you do this price?"):
        return OfferLedgerService.propose(
            listing_id, buyer, seller, amount, message=message
        ).unwrap()

    return _make


@pytest.fixture
def pending_offer(make_offer):
    return make_offer()


@pytest.fixture
def countered_offer(pending_offer, seller):
    return OfferLedgerService.respond(
        pending_offer, seller, "counter", counter_amount="1200.00"
    ).unwrap()


@pytest.fixture
def accepted_order(pending_offer, seller):
    OfferLedgerService.respond(pending_offer, seller, "accept").unwrap()
    return pending_offer.order


def progress_order(order, buyer, seller, target):
    """Drive an order forward through the normal party actions up to ``target``."""
    steps = [
        (
            OrderStatus.PICKUP_SCHEDULED,
            lambda: OrderFulfillmentService.schedule_pickup(
                order, seller, date(2026, 3, 2), time(9, 30), "14 Wharf Road, Apapa"
            ),
        ),
        (
            OrderStatus.IN_TRANSIT,
            lambda: OrderFulfillmentService.advance(order, seller, OrderStatus.IN_TRANSIT),
        ),
        (
            OrderStatus.DELIVERED,
            lambda: OrderFulfillmentService.advance(order, buyer, OrderStatus.DELIVERED),
        ),
        (
            OrderStatus.COMPLETED,
            lambda: (
                OrderFulfillmentService.confirm_delivery(order, buyer).unwrap(),
                OrderFulfillmentService.confirm_delivery(order, seller),
            )[-1],
        ),
    ]
    for status, step in steps:
        step().unwrap()
        if status == target:
            break
    order.refresh_from_db()
    return order


@pytest.fixture
def in_transit_order(accepted_order, buyer, seller):
    return progress_order(accepted_order, buyer, seller, OrderStatus.IN_TRANSIT)


@pytest.fixture
def delivered_order(accepted_order, buyer, seller):
    return progress_order(accepted_order, buyer, seller, OrderStatus.DELIVERED)


@pytest.fixture
def completed_order(accepted_order, buyer, seller):
    return progress_order(accepted_order, buyer, seller, OrderStatus.COMPLETED)


@pytest.fixture
def captured_events():
    """Domain events delivered to receivers (after commit)."""
    events = []

    def _receiver(sender, event, **kwargs):
        events.append(event)

    domain_event.connect(_receiver, weak=False, dispatch_uid="test-captured-events")
    yield events
    domain_event.disconnect(dispatch_uid="test-captured-events")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client

    return _client


@pytest.fixture
def drive_order(buyer, seller):
    def _drive(order, target):
        return progress_order(order, buyer, seller, target)

    return _drive
