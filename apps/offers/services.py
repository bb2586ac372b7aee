import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from apps.core.events import EventPublisher
from apps.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidTransition,
    NotFound,
)
from apps.core.results import ServiceResult, returns_result
from apps.core.utils.conditional import require_update
from apps.core.utils.trade_engine import trade_engine_setting
from apps.offers.listings import resolve_listing_owner
from apps.offers.models import (
    OFFER_TRANSITIONS,
    OPEN_OFFER_STATUSES,
    Offer,
    OfferResponse,
    OfferStatus,
)
from apps.orders.services import OrderFulfillmentService

logger = logging.getLogger("offers_performance")


def _clean_amount(value, field_name="amount") -> Decimal:
    """Coerce a money value to a positive two-place Decimal or raise InvalidInput."""
    if value is None or isinstance(value, bool):
        raise InvalidInput(f"{field_name} is required", field=field_name)
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"{field_name} must be a number", field=field_name)
    if not amount.is_finite() or amount <= 0:
        raise InvalidInput(f"{field_name} must be greater than zero", field=field_name)
    if amount != amount.quantize(Decimal("0.01")):
        raise InvalidInput(
            f"{field_name} cannot have more than two decimal places", field=field_name
        )
    return amount


class OfferLedgerService:
    """
    Negotiation between a buyer and the listing owner.

    Every status change is a compare-and-swap on ``(id, status, version)``;
    losing the race yields StaleState. Accepting (directly or through a
    counter) creates the Order inside the same transaction.
    """

    @staticmethod
    def _transition(offer: Offer, new_status: str, **changes) -> Offer:
        previous_status = offer.status
        OFFER_TRANSITIONS.check(previous_status, new_status)
        require_update(
            Offer,
            offer.pk,
            {"status": previous_status, "version": offer.version},
            status=new_status,
            version=F("version") + 1,
            **changes,
        )
        offer.refresh_from_db()
        return offer

    @staticmethod
    @returns_result
    @transaction.atomic
    def propose(
        listing_id, buyer, seller, amount, message: Optional[str] = None
    ) -> Offer:
        """Create a pending offer from ``buyer`` to the listing owner."""
        start_time = timezone.now()

        if buyer.pk == seller.pk:
            raise Forbidden("You cannot make an offer on your own listing")

        amount = _clean_amount(amount)

        owner_id = resolve_listing_owner(listing_id)
        if owner_id is None:
            raise InvalidInput("Listing not found", listing_id=str(listing_id))
        if str(owner_id) != str(seller.pk):
            raise InvalidInput(
                "Offers must be addressed to the owner of the listing",
                listing_id=str(listing_id),
            )

        offer = Offer.objects.create(
            listing_id=listing_id,
            buyer=buyer,
            seller=seller,
            amount=amount,
            message=message or "",
            status=OfferStatus.PENDING,
        )
        EventPublisher.publish(
            "offer", offer.pk, None, OfferStatus.PENDING, actor=buyer, amount=amount
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Offer {offer.id} proposed on listing {listing_id} by {buyer.pk} in {duration:.2f}ms"
        )
        return offer

    @classmethod
    @returns_result
    @transaction.atomic
    def respond(
        cls,
        offer: Offer,
        actor,
        action: str,
        counter_amount=None,
        counter_message: Optional[str] = None,
    ) -> Offer:
        """Seller answers a pending offer: accept, decline or counter."""
        start_time = timezone.now()

        if actor.pk != offer.seller_id:
            raise Forbidden("Only the seller can respond to this offer")
        if action not in OfferResponse.values:
            raise InvalidInput(
                f"Unknown response '{action}'",
                allowed=", ".join(OfferResponse.values),
            )

        previous_status = offer.status
        now = timezone.now()

        if action == OfferResponse.ACCEPT:
            cls._transition(offer, OfferStatus.ACCEPTED, responded_at=now)
        elif action == OfferResponse.DECLINE:
            cls._transition(offer, OfferStatus.DECLINED, responded_at=now)
        else:
            OFFER_TRANSITIONS.check(previous_status, OfferStatus.COUNTERED)
            counter_amount = _clean_amount(counter_amount, "counter_amount")
            cls._transition(
                offer,
                OfferStatus.COUNTERED,
                responded_at=now,
                counter_amount=counter_amount,
                counter_message=counter_message or "",
            )

        # the acceptance is announced before the order it opens
        EventPublisher.publish(
            "offer", offer.pk, previous_status, offer.status, actor=actor
        )
        if offer.status == OfferStatus.ACCEPTED:
            OrderFulfillmentService.create_for_offer(offer, actor)

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Offer {offer.id} {previous_status} -> {offer.status} by seller {actor.pk} "
            f"in {duration:.2f}ms"
        )
        return offer

    @staticmethod
    @returns_result
    @transaction.atomic
    def accept_counter(offer: Offer, actor) -> Offer:
        """
        Buyer accepts the seller's counter. Returns the new accepted offer;
        the countered one stays ``countered`` with its version bumped so a
        racing withdraw fails.
        """
        start_time = timezone.now()

        if actor.pk != offer.buyer_id:
            raise Forbidden("Only the buyer can accept a counter offer")
        if offer.status != OfferStatus.COUNTERED:
            raise InvalidTransition(
                "Only a countered offer can have its counter accepted",
                current_status=offer.status,
            )
        if offer.is_superseded:
            raise Conflict("This counter offer has already been accepted")

        require_update(
            Offer,
            offer.pk,
            {"status": OfferStatus.COUNTERED, "version": offer.version},
            version=F("version") + 1,
        )
        offer.refresh_from_db()

        now = timezone.now()
        try:
            with transaction.atomic():
                accepted = Offer.objects.create(
                    listing_id=offer.listing_id,
                    buyer=offer.buyer,
                    seller=offer.seller,
                    amount=offer.counter_amount,
                    message=offer.counter_message,
                    status=OfferStatus.ACCEPTED,
                    parent_offer=offer,
                    responded_at=now,
                )
        except IntegrityError:
            raise Conflict("This counter offer has already been accepted")

        EventPublisher.publish(
            "offer",
            accepted.pk,
            None,
            OfferStatus.ACCEPTED,
            actor=actor,
            parent_offer=offer.pk,
        )
        OrderFulfillmentService.create_for_offer(accepted, actor)

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Counter on offer {offer.id} accepted as offer {accepted.id} "
            f"({accepted.amount}) in {duration:.2f}ms"
        )
        return accepted

    @classmethod
    @returns_result
    @transaction.atomic
    def withdraw(cls, offer: Offer, actor) -> Offer:
        if actor.pk != offer.buyer_id:
            raise Forbidden("Only the buyer can withdraw this offer")
        if offer.status == OfferStatus.COUNTERED and offer.is_superseded:
            raise InvalidTransition(
                "The counter on this offer was already accepted",
                current_status=offer.status,
            )

        previous_status = offer.status
        cls._transition(offer, OfferStatus.WITHDRAWN)
        EventPublisher.publish(
            "offer", offer.pk, previous_status, OfferStatus.WITHDRAWN, actor=actor
        )
        logger.info(f"Offer {offer.id} withdrawn by buyer {actor.pk}")
        return offer

    @classmethod
    @returns_result
    @transaction.atomic
    def mark_paid(cls, offer: Offer, actor) -> Offer:
        """Record that the buyer paid. No money moves here."""
        if actor.pk != offer.buyer_id:
            raise Forbidden("Only the buyer can mark this offer as paid")

        cls._transition(offer, OfferStatus.PAID, paid_at=timezone.now())
        EventPublisher.publish(
            "offer", offer.pk, OfferStatus.ACCEPTED, OfferStatus.PAID, actor=actor
        )
        logger.info(f"Offer {offer.id} marked as paid by buyer {actor.pk}")
        return offer

    @classmethod
    @returns_result
    @transaction.atomic
    def expire_if_stale(cls, offer_id) -> Offer:
        """
        Expire an open offer with no activity for OFFER_EXPIRY_HOURS.
        Safe to call repeatedly: anything else is returned untouched.
        """
        offer = Offer.objects.filter(pk=offer_id).first()
        if offer is None:
            raise NotFound("Offer not found", offer_id=str(offer_id))

        if offer.status not in OPEN_OFFER_STATUSES or offer.is_superseded:
            return ServiceResult.success(offer, message="Offer is not open")

        threshold = timezone.now() - timedelta(
            hours=trade_engine_setting("OFFER_EXPIRY_HOURS")
        )
        last_activity = offer.responded_at or offer.created_at
        if last_activity >= threshold:
            return ServiceResult.success(offer, message="Offer is still active")

        previous_status = offer.status
        cls._transition(offer, OfferStatus.EXPIRED)
        EventPublisher.publish("offer", offer.pk, previous_status, OfferStatus.EXPIRED)
        logger.info(f"Offer {offer.id} expired after inactivity since {last_activity}")
        return offer

    @staticmethod
    def stale_offer_ids():
        """Ids of open, non-superseded offers past the expiry window."""
        threshold = timezone.now() - timedelta(
            hours=trade_engine_setting("OFFER_EXPIRY_HOURS")
        )
        return list(
            Offer.objects.filter(status__in=OPEN_OFFER_STATUSES)
            .filter(
                Q(responded_at__lt=threshold)
                | Q(responded_at__isnull=True, created_at__lt=threshold)
            )
            .filter(derived_offers__isnull=True)
            .values_list("id", flat=True)
        )

    @staticmethod
    def negotiation_chain(offer: Offer):
        """The offer and its ancestors, oldest first."""
        chain = [offer]
        while chain[-1].parent_offer_id:
            chain.append(chain[-1].parent_offer)
        return list(reversed(chain))
