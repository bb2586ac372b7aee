import logging
from datetime import date, time
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_time

from apps.core.events import EventPublisher
from apps.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidTransition,
    StaleState,
)
from apps.core.results import returns_result
from apps.core.utils.conditional import conditional_update, require_update
from apps.core.utils.trade_engine import trade_engine_setting
from apps.orders.models import (
    ADVANCE_STEPS,
    ORDER_TRANSITIONS,
    RESUMABLE_STATUSES,
    Order,
    OrderOutcome,
    OrderStatus,
    OrderStatusHistory,
)

logger = logging.getLogger("orders_performance")


def _parse_pickup_date(value) -> date:
    if isinstance(value, date):
        return value
    parsed = parse_date(value) if isinstance(value, str) else None
    if parsed is None:
        raise InvalidInput("A valid pickup date is required", field="pickup_date")
    return parsed


def _parse_pickup_time(value) -> time:
    if isinstance(value, time):
        return value
    parsed = parse_time(value) if isinstance(value, str) else None
    if parsed is None:
        raise InvalidInput("A valid pickup time is required", field="pickup_time")
    return parsed


class OrderFulfillmentService:
    """
    Physical fulfillment of an order.

    Status changes are conditional writes on the expected status; each one
    appends an OrderStatusHistory row in the same transaction and publishes
    an order event once the transaction commits.
    """

    @staticmethod
    def _record_change(order: Order, previous_status, actor, notes="", **data):
        OrderStatusHistory.objects.create(
            order=order,
            previous_status=previous_status or "",
            status=order.status,
            changed_by=actor,
            notes=notes or "",
        )
        EventPublisher.publish(
            "order", order.pk, previous_status, order.status, actor=actor, **data
        )

    @classmethod
    def _transition(
        cls, order: Order, actor, new_status, notes="", **changes
    ) -> Order:
        previous_status = order.status
        ORDER_TRANSITIONS.check(previous_status, new_status)
        require_update(
            Order,
            order.pk,
            {"status": previous_status},
            status=new_status,
            **changes,
        )
        order.refresh_from_db()
        cls._record_change(order, previous_status, actor, notes)
        return order

    @staticmethod
    def _require_party(order: Order, actor) -> str:
        role = order.role_of(actor)
        if role is None:
            raise Forbidden("Only the buyer or seller of this order can do this")
        return role

    @classmethod
    def create_for_offer(cls, offer, actor) -> Order:
        """
        Open the order for a just-accepted offer. Runs inside the caller's
        transaction and raises Conflict if the offer already has an order,
        so the acceptance is rolled back with it.
        """
        try:
            with transaction.atomic():
                order = Order.objects.create(
                    offer=offer,
                    listing_id=offer.listing_id,
                    buyer_id=offer.buyer_id,
                    seller_id=offer.seller_id,
                    amount=offer.amount,
                    status=OrderStatus.PENDING_PICKUP,
                )
        except IntegrityError:
            raise Conflict("An order already exists for this offer", offer_id=str(offer.pk))

        cls._record_change(
            order, None, actor, "Order created from accepted offer", offer=offer.pk
        )
        logger.info(f"Order {order.id} created for offer {offer.pk} ({order.amount})")
        return order

    @classmethod
    @returns_result
    @transaction.atomic
    def schedule_pickup(
        cls,
        order: Order,
        actor,
        pickup_date,
        pickup_time,
        pickup_address: str,
        notes: Optional[str] = None,
    ) -> Order:
        start_time = timezone.now()

        if cls._require_party(order, actor) != "seller":
            raise Forbidden("Only the seller can schedule the pickup")

        pickup_date = _parse_pickup_date(pickup_date)
        pickup_time = _parse_pickup_time(pickup_time)
        if not pickup_address or not str(pickup_address).strip():
            raise InvalidInput("A pickup address is required", field="pickup_address")

        if order.status != OrderStatus.PENDING_PICKUP:
            raise InvalidTransition(
                "Pickup can only be scheduled for an order pending pickup",
                current_status=order.status,
            )

        cls._transition(
            order,
            actor,
            OrderStatus.PICKUP_SCHEDULED,
            notes=f"Pickup scheduled for {pickup_date} {pickup_time}",
            pickup_date=pickup_date,
            pickup_time=pickup_time,
            pickup_address=str(pickup_address).strip(),
            pickup_notes=notes or "",
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(f"Pickup scheduled for order {order.id} in {duration:.2f}ms")
        return order

    @classmethod
    @returns_result
    @transaction.atomic
    def advance(cls, order: Order, actor, to_status: str, notes: Optional[str] = None):
        """Move a scheduled order forward: in_transit, then delivered."""
        cls._require_party(order, actor)

        if to_status not in ADVANCE_STEPS.values():
            raise InvalidInput(
                f"Orders can only be advanced to in_transit or delivered, not '{to_status}'",
                field="status",
            )
        if ADVANCE_STEPS.get(order.status) != to_status:
            raise InvalidTransition(
                f"Cannot move order from '{order.status}' to '{to_status}'",
                current_status=order.status,
                requested_status=to_status,
            )

        changes = {}
        if to_status == OrderStatus.DELIVERED:
            changes["delivery_confirmed_at"] = timezone.now()

        previous_status = order.status
        cls._transition(order, actor, to_status, notes=notes, **changes)
        logger.info(f"Order {order.id} advanced {previous_status} -> {to_status}")
        return order

    @classmethod
    @returns_result
    def confirm_delivery(cls, order: Order, actor) -> Order:
        """
        Stamp the actor's delivery confirmation.

        Completion is decided by the write itself: the completing UPDATE only
        matches while the counterpart's confirmation is set and ours is not,
        the first-confirmation UPDATE only while neither is. Exactly one of
        two concurrent confirmations therefore flips the order to completed.
        Confirming twice is a quiet success.
        """
        role = cls._require_party(order, actor)
        mine = f"{role}_confirmed_at"
        theirs = "seller_confirmed_at" if role == "buyer" else "buyer_confirmed_at"

        for attempt in range(trade_engine_setting("CONFIRMATION_RETRIES")):
            now = timezone.now()
            with transaction.atomic():
                completed = conditional_update(
                    Order,
                    order.pk,
                    {
                        "status": OrderStatus.DELIVERED,
                        f"{theirs}__isnull": False,
                        f"{mine}__isnull": True,
                    },
                    status=OrderStatus.COMPLETED,
                    completed_at=now,
                    **{mine: now},
                )
                if completed:
                    order.refresh_from_db()
                    cls._record_change(
                        order,
                        OrderStatus.DELIVERED,
                        actor,
                        "Delivery confirmed by both parties",
                    )
                    logger.info(
                        f"Order {order.id} completed on {role} confirmation"
                    )
                    return order

            with transaction.atomic():
                first = conditional_update(
                    Order,
                    order.pk,
                    {
                        "status": OrderStatus.DELIVERED,
                        f"{theirs}__isnull": True,
                        f"{mine}__isnull": True,
                    },
                    **{mine: now},
                )
                if first:
                    order.refresh_from_db()
                    cls._record_change(
                        order,
                        OrderStatus.DELIVERED,
                        actor,
                        f"{role.capitalize()} confirmed delivery",
                        confirmed_by=role,
                    )
                    logger.info(
                        f"Order {order.id} delivery confirmed by {role}, awaiting counterpart"
                    )
                    return order

            order.refresh_from_db()
            if getattr(order, mine) is not None:
                logger.info(f"Repeated {role} confirmation on order {order.id}")
                return order
            if order.status != OrderStatus.DELIVERED:
                raise InvalidTransition(
                    "Delivery can only be confirmed once the order is delivered",
                    current_status=order.status,
                )
            logger.info(
                f"Confirmation on order {order.id} raced the counterpart, retrying "
                f"(attempt {attempt + 1})"
            )

        raise StaleState("Could not record the delivery confirmation, please retry")

    @classmethod
    @returns_result
    @transaction.atomic
    def cancel(cls, order: Order, actor, reason: str) -> Order:
        cls._require_party(order, actor)

        if not reason or not str(reason).strip():
            raise InvalidInput("A cancellation reason is required", field="reason")
        if order.status == OrderStatus.DISPUTED:
            raise InvalidTransition(
                "A disputed order can only be cancelled through dispute resolution",
                current_status=order.status,
            )

        reason = str(reason).strip()
        cls._transition(
            order,
            actor,
            OrderStatus.CANCELLED,
            notes=reason,
            cancelled_at=timezone.now(),
            cancellation_reason=reason,
        )
        logger.info(f"Order {order.id} cancelled by {order.role_of(actor)}")
        return order

    # Dispute interruption. Called by the dispute service inside its own
    # transaction; errors propagate so the dispute change rolls back too.

    @classmethod
    def mark_disputed(cls, order: Order, actor, notes="") -> Order:
        if order.status == OrderStatus.DISPUTED or order.is_terminal:
            raise InvalidTransition(
                f"An order that is {order.status} cannot be disputed",
                current_status=order.status,
            )
        return cls._transition(
            order,
            actor,
            OrderStatus.DISPUTED,
            notes=notes,
            pre_dispute_status=order.status,
        )

    @classmethod
    def restore_after_dispute(
        cls, order: Order, actor, outcome=OrderOutcome.RESUME, notes=""
    ) -> Order:
        if order.status != OrderStatus.DISPUTED:
            raise InvalidTransition(
                "Only a disputed order can be restored",
                current_status=order.status,
            )

        now = timezone.now()
        changes = {"pre_dispute_status": ""}
        if outcome == OrderOutcome.CANCEL:
            target = OrderStatus.CANCELLED
            changes.update(
                cancelled_at=now,
                cancellation_reason=notes or "Cancelled by dispute resolution",
            )
        elif outcome == OrderOutcome.COMPLETE:
            target = OrderStatus.COMPLETED
            changes["completed_at"] = now
        else:
            target = order.pre_dispute_status
            if target not in RESUMABLE_STATUSES:
                raise InvalidTransition(
                    "The order has no status to resume from",
                    current_status=order.status,
                )

        return cls._transition(order, actor, target, notes=notes, **changes)

    @staticmethod
    def history(order: Order) -> List[OrderStatusHistory]:
        return list(
            OrderStatusHistory.objects.filter(order=order).select_related("changed_by")
        )
