import logging
from typing import Optional

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.events import EventPublisher
from apps.core.exceptions import (
    Conflict,
    Forbidden,
    InvalidInput,
    InvalidTransition,
)
from apps.core.results import returns_result
from apps.core.utils.conditional import require_update
from apps.disputes.models import (
    DISPUTE_TRANSITIONS,
    RESOLVED_STATUSES,
    TRIAGE_STATUSES,
    UNRESOLVED_STATUSES,
    Dispute,
    DisputeMessage,
    DisputeReason,
    DisputeStatus,
)
from apps.orders.models import Order, OrderOutcome, OrderStatus
from apps.orders.services import OrderFulfillmentService

logger = logging.getLogger("disputes_performance")


def _clean_evidence(evidence_urls) -> list:
    if evidence_urls is None:
        return []
    if not isinstance(evidence_urls, (list, tuple)):
        raise InvalidInput("evidence_urls must be a list of URLs", field="evidence_urls")
    urls = list(evidence_urls)
    if not all(isinstance(url, str) and url.strip() for url in urls):
        raise InvalidInput("evidence_urls must be a list of URLs", field="evidence_urls")
    return [url.strip() for url in urls]


def _require_staff(actor, action):
    if not actor.is_staff:
        raise Forbidden(f"Only staff can {action} disputes")


class DisputeCaseService:
    """
    Contesting an order. Opening a dispute interrupts the order (it moves to
    ``disputed``); resolving it resumes, cancels or completes the order in
    the same transaction.
    """

    @staticmethod
    def _transition(dispute: Dispute, new_status, **changes) -> Dispute:
        previous_status = dispute.status
        DISPUTE_TRANSITIONS.check(previous_status, new_status)
        require_update(
            Dispute,
            dispute.pk,
            {"status": previous_status},
            status=new_status,
            **changes,
        )
        dispute.refresh_from_db()
        return dispute

    @staticmethod
    @returns_result
    @transaction.atomic
    def open(
        order: Order,
        raised_by,
        reason: str,
        description: str,
        evidence_urls=None,
    ) -> Dispute:
        start_time = timezone.now()

        # Status guards need the stored state, not what the caller last saw.
        order = Order.objects.get(pk=order.pk)

        if not order.is_party(raised_by):
            raise Forbidden("You can only dispute your own orders")
        if reason not in DisputeReason.values:
            raise InvalidInput(f"Unknown dispute reason '{reason}'", field="reason")
        if not description or not str(description).strip():
            raise InvalidInput("A description is required", field="description")
        evidence_urls = _clean_evidence(evidence_urls)

        if order.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
            raise InvalidTransition(
                f"Disputes cannot be opened for a {order.status} order",
                current_status=order.status,
            )
        if Dispute.objects.filter(order=order, status__in=UNRESOLVED_STATUSES).exists():
            raise Conflict("This order already has an unresolved dispute")

        try:
            with transaction.atomic():
                dispute = Dispute.objects.create(
                    order=order,
                    raised_by=raised_by,
                    reason=reason,
                    description=str(description).strip(),
                    evidence_urls=evidence_urls,
                    status=DisputeStatus.OPEN,
                )
        except IntegrityError:
            raise Conflict("This order already has an unresolved dispute")

        OrderFulfillmentService.mark_disputed(
            order, raised_by, notes=f"Dispute opened: {dispute.get_reason_display()}"
        )
        EventPublisher.publish(
            "dispute",
            dispute.pk,
            None,
            DisputeStatus.OPEN,
            actor=raised_by,
            order=order.pk,
            reason=reason,
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Dispute {dispute.id} opened on order {order.id} ({reason}) in {duration:.2f}ms"
        )
        return dispute

    @staticmethod
    @returns_result
    @transaction.atomic
    def post_message(dispute: Dispute, sender, text: str, is_admin=False):
        """
        Add to the dispute conversation. Parties may write while the dispute
        is unresolved, staff at any time.
        """
        if not text or not str(text).strip():
            raise InvalidInput("Message cannot be empty", field="message")
        if is_admin and not sender.is_staff:
            raise Forbidden("Only staff can post admin messages")

        if not sender.is_staff:
            if not dispute.order.is_party(sender):
                raise Forbidden("Only the parties to this order can post messages")
            still_open = Dispute.objects.filter(
                pk=dispute.pk, status__in=UNRESOLVED_STATUSES
            ).exists()
            if not still_open:
                raise InvalidTransition(
                    "This dispute is resolved and no longer accepts messages",
                    current_status=dispute.status,
                )

        message = DisputeMessage.objects.create(
            dispute=dispute,
            sender=sender,
            message=str(text).strip(),
            is_admin=bool(is_admin),
        )
        EventPublisher.publish(
            "dispute_message",
            message.pk,
            None,
            None,
            actor=sender,
            dispute=dispute.pk,
            is_admin=message.is_admin,
        )
        logger.info(f"Message {message.pk} posted on dispute {dispute.id}")
        return message

    @classmethod
    @returns_result
    @transaction.atomic
    def update_status(
        cls, dispute: Dispute, admin, new_status: str, notes: Optional[str] = None
    ) -> Dispute:
        """Staff triage: under_review / awaiting_response."""
        _require_staff(admin, "triage")
        if new_status not in TRIAGE_STATUSES:
            raise InvalidInput(
                f"'{new_status}' is not a review status", field="status"
            )

        previous_status = dispute.status
        changes = {"admin": admin}
        if notes:
            changes["admin_notes"] = notes
        cls._transition(dispute, new_status, **changes)

        EventPublisher.publish(
            "dispute", dispute.pk, previous_status, new_status, actor=admin
        )
        logger.info(f"Dispute {dispute.id} {previous_status} -> {new_status}")
        return dispute

    @classmethod
    @returns_result
    @transaction.atomic
    def resolve(
        cls,
        dispute: Dispute,
        admin,
        new_status: str,
        notes: Optional[str] = None,
        resolution: Optional[str] = None,
        order_outcome: str = OrderOutcome.RESUME,
    ) -> Dispute:
        start_time = timezone.now()

        _require_staff(admin, "resolve")
        if new_status not in RESOLVED_STATUSES:
            raise InvalidInput(
                f"'{new_status}' is not a resolution status", field="status"
            )
        if order_outcome not in OrderOutcome.values:
            raise InvalidInput(
                f"Unknown order outcome '{order_outcome}'", field="order_outcome"
            )

        previous_status = dispute.status
        changes = {
            "admin": admin,
            "resolution_notes": resolution or "",
            "order_outcome": order_outcome,
            "resolved_at": timezone.now(),
        }
        if notes:
            changes["admin_notes"] = notes
        cls._transition(dispute, new_status, **changes)

        order = Order.objects.get(pk=dispute.order_id)
        OrderFulfillmentService.restore_after_dispute(
            order,
            admin,
            outcome=order_outcome,
            notes=resolution or f"Dispute {dispute.get_status_display().lower()}",
        )
        EventPublisher.publish(
            "dispute",
            dispute.pk,
            previous_status,
            new_status,
            actor=admin,
            order_outcome=order_outcome,
        )

        duration = (timezone.now() - start_time).total_seconds() * 1000
        logger.info(
            f"Dispute {dispute.id} resolved as {new_status}, order {order.id} now "
            f"{order.status} in {duration:.2f}ms"
        )
        return dispute

    @classmethod
    @returns_result
    @transaction.atomic
    def close(cls, dispute: Dispute, admin, notes: Optional[str] = None) -> Dispute:
        _require_staff(admin, "close")

        previous_status = dispute.status
        changes = {"admin_notes": notes} if notes else {}
        cls._transition(dispute, DisputeStatus.CLOSED, **changes)

        EventPublisher.publish(
            "dispute", dispute.pk, previous_status, DisputeStatus.CLOSED, actor=admin
        )
        logger.info(f"Dispute {dispute.id} closed by {admin.pk}")
        return dispute

    @staticmethod
    def get_user_disputes(user, status_filter=None):
        """Disputes on orders where the user is buyer or seller."""
        queryset = Dispute.objects.filter(
            Q(order__buyer=user) | Q(order__seller=user)
        ).select_related("order", "raised_by", "admin")
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset
