from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.core.models import UUIDBaseModel
from apps.core.utils.state_machine import TransitionTable
from apps.orders.models import OrderOutcome


class DisputeReason(models.TextChoices):
    """
    An enumeration of possible reasons for a dispute.
    """

    QUALITY_ISSUE = "quality_issue", _("Quality Issue")
    QUANTITY_MISMATCH = "quantity_mismatch", _("Quantity Mismatch")
    WRONG_MATERIAL = "wrong_material", _("Wrong Material")
    DELIVERY_ISSUE = "delivery_issue", _("Delivery Issue")
    PAYMENT_ISSUE = "payment_issue", _("Payment Issue")
    COMMUNICATION_ISSUE = "communication_issue", _("Communication Issue")
    FRAUD_SUSPECTED = "fraud_suspected", _("Fraud Suspected")
    OTHER = "other", _("Other")


class DisputeStatus(models.TextChoices):
    """
    An enumeration of possible statuses for a dispute.
    """

    OPEN = "open", _("Open")
    UNDER_REVIEW = "under_review", _("Under Review")
    AWAITING_RESPONSE = "awaiting_response", _("Awaiting Response")
    RESOLVED_BUYER_FAVOR = "resolved_buyer_favor", _("Resolved for Buyer")
    RESOLVED_SELLER_FAVOR = "resolved_seller_favor", _("Resolved for Seller")
    RESOLVED_MUTUAL = "resolved_mutual", _("Resolved Mutually")
    CLOSED = "closed", _("Closed")


UNRESOLVED_STATUSES = (
    DisputeStatus.OPEN,
    DisputeStatus.UNDER_REVIEW,
    DisputeStatus.AWAITING_RESPONSE,
)
RESOLVED_STATUSES = (
    DisputeStatus.RESOLVED_BUYER_FAVOR,
    DisputeStatus.RESOLVED_SELLER_FAVOR,
    DisputeStatus.RESOLVED_MUTUAL,
)
TRIAGE_STATUSES = (DisputeStatus.UNDER_REVIEW, DisputeStatus.AWAITING_RESPONSE)

DISPUTE_TRANSITIONS = TransitionTable(
    "dispute",
    {
        DisputeStatus.OPEN: {*TRIAGE_STATUSES, *RESOLVED_STATUSES},
        DisputeStatus.UNDER_REVIEW: {
            DisputeStatus.AWAITING_RESPONSE,
            *RESOLVED_STATUSES,
        },
        DisputeStatus.AWAITING_RESPONSE: {
            DisputeStatus.UNDER_REVIEW,
            *RESOLVED_STATUSES,
        },
        DisputeStatus.RESOLVED_BUYER_FAVOR: {DisputeStatus.CLOSED},
        DisputeStatus.RESOLVED_SELLER_FAVOR: {DisputeStatus.CLOSED},
        DisputeStatus.RESOLVED_MUTUAL: {DisputeStatus.CLOSED},
        DisputeStatus.CLOSED: set(),
    },
)


class Dispute(UUIDBaseModel):
    """
    Represents a dispute raised against an order.

    Either party can open one while the order is still in progress. An order
    has at most one unresolved dispute at a time; resolved ones stay as
    history.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="disputes",
        help_text=_("The order under dispute"),
    )
    raised_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="raised_disputes",
        help_text=_("Party who opened this dispute"),
    )
    reason = models.CharField(
        max_length=30,
        choices=DisputeReason.choices,
        help_text=_("Why the dispute was raised"),
    )
    description = models.TextField(
        help_text=_("Details provided by the party opening the dispute")
    )
    evidence_urls = models.JSONField(
        default=list,
        blank=True,
        help_text=_("References to supporting files in external storage"),
    )
    status = models.CharField(
        max_length=25,
        choices=DisputeStatus.choices,
        default=DisputeStatus.OPEN,
        help_text=_("Current status of the dispute"),
    )
    admin = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="handled_disputes",
        help_text=_("Staff member handling this dispute"),
    )
    admin_notes = models.TextField(blank=True)
    resolution_notes = models.TextField(
        blank=True,
        help_text=_("Notes on how dispute was resolved"),
    )
    order_outcome = models.CharField(
        max_length=10, choices=OrderOutcome.choices, blank=True
    )
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = _("Dispute")
        verbose_name_plural = _("Disputes")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="dispute_status_idx"),
            models.Index(fields=["raised_by"], name="dispute_raised_by_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=Q(status__in=UNRESOLVED_STATUSES),
                name="unique_unresolved_dispute_per_order",
            ),
        ]

    def __str__(self):
        return f"Dispute({self.order_id}) by {self.raised_by_id} - {self.get_reason_display()}"

    @property
    def is_unresolved(self):
        return self.status in UNRESOLVED_STATUSES


class DisputeMessage(models.Model):
    """Append-only conversation on a dispute."""

    dispute = models.ForeignKey(
        Dispute, on_delete=models.CASCADE, related_name="messages"
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="dispute_messages",
    )
    message = models.TextField()
    is_admin = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"Message on {self.dispute_id} by {self.sender_id}"
