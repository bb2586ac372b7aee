from django.conf import settings
from django.db import models

from apps.core.models import UUIDBaseModel
from apps.core.utils.state_machine import TransitionTable


class OrderStatus(models.TextChoices):
    PENDING_PICKUP = "pending_pickup", "Pending Pickup"
    PICKUP_SCHEDULED = "pickup_scheduled", "Pickup Scheduled"
    IN_TRANSIT = "in_transit", "In Transit"
    DELIVERED = "delivered", "Delivered"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    DISPUTED = "disputed", "Disputed"


class OrderOutcome(models.TextChoices):
    """What resolving a dispute does to the disputed order."""

    RESUME = "resume", "Resume Order"
    CANCEL = "cancel", "Cancel Order"
    COMPLETE = "complete", "Complete Order"


# Statuses an order can be put back into when a dispute is resolved.
RESUMABLE_STATUSES = (
    OrderStatus.PENDING_PICKUP,
    OrderStatus.PICKUP_SCHEDULED,
    OrderStatus.IN_TRANSIT,
    OrderStatus.DELIVERED,
)

ORDER_TRANSITIONS = TransitionTable(
    "order",
    {
        OrderStatus.PENDING_PICKUP: {
            OrderStatus.PICKUP_SCHEDULED,
            OrderStatus.CANCELLED,
            OrderStatus.DISPUTED,
        },
        OrderStatus.PICKUP_SCHEDULED: {
            OrderStatus.IN_TRANSIT,
            OrderStatus.CANCELLED,
            OrderStatus.DISPUTED,
        },
        OrderStatus.IN_TRANSIT: {
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
            OrderStatus.DISPUTED,
        },
        OrderStatus.DELIVERED: {
            OrderStatus.COMPLETED,
            OrderStatus.CANCELLED,
            OrderStatus.DISPUTED,
        },
        OrderStatus.DISPUTED: {
            *RESUMABLE_STATUSES,
            OrderStatus.CANCELLED,
            OrderStatus.COMPLETED,
        },
        OrderStatus.COMPLETED: set(),
        OrderStatus.CANCELLED: set(),
    },
)

# Party-driven forward moves, one step at a time.
ADVANCE_STEPS = {
    OrderStatus.PICKUP_SCHEDULED: OrderStatus.IN_TRANSIT,
    OrderStatus.IN_TRANSIT: OrderStatus.DELIVERED,
}


class Order(UUIDBaseModel):
    """Binding transaction created from exactly one accepted offer."""

    offer = models.OneToOneField(
        "offers.Offer", on_delete=models.PROTECT, related_name="order"
    )
    listing_id = models.UUIDField(db_index=True)
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="purchases",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="sales",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_PICKUP,
        db_index=True,
    )
    pre_dispute_status = models.CharField(
        max_length=20, choices=OrderStatus.choices, blank=True
    )

    # Pickup
    pickup_date = models.DateField(null=True, blank=True)
    pickup_time = models.TimeField(null=True, blank=True)
    pickup_address = models.TextField(blank=True)
    pickup_notes = models.TextField(blank=True)

    # Fulfillment timestamps
    delivery_confirmed_at = models.DateTimeField(null=True, blank=True)
    seller_confirmed_at = models.DateTimeField(null=True, blank=True)
    buyer_confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["buyer", "status"], name="order_buyer_status_idx"),
            models.Index(fields=["seller", "status"], name="order_seller_status_idx"),
        ]

    def __str__(self):
        return f"Order {self.id} ({self.status})"

    def role_of(self, user):
        """'buyer', 'seller' or None for anybody else."""
        if user is None:
            return None
        if user.pk == self.buyer_id:
            return "buyer"
        if user.pk == self.seller_id:
            return "seller"
        return None

    def is_party(self, user):
        return self.role_of(user) is not None

    def counterpart_of(self, user):
        role = self.role_of(user)
        if role == "buyer":
            return self.seller
        if role == "seller":
            return self.buyer
        return None

    @property
    def is_terminal(self):
        return ORDER_TRANSITIONS.is_terminal(self.status)


class OrderStatusHistory(models.Model):
    """Append-only audit trail of order status changes."""

    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name="status_history"
    )
    previous_status = models.CharField(
        max_length=20, choices=OrderStatus.choices, blank=True
    )
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_status_changes",
    )
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name_plural = "Order status histories"

    def __str__(self):
        return f"{self.order_id}: {self.previous_status or '-'} -> {self.status}"
