from django.conf import settings
from django.db import models
from django.db.models import Q

from apps.core.models import BaseModel, UUIDBaseModel
from apps.core.utils.state_machine import TransitionTable


class OfferStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COUNTERED = "countered", "Countered"
    ACCEPTED = "accepted", "Accepted"
    DECLINED = "declined", "Declined"
    WITHDRAWN = "withdrawn", "Withdrawn"
    EXPIRED = "expired", "Expired"
    PAID = "paid", "Paid"


class OfferResponse(models.TextChoices):
    ACCEPT = "accept", "Accept"
    DECLINE = "decline", "Decline"
    COUNTER = "counter", "Counter"


OFFER_TRANSITIONS = TransitionTable(
    "offer",
    {
        OfferStatus.PENDING: {
            OfferStatus.COUNTERED,
            OfferStatus.ACCEPTED,
            OfferStatus.DECLINED,
            OfferStatus.WITHDRAWN,
            OfferStatus.EXPIRED,
        },
        OfferStatus.COUNTERED: {OfferStatus.WITHDRAWN, OfferStatus.EXPIRED},
        OfferStatus.ACCEPTED: {OfferStatus.PAID},
        OfferStatus.DECLINED: set(),
        OfferStatus.WITHDRAWN: set(),
        OfferStatus.EXPIRED: set(),
        OfferStatus.PAID: set(),
    },
)

OPEN_OFFER_STATUSES = (OfferStatus.PENDING, OfferStatus.COUNTERED)


class ListingOwnership(BaseModel):
    """
    Local projection of the listing catalog: which party owns a listing.
    The catalog pushes rows here through ``register_listing_owner``.
    """

    listing_id = models.UUIDField(unique=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="owned_listings",
    )

    def __str__(self):
        return f"Listing {self.listing_id} owned by {self.owner_id}"


class Offer(UUIDBaseModel):
    """
    A price proposal by a buyer on a listing.

    Negotiation is append-only: accepting a counter creates a new accepted
    row pointing at the countered one through ``parent_offer``, the countered
    row keeps its status. ``version`` is bumped on every conditional write.
    """

    listing_id = models.UUIDField(db_index=True)
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="offers_made",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="offers_received",
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    message = models.TextField(blank=True)
    status = models.CharField(
        max_length=20,
        choices=OfferStatus.choices,
        default=OfferStatus.PENDING,
        db_index=True,
    )
    parent_offer = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="derived_offers",
    )
    counter_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    counter_message = models.TextField(blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    version = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["buyer", "status"], name="offer_buyer_status_idx"),
            models.Index(fields=["seller", "status"], name="offer_seller_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0), name="offer_amount_positive"
            ),
            models.UniqueConstraint(
                fields=["parent_offer"],
                condition=Q(parent_offer__isnull=False),
                name="unique_derived_offer_per_parent",
            ),
        ]

    def __str__(self):
        return f"Offer {self.id} ({self.status}) {self.amount}"

    @property
    def is_open(self):
        return self.status in OPEN_OFFER_STATUSES

    @property
    def is_superseded(self):
        """A countered offer whose counter was already accepted."""
        return self.derived_offers.exists()
