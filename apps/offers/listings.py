"""
Seam to the external listing catalog.

The engine only needs to know who owns a listing. The lookup goes through
the callable named by ``TRADE_ENGINE["LISTING_OWNER_RESOLVER"]`` so a
deployment can point it at the catalog service; the default reads the
local ``ListingOwnership`` projection.
"""

import logging

from apps.core.utils.trade_engine import get_listing_owner_resolver

logger = logging.getLogger("offers_performance")


def registered_listing_owner(listing_id):
    """Default resolver: owner id recorded for the listing, or None."""
    from apps.offers.models import ListingOwnership

    return (
        ListingOwnership.objects.filter(listing_id=listing_id)
        .values_list("owner_id", flat=True)
        .first()
    )


def register_listing_owner(listing_id, owner):
    """Record (or move) ownership of a listing, called by the catalog."""
    from apps.offers.models import ListingOwnership

    ownership, created = ListingOwnership.objects.update_or_create(
        listing_id=listing_id, defaults={"owner": owner}
    )
    logger.info(
        f"{'Registered' if created else 'Updated'} owner {owner.pk} for listing {listing_id}"
    )
    return ownership


def resolve_listing_owner(listing_id):
    return get_listing_owner_resolver()(listing_id)
