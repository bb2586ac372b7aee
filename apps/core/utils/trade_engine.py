from django.conf import settings
from django.utils.module_loading import import_string

DEFAULTS = {
    "OFFER_EXPIRY_HOURS": 168,
    "CONFIRMATION_RETRIES": 3,
    "LISTING_OWNER_RESOLVER": "apps.offers.listings.registered_listing_owner",
    "RATING_CACHE_TIMEOUT": 60 * 15,
}


def trade_engine_setting(name):
    """Read one TRADE_ENGINE option, falling back to the engine default."""
    return getattr(settings, "TRADE_ENGINE", {}).get(name, DEFAULTS[name])


def get_listing_owner_resolver():
    return import_string(trade_engine_setting("LISTING_OWNER_RESOLVER"))
