from .get_env import env

# -----------------------------------------------------------------------------
# Trade engine
#
# OFFER_EXPIRY_HOURS      open offers idle this long are expired by beat
# CONFIRMATION_RETRIES    rounds a delivery confirmation retries its
#                         conditional writes before reporting StaleState
# LISTING_OWNER_RESOLVER  dotted path to callable(listing_id) -> owner id | None
# RATING_CACHE_TIMEOUT    seconds a user's rating summary stays cached
# -----------------------------------------------------------------------------
TRADE_ENGINE = {
    "OFFER_EXPIRY_HOURS": env.get("OFFER_EXPIRY_HOURS", default=168, cast_to=int),
    "CONFIRMATION_RETRIES": env.get("CONFIRMATION_RETRIES", default=3, cast_to=int),
    "LISTING_OWNER_RESOLVER": env.get(
        "LISTING_OWNER_RESOLVER",
        default="apps.offers.listings.registered_listing_owner",
    ),
    "RATING_CACHE_TIMEOUT": env.get(
        "RATING_CACHE_TIMEOUT", default=60 * 15, cast_to=int
    ),
}
