# -----------------------------------------------------------------------------
# CENTRALIZED CACHE-KEY TEMPLATES
#
# For each "resource" you want to cache, list every "key name" you might use.
# Use Python-format placeholders for variable parts.
#
# Usage:
#    CacheKeyManager.make_key("review", "user_rating", user_id=42)
#    -> "review:user_rating:42"
#
# The code will always prepend Django's KEY_PREFIX automatically.
# -----------------------------------------------------------------------------
CACHE_KEY_TEMPLATES = {
    "review": {
        "user_rating": "review:user_rating:{user_id}",
    },
}
