import logging

from django.conf import settings

logger = logging.getLogger("trade_engine")


class CacheKeyManager:
    """
    Builds cache keys from the templates in ``settings.CACHE_KEY_TEMPLATES``,
    keyed by resource then key name:

        CacheKeyManager.make_key("review", "user_rating", user_id=user.pk)
        # "tradeledger:review:user_rating:<user uuid>"
    """

    @staticmethod
    def templates_for(resource_name: str) -> dict:
        return getattr(settings, "CACHE_KEY_TEMPLATES", {}).get(resource_name, {})

    @staticmethod
    def make_key(resource_name: str, key_name: str, **kwargs) -> str:
        """Raises KeyError for an unknown template or a missing argument."""
        template = CacheKeyManager.templates_for(resource_name).get(key_name)
        if template is None:
            logger.error(f"No cache key template '{resource_name}.{key_name}'")
            raise KeyError(f"{resource_name}.{key_name}")

        try:
            key = template.format(**kwargs)
        except KeyError as e:
            logger.error(f"Cache key template '{template}' needs argument {e}")
            raise

        prefix = settings.CACHES["default"].get("KEY_PREFIX", "")
        return f"{prefix}:{key}" if prefix else key
