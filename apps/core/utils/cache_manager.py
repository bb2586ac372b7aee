import logging

from django.core.cache import cache

from .cache_key_manager import CacheKeyManager

logger = logging.getLogger("trade_engine")


class CacheManager:
    """Invalidation of cached values by resource, see CacheKeyManager."""

    @staticmethod
    def invalidate(resource_name: str, **kwargs):
        """
        Drop every key of ``resource_name`` that can be built from ``kwargs``;
        templates needing other arguments are skipped.

            CacheManager.invalidate("review", user_id=user.pk)
        """
        templates = CacheKeyManager.templates_for(resource_name)
        if not templates:
            logger.warning(f"No cache templates found for resource '{resource_name}'")
            return

        keys = []
        for key_name in templates:
            try:
                keys.append(CacheKeyManager.make_key(resource_name, key_name, **kwargs))
            except KeyError:
                continue

        if keys:
            cache.delete_many(keys)
            logger.debug(f"Invalidated {len(keys)} '{resource_name}' cache keys")
