import pytest
from django.core.cache import cache

from apps.core.utils.cache_key_manager import CacheKeyManager
from apps.core.utils.cache_manager import CacheManager


class TestCacheKeyManager:
    def test_builds_prefixed_key(self):
        key = CacheKeyManager.make_key("review", "user_rating", user_id="u-1")

        assert key == "tradeledger:review:user_rating:u-1"

    def test_unknown_template(self):
        with pytest.raises(KeyError):
            CacheKeyManager.make_key("review", "missing", user_id="u-1")

    def test_missing_argument(self):
        with pytest.raises(KeyError):
            CacheKeyManager.make_key("review", "user_rating")


class TestCacheManager:
    def test_invalidate_drops_resource_keys(self):
        key = CacheKeyManager.make_key("review", "user_rating", user_id="u-1")
        other = CacheKeyManager.make_key("review", "user_rating", user_id="u-2")
        cache.set(key, {"total_reviews": 3})
        cache.set(other, {"total_reviews": 1})

        CacheManager.invalidate("review", user_id="u-1")

        assert cache.get(key) is None
        assert cache.get(other) == {"total_reviews": 1}

    def test_unknown_resource_is_ignored(self):
        CacheManager.invalidate("nothing", user_id="u-1")
