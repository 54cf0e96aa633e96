"""In-memory TTL cache for pharmacy directory searches."""

import hashlib
import logging
from functools import wraps

from cachetools import TTLCache

from rx_workflow.config import settings

logger = logging.getLogger(__name__)

# Pharmacy listings change rarely; status data is never cached.
_pharmacy_cache = TTLCache(maxsize=128, ttl=settings.pharmacy_cache_ttl)


def _make_key(*args, **kwargs) -> str:
    """Deterministic cache key from args."""
    raw = repr((args, sorted(kwargs.items())))
    return hashlib.md5(raw.encode()).hexdigest()


def cached_pharmacy_search(fn):
    """Cache decorator for pharmacy searches, scoped by the owner's `cache_scope`."""
    @wraps(fn)
    async def wrapper(self, *args, **kwargs):
        key = _make_key(self.cache_scope, *args, **kwargs)
        if key in _pharmacy_cache:
            logger.debug("Cache HIT (pharmacies): %s", key[:8])
            return _pharmacy_cache[key]
        result = await fn(self, *args, **kwargs)
        if result:  # Only cache non-empty results
            _pharmacy_cache[key] = result
            logger.debug("Cache SET (pharmacies): %s", key[:8])
        return result
    return wrapper


def clear_all_caches():
    """Manual cache invalidation (e.g., after a directory change)."""
    _pharmacy_cache.clear()
    logger.info("All caches cleared")
