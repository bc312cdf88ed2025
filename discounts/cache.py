"""
Caching of active discount rule IDs.

One cache entry regardless of traffic: the IDs of every rule that was
active when the cache was filled. Callers still re-filter by expiry and
usage in the database, so a stale entry can only hide a rule created since
the last fill, and every admin write invalidates the entry.
"""
import logging
from typing import Optional, List

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

ACTIVE_RULES_CACHE_KEY = 'discount_rules:active'

# Cache timeout: 5 minutes
CACHE_TIMEOUT = getattr(settings, 'DISCOUNT_RULE_CACHE_TIMEOUT', 300)


def get_cached_active_discount_rule_ids() -> Optional[List[str]]:
    """
    Get cached IDs of all active discount rules.

    Returns:
        List of discount rule IDs if cached, None otherwise
    """
    try:
        cached_ids = cache.get(ACTIVE_RULES_CACHE_KEY)
    except Exception as e:
        logger.error(f"Cache read error: {str(e)}")
        return None

    if cached_ids is not None:
        logger.debug("Cache HIT for active discount rules")
        return cached_ids
    logger.debug("Cache MISS for active discount rules")
    return None


def cache_active_discount_rule_ids(rule_ids: List[str]) -> bool:
    """
    Cache IDs of all active discount rules.

    Returns:
        True if cached successfully
    """
    try:
        cache.set(ACTIVE_RULES_CACHE_KEY, rule_ids, timeout=CACHE_TIMEOUT)
    except Exception as e:
        logger.error(f"Cache write error: {str(e)}")
        return False

    logger.debug(f"Cached {len(rule_ids)} active discount rules")
    return True


def invalidate_discount_cache() -> bool:
    """
    Drop the cached rule IDs.

    Call this whenever discount rules are created, updated or deleted.
    """
    try:
        cache.delete(ACTIVE_RULES_CACHE_KEY)
    except Exception as e:
        logger.error(f"Cache invalidation error: {str(e)}")
        return False

    logger.info("Discount rule cache invalidated")
    return True
