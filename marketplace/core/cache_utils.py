"""
Caching helpers for read-mostly data (attribute schemas, homepage content).
Uses Redis through django-redis when configured.
"""
from django.core.cache import cache
from functools import wraps
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
ATTRIBUTE_SCHEMA_CACHE_TTL = 600  # 10 minutes
HOMEPAGE_CACHE_TTL = 300  # 5 minutes
INVENTORY_TOTAL_CACHE_TTL = 30


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def cached_query(cache_ttl=60, key_prefix="query"):
    """
    Decorator to cache expensive reads

    Usage:
        @cached_query(cache_ttl=600, key_prefix="attribute_schema")
        def generate_form_schema(organization_type):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            cache_key = make_cache_key(key_prefix, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {key_prefix}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {key_prefix}: {cache_key}")
            result = func(*args, **kwargs)
            cache.set(cache_key, result, cache_ttl)
            return result

        def invalidate(*args, **kwargs):
            cache.delete(make_cache_key(key_prefix, *args, **kwargs))

        wrapper.invalidate = invalidate
        return wrapper
    return decorator
