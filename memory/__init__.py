"""In-process caches."""

from memory.ttl_cache import CacheEntry, TTLCache

__all__ = ["CacheEntry", "TTLCache"]
