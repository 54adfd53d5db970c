"""Response caching."""

from fpl_proxy.cache.ttl import CacheEntry, CacheStats, ResponseCache, purge_expired_periodically

__all__ = ["CacheEntry", "CacheStats", "ResponseCache", "purge_expired_periodically"]
