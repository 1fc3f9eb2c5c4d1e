"""
Advisory caching package.

Envelopes are cached per normalized country identity; TTL expiry is the only
eviction policy and a fresh composition overwrites the previous entry.
"""

from .cache_manager import AdvisoryCacheManager
from .cache_store import RedisCacheStore

__all__ = [
    "AdvisoryCacheManager",
    "RedisCacheStore",
]
