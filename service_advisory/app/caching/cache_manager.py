"""
Advisory cache manager: TTL classes and entry lifecycle.
"""

from datetime import datetime, timezone
from typing import Dict, Optional, TYPE_CHECKING

from pydantic import ValidationError

from shared.logging import get_logger
from ..domain.models import CacheEntry, GatewayResponse, TTLClass, parse_iso, utc_now_iso
from .cache_store import RedisCacheStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_LONG_TTL = 86400
DEFAULT_SHORT_TTL = 300


class AdvisoryCacheManager:
    """Owns cached envelopes keyed by normalized country identity.

    Successful AI compositions are kept for the long TTL, fallbacks for the
    short one. Store errors degrade to a miss on read and a no-op on write.
    """

    def __init__(
        self,
        store: RedisCacheStore,
        *,
        long_ttl: int = DEFAULT_LONG_TTL,
        short_ttl: int = DEFAULT_SHORT_TTL,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.store = store
        self.ttls: Dict[TTLClass, int] = {TTLClass.LONG: long_ttl, TTLClass.SHORT: short_ttl}
        self.metrics = metrics
        self.logger = get_logger("advisory.cache_manager")

    def ttl_seconds(self, ttl_class: TTLClass) -> int:
        return self.ttls[ttl_class]

    def remaining_ttl(self, entry: CacheEntry, now: Optional[datetime] = None) -> int:
        """Seconds left before the store expires an entry, within [0, ttl]."""
        ttl = self.ttl_seconds(entry.ttl_class)
        try:
            stored_at = parse_iso(entry.stored_at)
        except ValueError:
            return ttl
        age = ((now or datetime.now(timezone.utc)) - stored_at).total_seconds()
        return max(0, min(ttl, ttl - int(age)))

    def _key(self, identity: str) -> str:
        return self.store.make_key("travel-advice", identity)

    async def get(self, identity: str) -> Optional[CacheEntry]:
        """Return the live entry for an identity, or None."""
        key = self._key(identity)
        try:
            raw = await self.store.get(key)
        except Exception as exc:
            self.logger.error("Cache fetch error", key=key, error=str(exc))
            self._count("error")
            return None

        if raw is None:
            self._count("miss")
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            self.logger.warning("Discarding unreadable cache entry", key=key, error=str(exc))
            self._count("invalid")
            return None

        self._count("hit")
        return entry

    async def put(self, identity: str, response: GatewayResponse, ttl_class: TTLClass) -> bool:
        """Store (or overwrite) the entry for an identity."""
        key = self._key(identity)
        entry = CacheEntry(key=identity, response=response, stored_at=utc_now_iso(), ttl_class=ttl_class)
        ttl = self.ttl_seconds(ttl_class)
        try:
            await self.store.set(key, entry.model_dump_json(by_alias=True), ttl)
        except Exception as exc:
            self.logger.error("Cache set error", key=key, error=str(exc))
            return False

        self.logger.info("Cached advisory response", key=key, ttl_class=ttl_class.value, ttl=ttl)
        return True

    def _count(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("advisory_cache_lookups_total", result=result)
