"""
Unit tests for the advisory cache manager.
"""

import json
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, patch

from service_advisory.app.adapters.reference_data_client import ReferenceDataClient
from service_advisory.app.caching.cache_manager import AdvisoryCacheManager
from service_advisory.app.caching.cache_store import RedisCacheStore
from service_advisory.app.domain.models import (
    AdvisoryContent,
    AdvisoryRequest,
    CacheEntry,
    GatewayResponse,
    Provenance,
    TTLClass,
)
from shared.metrics import MetricsCollector
from shared.test_helpers import InMemoryRedis, TestDataFactory


def _response(advice=True) -> GatewayResponse:
    basics = ReferenceDataClient.to_basics(TestDataFactory.country_record(), AdvisoryRequest(identifier="FR"))
    content = AdvisoryContent(**TestDataFactory.advisory_payload()) if advice else None
    return GatewayResponse(
        country="France",
        code="FR",
        updated_at="2026-01-01T00:00:00.000Z",
        basics=basics,
        advice=content,
        source=Provenance.AI if advice else Provenance.FALLBACK,
        model="gpt-4o-mini",
        openai_status=None if advice else 503,
        ai_note=None if advice else "AI service is temporarily unavailable. Please try again soon.",
    )


class TestAdvisoryCacheManager:
    """Test cases for AdvisoryCacheManager."""

    @pytest.fixture
    def redis_client(self):
        return InMemoryRedis()

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("advisory")

    @pytest.fixture
    def cache(self, redis_client, metrics):
        store = RedisCacheStore("redis://unused", client=redis_client)
        return AdvisoryCacheManager(store, long_ttl=86400, short_ttl=300, metrics=metrics)

    @pytest.mark.asyncio
    async def test_miss_returns_none(self, cache, metrics):
        assert await cache.get("fr") is None
        assert metrics.registry.get_sample_value("advisory_cache_lookups_total", {"result": "miss"}) == 1

    @pytest.mark.asyncio
    async def test_put_then_get_round_trips(self, cache, metrics):
        response = _response()

        assert await cache.put("fr", response, TTLClass.LONG) is True
        entry = await cache.get("fr")

        assert entry is not None
        assert entry.key == "fr"
        assert entry.ttl_class == TTLClass.LONG
        assert entry.response.to_payload() == response.to_payload()
        assert entry.stored_at.endswith("Z")
        assert metrics.registry.get_sample_value("advisory_cache_lookups_total", {"result": "hit"}) == 1

    @pytest.mark.asyncio
    async def test_ttl_classes_map_to_expiry(self, cache, redis_client):
        await cache.put("fr", _response(), TTLClass.LONG)
        await cache.put("de", _response(advice=False), TTLClass.SHORT)

        ttls = {call["key"]: call["ttl"] for call in redis_client.setex_calls}
        assert ttls == {
            "advisory:travel-advice:fr": 86400,
            "advisory:travel-advice:de": 300,
        }

    @pytest.mark.asyncio
    async def test_expired_entry_is_a_miss(self, cache, redis_client):
        await cache.put("fr", _response(), TTLClass.LONG)
        redis_client.expire_all()

        assert await cache.get("fr") is None

    @pytest.mark.asyncio
    async def test_new_put_overwrites_previous_entry(self, cache):
        await cache.put("fr", _response(advice=False), TTLClass.SHORT)
        await cache.put("fr", _response(), TTLClass.LONG)

        entry = await cache.get("fr")

        assert entry.ttl_class == TTLClass.LONG
        assert entry.response.source == Provenance.AI

    @pytest.mark.asyncio
    async def test_stored_value_is_wire_shaped_json(self, cache, redis_client):
        await cache.put("fr", _response(), TTLClass.LONG)

        stored = json.loads(redis_client.setex_calls[0]["value"])

        assert stored["response"]["basics"]["callingCode"] == "+33"
        assert stored["ttl_class"] == "long"

    @pytest.mark.asyncio
    async def test_store_errors_degrade_to_miss(self, cache, redis_client, metrics):
        redis_client.fail_with = ConnectionError("redis down")

        assert await cache.get("fr") is None
        assert await cache.put("fr", _response(), TTLClass.LONG) is False
        assert metrics.registry.get_sample_value("advisory_cache_lookups_total", {"result": "error"}) == 1

    @pytest.mark.asyncio
    async def test_unreadable_entry_is_discarded(self, cache, redis_client):
        await redis_client.setex("advisory:travel-advice:fr", 60, "{not valid")

        assert await cache.get("fr") is None

    @pytest.mark.asyncio
    async def test_store_decodes_bytes(self):
        client = AsyncMock()
        client.get.return_value = b"value"
        store = RedisCacheStore("redis://unused", client=client)

        assert await store.get("k") == "value"

    @pytest.mark.asyncio
    async def test_store_connects_lazily(self):
        with patch("service_advisory.app.caching.cache_store.redis.from_url") as mock_from_url:
            mock_from_url.return_value = InMemoryRedis()
            store = RedisCacheStore("redis://cache:6379/1")

            mock_from_url.assert_not_called()
            assert await store.ping() is True

        assert mock_from_url.call_args.args[0] == "redis://cache:6379/1"

    def test_remaining_ttl_subtracts_entry_age(self, cache):
        entry = CacheEntry(
            key="fr",
            response=_response(),
            stored_at="2026-01-01T00:00:00.000Z",
            ttl_class=TTLClass.LONG,
        )

        assert cache.remaining_ttl(entry, now=datetime(2026, 1, 1, 1, 0, 0, tzinfo=timezone.utc)) == 82800
        assert cache.remaining_ttl(entry, now=datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)) == 86400
        assert cache.remaining_ttl(entry, now=datetime(2026, 1, 3, tzinfo=timezone.utc)) == 0

    def test_remaining_ttl_for_short_class_and_unreadable_timestamp(self, cache):
        entry = CacheEntry(
            key="de",
            response=_response(advice=False),
            stored_at="2026-01-01T00:00:00.000Z",
            ttl_class=TTLClass.SHORT,
        )

        assert cache.remaining_ttl(entry, now=datetime(2026, 1, 1, 0, 1, 0, tzinfo=timezone.utc)) == 240
        assert cache.remaining_ttl(entry.model_copy(update={"stored_at": "yesterday"})) == 300
