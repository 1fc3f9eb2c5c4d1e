"""
Composition of the gateway response envelope.
"""

from typing import Optional, Tuple, TYPE_CHECKING

from shared.errors import InvalidRequest
from shared.logging import get_logger
from .models import (
    AdvisoryRequest,
    AdvisoryResult,
    CountryBasics,
    GatewayResponse,
    Provenance,
    utc_now_iso,
)

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector
    from ..adapters.advisory_client import AdvisoryClient
    from ..adapters.reference_data_client import ReferenceDataClient
    from ..caching.cache_manager import AdvisoryCacheManager


def parse_identifier(code: Optional[str], country: Optional[str], max_length: int) -> AdvisoryRequest:
    """Build the request identity, preferring the ISO code parameter."""
    raw = code if code and code.strip() else country
    identifier = (raw or "").strip()
    if not identifier:
        raise InvalidRequest("Missing ?country=<name or ISO alpha-2 code>")
    if len(identifier) > max_length:
        raise InvalidRequest(
            "Country identifier too long",
            details={"max_length": max_length}
        )
    return AdvisoryRequest(identifier=identifier)


def compose(basics: CountryBasics, result: AdvisoryResult) -> GatewayResponse:
    """Combine basics and the advisory outcome into the envelope."""
    degraded = result.content is None
    return GatewayResponse(
        country=basics.common_name or basics.label,
        code=basics.code,
        updated_at=utc_now_iso(),
        basics=basics,
        advice=result.content,
        source=Provenance.FALLBACK if degraded else Provenance.AI,
        model=result.model,
        openai_status=result.status if degraded else None,
        ai_note=result.note if degraded else None,
    )


class AdvisoryComposer:
    """Cache lookup, upstream orchestration and cache write for one identity."""

    def __init__(
        self,
        reference_client: "ReferenceDataClient",
        advisory_client: "AdvisoryClient",
        cache: "AdvisoryCacheManager",
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.reference_client = reference_client
        self.advisory_client = advisory_client
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("advisory.composer")

    async def respond(self, request: AdvisoryRequest) -> Tuple[GatewayResponse, int, bool]:
        """Return (envelope, seconds the envelope may still be cached, served from cache)."""
        entry = await self.cache.get(request.cache_key)
        if entry is not None:
            remaining = self.cache.remaining_ttl(entry)
            self.logger.info(
                "Cache hit",
                identity=request.cache_key,
                ttl_class=entry.ttl_class.value,
                remaining_ttl=remaining
            )
            return self._from_cache(entry.response, entry.stored_at), remaining, True

        response = await self.compose_fresh(request)
        await self.cache.put(request.cache_key, response, response.ttl_class)
        return response, self.cache.ttl_seconds(response.ttl_class), False

    async def compose_fresh(self, request: AdvisoryRequest) -> GatewayResponse:
        """Fetch basics (fatal on failure) and advice (degrades), then compose."""
        basics = await self.reference_client.fetch(request)
        result = await self.advisory_client.request(basics)
        response = compose(basics, result)

        if response.source is Provenance.FALLBACK:
            self.logger.warning(
                "Serving fallback advisory",
                code=response.code,
                openai_status=response.openai_status,
                cause=result.cause.value if result.cause else None
            )
        return response

    def _from_cache(self, response: GatewayResponse, stored_at: str) -> GatewayResponse:
        if response.source is not Provenance.AI:
            return response
        if self.metrics:
            self.metrics.increment_counter("advisory_results_total", source=Provenance.AI_CACHE.value)
        return response.model_copy(update={"source": Provenance.AI_CACHE, "cached_at": stored_at})
