"""
Reference data client for country basics.
"""

from typing import Any, Dict, List, Optional, Set
from urllib.parse import quote

import httpx

from shared.logging import get_logger
from shared.errors import UpstreamUnavailable
from shared.metrics import MetricsCollector
from shared.retry import BackoffScheduler, RetryConfig, is_retryable_status
from ..domain.models import PLACEHOLDER, AdvisoryRequest, CountryBasics


SERVICE_NAME = "reference_data"


def _record_names(record: Dict[str, Any]) -> Set[str]:
    """Case-folded names and codes a record can be asked for by."""
    name = record.get("name") or {}
    names = {name.get("common"), name.get("official")}
    for native in (name.get("nativeName") or {}).values():
        if isinstance(native, dict):
            names.update((native.get("common"), native.get("official")))
    names.update(record.get("altSpellings") or [])
    return {value.casefold() for value in names if isinstance(value, str) and value}


class ReferenceDataClient:
    """Client for the public country reference data service.

    Failures are fatal to the request: any non-success status or transport
    error surfaces as UpstreamUnavailable. Retries are off by default and
    follow the shared backoff contract when enabled.
    """

    def __init__(
        self,
        reference_service_url: str,
        timeout: float = 10.0,
        scheduler: Optional[BackoffScheduler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = reference_service_url.rstrip('/')
        self.timeout = timeout
        self.scheduler = scheduler or BackoffScheduler(RetryConfig(max_attempts=1))
        self.metrics = metrics
        self.logger = get_logger("advisory.reference_client")

    async def fetch(self, request: AdvisoryRequest) -> CountryBasics:
        """Fetch and normalize basics for a country code or name."""
        url = self._lookup_url(request)
        attempt = 0

        while True:
            try:
                record = self.select_record(await self._request(url), request)
                self._count("success")
                return self.to_basics(record, request)
            except UpstreamUnavailable as exc:
                retryable = exc.status is None or is_retryable_status(exc.status)
                if not (retryable and self.scheduler.has_attempts_left(attempt)):
                    self._count("failure")
                    raise
                self.logger.warning(
                    "Reference data request failed, retrying",
                    url=url,
                    attempt=attempt,
                    status=exc.status
                )
                await self.scheduler.wait(attempt)
                attempt += 1

    def _lookup_url(self, request: AdvisoryRequest) -> str:
        if request.is_code:
            return f"{self.base_url}/v3.1/alpha/{quote(request.identifier.upper())}"
        return f"{self.base_url}/v3.1/name/{quote(request.identifier)}"

    async def _request(self, url: str) -> List[Dict[str, Any]]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        except httpx.HTTPError as exc:
            self.logger.error("Reference data service unreachable", url=url, error=str(exc))
            raise UpstreamUnavailable(
                service=SERVICE_NAME,
                details={"reason": f"{type(exc).__name__}: {exc}"}
            )

        if response.status_code != 200:
            self.logger.error(
                "Reference data request failed",
                url=url,
                status_code=response.status_code
            )
            raise UpstreamUnavailable(
                service=SERVICE_NAME,
                status=response.status_code,
                details={"reason": f"Reference data HTTP {response.status_code}"}
            )

        try:
            data = response.json()
        except ValueError:
            raise UpstreamUnavailable(
                service=SERVICE_NAME,
                status=response.status_code,
                details={"reason": "Reference data returned invalid JSON"}
            )

        records = [record for record in (data if isinstance(data, list) else [data]) if isinstance(record, dict)]
        if not records:
            raise UpstreamUnavailable(
                service=SERVICE_NAME,
                status=response.status_code,
                details={"reason": "Reference data returned no country record"}
            )

        self.logger.debug("Reference data retrieved", url=url, matches=len(records))
        return records

    @staticmethod
    def select_record(records: List[Dict[str, Any]], request: AdvisoryRequest) -> Dict[str, Any]:
        """Pick the record a name search actually asked for.

        Name lookups are partial-match searches ("Niger" also returns Nigeria),
        so an exact common, official or native name match wins over result order.
        """
        if request.is_code or len(records) == 1:
            return records[0]

        wanted = request.cache_key
        for record in records:
            if wanted in _record_names(record):
                return record
        return records[0]

    @staticmethod
    def to_basics(record: Dict[str, Any], request: AdvisoryRequest) -> CountryBasics:
        """Map a reference data record onto CountryBasics, defaulting missing fields."""
        name = record.get("name") or {}
        capital = record.get("capital") or []
        languages = record.get("languages") or {}
        currencies = record.get("currencies") or {}
        idd = record.get("idd") or {}

        calling_code = PLACEHOLDER
        if idd.get("root"):
            suffixes = idd.get("suffixes") or []
            calling_code = idd["root"] + (suffixes[0] if suffixes else "")

        return CountryBasics(
            code=record.get("cca2") or request.display_code,
            official_name=name.get("official") or PLACEHOLDER,
            common_name=name.get("common"),
            capital=capital[0] if capital else PLACEHOLDER,
            region=record.get("region") or PLACEHOLDER,
            subregion=record.get("subregion") or PLACEHOLDER,
            languages=", ".join(languages.values()) if languages else PLACEHOLDER,
            currency=next(iter(currencies), PLACEHOLDER),
            calling_code=calling_code,
        )

    def _count(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("reference_data_requests_total", outcome=outcome)
