"""
Generation service client producing structured travel advisories.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger
from shared.errors import AdvisoryMalformed, AdvisoryTransient
from shared.metrics import MetricsCollector
from shared.retry import BackoffScheduler, is_retryable_status
from ..domain import normalizer
from ..domain.models import (
    AdvisoryContent,
    AdvisoryResult,
    CountryBasics,
    FailureCause,
    Provenance,
)


SYSTEM_INSTRUCTION = (
    "You are a careful travel assistant. Return only structured JSON matching "
    "the given shape; no prose, no markdown."
)

ADVISORY_SHAPE = """{
  "visa": ["short sentence", ...],
  "laws": ["short sentence", ...],
  "safety": ["short sentence", ...],
  "emergency": ["short sentence", ...],
  "health": ["short sentence", ...],
  "disclaimer": "one sentence reminding travellers to verify with official sources"
}"""


def build_user_instruction(basics: CountryBasics) -> str:
    """Prompt embedding the resolved country and the exact expected shape."""
    return (
        f'Return STRICT JSON with travel and safety guidance for "{basics.label}" '
        f"({basics.code}).\n"
        f"Region: {basics.region} / {basics.subregion}. Capital: {basics.capital}. "
        f"Languages: {basics.languages}. Currency: {basics.currency}. "
        f"Dial code: {basics.calling_code}.\n\n"
        f"Shape:\n{ADVISORY_SHAPE}\n\n"
        "Use 3-6 bullets per list. Each bullet is one short, practical, non-alarmist sentence. "
        'If unsure of a specific detail or number, write "Check current official guidance". '
        "Output ONLY JSON."
    )


class _AttemptLog:
    """Tracks what the retry loop has seen so far, readable after cancellation."""

    def __init__(self):
        self.attempts = 0
        self.last_status: Optional[int] = None
        self.last_cause: Optional[FailureCause] = None


class AdvisoryClient:
    """Client for the text-generation service.

    ``request`` never raises: transient failures are retried per the backoff
    scheduler, and every failure ends as a fallback AdvisoryResult carrying the
    last observed status.
    """

    def __init__(
        self,
        generation_service_url: str,
        api_key: str,
        model: str,
        scheduler: BackoffScheduler,
        *,
        timeout: float = 15.0,
        deadline: Optional[float] = None,
        temperature: float = 0.2,
        max_output_tokens: int = 900,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.endpoint = f"{generation_service_url.rstrip('/')}/v1/responses"
        self.api_key = api_key
        self.model = model
        self.scheduler = scheduler
        self.timeout = timeout
        self.deadline = deadline
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.metrics = metrics
        self.logger = get_logger("advisory.advisory_client")

    async def request(self, basics: CountryBasics) -> AdvisoryResult:
        """Request advisory content for a country; always returns a result."""
        if not self.api_key:
            self.logger.warning("Generation service credential missing", code=basics.code)
            return self._fallback(FailureCause.NOT_CONFIGURED, None, attempts=0)

        log = _AttemptLog()
        try:
            if self.deadline:
                return await asyncio.wait_for(self._request_with_retry(basics, log), timeout=self.deadline)
            return await self._request_with_retry(basics, log)
        except asyncio.TimeoutError:
            self.logger.error(
                "Advisory deadline exceeded",
                code=basics.code,
                deadline=self.deadline,
                attempts=log.attempts
            )
            return self._fallback(FailureCause.TIMEOUT, log.last_status, log.attempts)
        except Exception as exc:
            self.logger.error("Advisory request failed unexpectedly", code=basics.code, error=str(exc), exc_info=True)
            return self._fallback(log.last_cause or FailureCause.SERVER_ERROR, log.last_status, log.attempts)

    async def _request_with_retry(self, basics: CountryBasics, log: _AttemptLog) -> AdvisoryResult:
        payload = self._build_payload(basics)

        for attempt in range(self.scheduler.max_attempts):
            log.attempts = attempt + 1
            try:
                content, status = await self._attempt(payload, log)
            except AdvisoryTransient as exc:
                if self.scheduler.has_attempts_left(attempt):
                    self.logger.warning(
                        "Generation service attempt failed, backing off",
                        code=basics.code,
                        attempt=attempt,
                        status=exc.status,
                        cause=log.last_cause.value
                    )
                    delay = await self.scheduler.wait(attempt)
                    self._observe_backoff(delay)
                    continue
                self.logger.error(
                    "Generation service attempts exhausted",
                    code=basics.code,
                    attempts=log.attempts,
                    status=exc.status
                )
                return self._fallback(log.last_cause, log.last_status, log.attempts)
            except AdvisoryMalformed as exc:
                self.logger.warning("Generation service output unusable", code=basics.code, status=exc.status)
                return self._fallback(FailureCause.MALFORMED, exc.status, log.attempts)

            if content is None:
                return self._fallback(log.last_cause, status, log.attempts)

            self._count_result("ai")
            self.logger.info("Advisory generated", code=basics.code, attempts=log.attempts)
            return AdvisoryResult(
                content=content,
                source=Provenance.AI,
                model=self.model,
                status=status,
                attempts=log.attempts,
            )

        # max_attempts is validated to be >= 1, so the loop always returns
        return self._fallback(log.last_cause, log.last_status, log.attempts)

    async def _attempt(self, payload: Dict[str, Any], log: _AttemptLog):
        """One call. Returns (content, status) or raises the advisory failure kinds."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.endpoint, json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            log.last_status = None
            log.last_cause = (
                FailureCause.TIMEOUT if isinstance(exc, httpx.TimeoutException) else FailureCause.NETWORK_ERROR
            )
            self._count_attempt("network_error")
            raise AdvisoryTransient(f"{type(exc).__name__}: {exc}")

        status = response.status_code
        log.last_status = status

        if 200 <= status < 300:
            self._count_attempt("success")
            content = self._parse(response)
            if content is None:
                raise AdvisoryMalformed(status=status)
            return content, status

        if is_retryable_status(status):
            log.last_cause = FailureCause.RATE_LIMITED if status == 429 else FailureCause.SERVER_ERROR
            self._count_attempt("rate_limited" if status == 429 else "server_error")
            raise AdvisoryTransient(f"Generation service HTTP {status}", status=status)

        self.logger.warning(
            "Generation service rejected request",
            status_code=status,
            response=response.text[:500]
        )
        log.last_cause = FailureCause.CLIENT_ERROR
        self._count_attempt("client_error")
        return None, status

    def _parse(self, response: httpx.Response) -> Optional[AdvisoryContent]:
        try:
            body = response.json()
        except ValueError:
            body = response.text
        text = normalizer.locate_output_text(body)
        return normalizer.extract(text)

    def _build_payload(self, basics: CountryBasics) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": SYSTEM_INSTRUCTION},
            {"role": "user", "content": build_user_instruction(basics)},
        ]
        return {
            "model": self.model,
            "input": messages,
            "temperature": self.temperature,
            "max_output_tokens": self.max_output_tokens,
        }

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    def _fallback(self, cause: Optional[FailureCause], status: Optional[int], attempts: int) -> AdvisoryResult:
        self._count_result("fallback")
        return AdvisoryResult(
            content=None,
            source=Provenance.FALLBACK,
            model=self.model,
            status=status,
            cause=cause or FailureCause.SERVER_ERROR,
            attempts=attempts,
        )

    def _count_attempt(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("advisory_upstream_attempts_total", outcome=outcome)

    def _count_result(self, source: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("advisory_results_total", source=source)

    def _observe_backoff(self, delay: float) -> None:
        if self.metrics:
            self.metrics.observe_histogram("advisory_backoff_seconds", delay)
