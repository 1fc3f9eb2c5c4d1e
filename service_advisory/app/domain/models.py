"""
Wire and domain models for the advisory gateway.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


PLACEHOLDER = "—"
UNAVAILABLE = "unavailable"

ADVISORY_CATEGORIES = ("visa", "laws", "safety", "emergency", "health")


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with a trailing Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(timestamp: str) -> datetime:
    """Inverse of utc_now_iso; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Provenance(str, Enum):
    """Where a response's advisory content came from."""

    AI = "ai"
    FALLBACK = "fallback"
    AI_CACHE = "ai_cache"


class TTLClass(str, Enum):
    """Cache lifetime bucket."""

    LONG = "long"
    SHORT = "short"


class FailureCause(str, Enum):
    """Why the advisory client fell back."""

    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    MALFORMED = "malformed"
    NOT_CONFIGURED = "not_configured"


FAILURE_NOTES = {
    FailureCause.RATE_LIMITED: "AI is temporarily busy (rate limited). Please try again shortly.",
    FailureCause.SERVER_ERROR: "AI service is temporarily unavailable. Please try again soon.",
    FailureCause.CLIENT_ERROR: "AI service rejected the request. Showing standard guidance.",
    FailureCause.NETWORK_ERROR: "AI service could not be reached. Please try again soon.",
    FailureCause.TIMEOUT: "AI service took too long to respond. Please try again soon.",
    FailureCause.MALFORMED: "We couldn't parse AI advice right now. Showing standard guidance.",
    FailureCause.NOT_CONFIGURED: "AI service is not configured. Showing standard guidance.",
}


class AdvisoryRequest(BaseModel):
    """Normalized identity of an inbound request."""

    model_config = ConfigDict(frozen=True)

    identifier: str

    @property
    def cache_key(self) -> str:
        return self.identifier.casefold()

    @property
    def is_code(self) -> bool:
        return len(self.identifier) in (2, 3) and self.identifier.isalpha()

    @property
    def display_code(self) -> str:
        return self.identifier.upper() if self.is_code else self.identifier


class CountryBasics(BaseModel):
    """Static reference facts about a country."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    code: str
    official_name: str = Field(default=PLACEHOLDER, alias="officialName")
    capital: str = PLACEHOLDER
    region: str = PLACEHOLDER
    subregion: str = PLACEHOLDER
    languages: str = PLACEHOLDER
    currency: str = PLACEHOLDER
    calling_code: str = Field(default=PLACEHOLDER, alias="callingCode")
    common_name: Optional[str] = Field(default=None, exclude=True)

    @property
    def label(self) -> str:
        """Best human-readable name for prompts and the envelope."""
        if self.official_name != PLACEHOLDER:
            return self.official_name
        return self.common_name or self.code

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class AdvisoryContent(BaseModel):
    """Categorised travel guidance bullets with a mandatory disclaimer."""

    model_config = ConfigDict(frozen=True)

    visa: List[str]
    laws: List[str]
    safety: List[str]
    emergency: List[str]
    health: List[str]
    disclaimer: str


class AdvisoryResult(BaseModel):
    """Outcome of the advisory client: content with provenance, never an exception."""

    model_config = ConfigDict(frozen=True)

    content: Optional[AdvisoryContent] = None
    source: Provenance
    model: str
    status: Optional[int] = None
    cause: Optional[FailureCause] = None
    attempts: int = 0

    @property
    def note(self) -> Optional[str]:
        if self.cause is None:
            return None
        return FAILURE_NOTES[self.cause]


class GatewayResponse(BaseModel):
    """The JSON envelope returned to clients and stored in the cache."""

    country: str
    code: str
    updated_at: str
    basics: CountryBasics
    advice: Optional[AdvisoryContent] = None
    source: Provenance
    model: str
    openai_status: Optional[int] = None
    ai_note: Optional[str] = None
    cached_at: Optional[str] = None

    @property
    def ttl_class(self) -> TTLClass:
        return TTLClass.LONG if self.advice is not None else TTLClass.SHORT

    def to_payload(self) -> Dict[str, Any]:
        payload = {
            "country": self.country,
            "code": self.code,
            "updated_at": self.updated_at,
            "basics": self.basics.to_payload(),
            "advice": self.advice.model_dump() if self.advice is not None else None,
            "source": self.source.value,
            "model": self.model,
        }
        for key in ("openai_status", "ai_note", "cached_at"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


class CacheEntry(BaseModel):
    """A cached envelope with its write time and lifetime bucket."""

    key: str
    response: GatewayResponse
    stored_at: str
    ttl_class: TTLClass
