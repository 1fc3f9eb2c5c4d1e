"""
Test helper functions and factory methods for the travel advisory gateway.
"""

import json
import time
from typing import Any, Dict, List, Optional

import httpx


class InMemoryRedis:
    """Async double covering the Redis commands the cache store issues."""

    def __init__(self):
        self._data: Dict[str, Any] = {}
        self._expires: Dict[str, float] = {}
        self.setex_calls: List[Dict[str, Any]] = []
        self.fail_with: Optional[Exception] = None
        self.closed = False

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def get(self, key: str) -> Optional[str]:
        self._check()
        expires = self._expires.get(key)
        if expires is not None and expires <= time.monotonic():
            self._data.pop(key, None)
            self._expires.pop(key, None)
        return self._data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check()
        self._data[key] = value
        self._expires[key] = time.monotonic() + ttl
        self.setex_calls.append({"key": key, "ttl": ttl, "value": value})
        return True

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True

    def expire_all(self) -> None:
        for key in list(self._expires):
            self._expires[key] = 0.0


class TestDataFactory:
    """Factory for creating upstream payloads."""

    __test__ = False

    @staticmethod
    def country_record(**overrides) -> Dict[str, Any]:
        """Reference data record in the public service's shape."""
        record = {
            "name": {"common": "France", "official": "French Republic"},
            "cca2": "FR",
            "capital": ["Paris"],
            "region": "Europe",
            "subregion": "Western Europe",
            "languages": {"fra": "French"},
            "currencies": {"EUR": {"name": "Euro", "symbol": "€"}},
            "idd": {"root": "+3", "suffixes": ["3"]},
        }
        record.update(overrides)
        return record

    @staticmethod
    def advisory_payload(**overrides) -> Dict[str, Any]:
        """A complete advisory object as the generation service should return it."""
        payload = {
            "visa": ["EU citizens can enter with a national ID card."],
            "laws": ["Carry identification at all times."],
            "safety": ["Watch for pickpockets in crowded tourist areas."],
            "emergency": ["Dial 112 for any emergency."],
            "health": ["Tap water is safe to drink."],
            "disclaimer": "Verify all details with official government sources before travelling.",
        }
        payload.update(overrides)
        return payload

    @staticmethod
    def fenced(payload: Dict[str, Any], prose: str = "Here is the travel advice you asked for:") -> str:
        """Wrap a payload in prose and a fenced code block."""
        return f"{prose}\n```json\n{json.dumps(payload, indent=2)}\n```\nStay safe!"

    @staticmethod
    def responses_body(text: str) -> Dict[str, Any]:
        """Generation service body carrying text in output[0].content[0]."""
        return {
            "id": "resp_test",
            "output": [
                {"type": "message", "content": [{"type": "output_text", "text": text}]}
            ],
        }


def make_response(status_code: int, payload: Any = None, *, method: str = "GET", url: str = "http://upstream.test") -> httpx.Response:
    """Build an httpx.Response bound to a request."""
    content = payload if isinstance(payload, str) else json.dumps(payload if payload is not None else {})
    return httpx.Response(
        status_code=status_code,
        content=content,
        request=httpx.Request(method, url),
    )
