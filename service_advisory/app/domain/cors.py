"""
Origin-based CORS policy for the advisory endpoint.
"""

from typing import Dict, Iterable, Optional

ALLOWED_METHODS = "GET, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"


class CORSPolicy:
    """Reflects allow-listed origins, otherwise answers with a wildcard."""

    def __init__(self, allowed_origins: Iterable[str], max_age: int = 86400):
        self.allowed_origins = frozenset(allowed_origins)
        self.max_age = max_age

    def headers(self, origin: Optional[str]) -> Dict[str, str]:
        """CORS headers for a simple (non-preflight) response."""
        if origin and origin in self.allowed_origins:
            return {
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": ALLOWED_METHODS,
                "Access-Control-Allow-Headers": ALLOWED_HEADERS,
                "Vary": "Origin",
            }
        return {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        }

    def preflight_headers(self, origin: Optional[str]) -> Dict[str, str]:
        headers = self.headers(origin)
        headers["Access-Control-Max-Age"] = str(self.max_age)
        return headers
