"""Origin allowlist and CORS response headers for the FAQ route."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence
from urllib.parse import urlsplit

ALLOW_METHODS = "POST,OPTIONS,GET"
ALLOW_HEADERS = "Content-Type, Authorization"


def _hostname(value: str) -> Optional[str]:
    try:
        return urlsplit(value).hostname
    except ValueError:
        return None


class CorsPolicy:
    """Hostname-based origin allowlist.

    An empty allowlist allows every origin. Otherwise a request must carry an
    ``Origin`` header whose hostname matches an entry; entries may be full
    origins (``https://shop.example``) or bare hosts (``shop.example``).
    """

    def __init__(self, allowed_origins: Sequence[str] = ()):
        self.allowed_origins: List[str] = [o.strip() for o in allowed_origins if o and o.strip()]

    def _allowed_hosts(self) -> List[str]:
        hosts = []
        for entry in self.allowed_origins:
            host = _hostname(entry)
            if not host:
                host = entry.split("://", 1)[-1].split("/", 1)[0].lower()
            hosts.append(host)
        return hosts

    def origin_allowed(self, origin: Optional[str]) -> bool:
        if not self.allowed_origins:
            return True
        if not origin:
            return False
        host = _hostname(origin)
        if not host:
            return False
        return host in self._allowed_hosts()

    def headers_for(self, origin: Optional[str]) -> Dict[str, str]:
        """Headers to attach to every response, including errors."""
        allow_origin = origin if origin and self.origin_allowed(origin) else "null"
        return {
            "Access-Control-Allow-Origin": allow_origin,
            "Access-Control-Allow-Methods": ALLOW_METHODS,
            "Access-Control-Allow-Headers": ALLOW_HEADERS,
            "Vary": "Origin",
        }
