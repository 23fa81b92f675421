"""Target URL validation and private-host blocking (SSRF guard).

Only public http(s) hosts may be fetched. Hostnames are checked as written in
the URL; DNS is not resolved here.
"""

from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_LOCAL_HOSTNAMES = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
_LOCAL_SUFFIXES = (".local", ".internal")


class UrlValidationError(Exception):
    """Base class for rejected target URLs."""

    status_code = 400
    code = "bad_request"


class InvalidUrlError(UrlValidationError):
    """URL is missing, not http(s), or unparseable."""


class BlockedHostError(UrlValidationError):
    """URL points at a private, loopback or link-local host."""

    status_code = 403
    code = "ssrf_blocked"


@dataclass(frozen=True)
class TargetUrl:
    url: str
    hostname: str
    site_domain: str


def is_private_host(host: Optional[str]) -> bool:
    """Return True for hosts that must never be fetched server-side."""
    h = (host or "").strip().lower().strip("[]")
    if h in _LOCAL_HOSTNAMES:
        return True
    if h.endswith(_LOCAL_SUFFIXES):
        return True

    try:
        address = ipaddress.ip_address(h)
    except ValueError:
        return False

    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_unspecified
        or address.is_reserved
    )


def validate_target_url(url: Optional[str]) -> TargetUrl:
    """Validate a user-supplied URL.

    Raises:
        InvalidUrlError: Missing, non-http(s) or unparseable URL.
        BlockedHostError: Private or local host.
    """
    if not url or not isinstance(url, str) or not _SCHEME_RE.match(url):
        raise InvalidUrlError("Missing or invalid `url`")

    try:
        hostname = urlsplit(url).hostname
    except ValueError as exc:
        raise InvalidUrlError("Invalid URL") from exc
    if not hostname:
        raise InvalidUrlError("Invalid URL")

    if is_private_host(hostname):
        raise BlockedHostError("Blocked host")

    site_domain = hostname[4:] if hostname.startswith("www.") else hostname
    return TargetUrl(url=url, hostname=hostname, site_domain=site_domain)
