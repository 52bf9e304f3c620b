"""
Client address resolution.

The portal sits behind a reverse proxy, so the address we care about
is the first hop recorded in `X-Forwarded-For`; the socket peer is
only a fallback.  Node-style dual-stack sockets report IPv4 clients as
`::ffff:a.b.c.d`, which is reduced to the plain IPv4 form so it can be
compared against the configured allow-list.
"""

import ipaddress
from collections.abc import Iterable, Mapping

from fastapi import Request

FORWARDED_FOR_HEADER = "x-forwarded-for"
UNKNOWN_ADDRESS = "unknown"


def normalize_address(raw: str) -> str:
    address = raw.strip()
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        # Not a bare IP (hostname, "testclient", port suffix...): keep it.
        if address.lower().startswith("::ffff:"):
            return address[len("::ffff:"):]
        return address
    if isinstance(parsed, ipaddress.IPv6Address) and parsed.ipv4_mapped is not None:
        return str(parsed.ipv4_mapped)
    return str(parsed)


def resolve_client_address(headers: Mapping[str, str], peer_host: str | None) -> str:
    """Return the best-effort originating address.  Never raises."""
    forwarded = headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return normalize_address(first)
    if peer_host:
        return normalize_address(peer_host)
    return UNKNOWN_ADDRESS


def client_address(request: Request) -> str:
    """FastAPI helper — resolve the address of the current request."""
    peer = request.client.host if request.client else None
    return resolve_client_address(request.headers, peer)


def is_address_allowed(address: str, allowed: Iterable[str]) -> bool:
    allowed_set = {normalize_address(a) for a in allowed}
    return address in allowed_set
