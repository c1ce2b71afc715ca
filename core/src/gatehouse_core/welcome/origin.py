from __future__ import annotations

import ipaddress
import logging
import socket
from collections.abc import Iterable

from gatehouse_core.errors import HostResolutionError
from gatehouse_core.welcome.context import RequestContext

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address


def resolve_address(host: str) -> IPAddress:
    """Resolve an address literal or host name to an IP address.

    IPv4-mapped IPv6 addresses are unwrapped to their IPv4 form.
    """

    raw = host.strip()
    if raw.startswith("[") and raw.endswith("]"):
        raw = raw[1:-1]
    raw = raw.split("%", 1)[0]

    try:
        addr = ipaddress.ip_address(raw)
    except ValueError:
        try:
            infos = socket.getaddrinfo(raw, None)
        except (socket.gaierror, UnicodeError) as exc:
            raise HostResolutionError(f"Cannot resolve host {host!r}: {exc}") from exc
        if not infos:
            raise HostResolutionError(f"Cannot resolve host {host!r}")
        addr = ipaddress.ip_address(str(infos[0][4][0]).split("%", 1)[0])

    if isinstance(addr, ipaddress.IPv6Address) and addr.ipv4_mapped is not None:
        return addr.ipv4_mapped
    return addr


def is_local_address(addr: IPAddress) -> bool:
    return addr.is_loopback or addr.is_unspecified


def is_local(
    remote_address: str | None,
    local_address: str | None,
    forwarding_header_present: bool,
) -> bool:
    """Whether a request counts as coming from the server host itself.

    Both ends must be loopback or wildcard addresses and no proxy may have
    forwarded the request. A reverse proxy on the same host connects from
    127.0.0.1, so the forwarding header is what tells such traffic apart.
    Missing addresses (e.g. unix sockets) are never local.
    """

    if remote_address is None or local_address is None:
        logger.debug(
            "Origin check without addresses (remote=%s, local=%s); treating as non-local",
            remote_address,
            local_address,
        )
        return False

    remote = resolve_address(remote_address)
    local = resolve_address(local_address)
    logger.debug(
        "Origin check. Remote address: %s, Local address: %s, forwarded: %s",
        remote,
        local,
        forwarding_header_present,
    )
    return is_local_address(remote) and is_local_address(local) and not forwarding_header_present


class OriginClassifier:
    def __init__(self, forwarding_headers: Iterable[str]) -> None:
        self.forwarding_headers = tuple(forwarding_headers)

    def is_forwarded(self, ctx: RequestContext) -> bool:
        return any(ctx.has_header(name) for name in self.forwarding_headers)

    def is_local(self, ctx: RequestContext) -> bool:
        return is_local(ctx.remote_address, ctx.local_address, self.is_forwarded(ctx))
