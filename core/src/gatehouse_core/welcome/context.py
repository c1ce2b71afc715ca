from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from fastapi import Request


@dataclass(frozen=True)
class CookieSpec:
    key: str
    value: str
    path: str
    max_age: int
    secure: bool
    httponly: bool = True


@dataclass
class RequestContext:
    """The parts of an inbound request the welcome gate looks at.

    `response_cookies` collects cookies the gate wants set on whatever response
    is eventually sent, including error responses.
    """

    remote_address: str | None
    local_address: str | None
    scheme: str
    path: str
    base_url: str
    headers: Mapping[str, str]
    cookies: Mapping[str, str]
    response_cookies: list[CookieSpec] = field(default_factory=list)

    @property
    def is_secure(self) -> bool:
        return self.scheme.lower() == "https"

    def has_header(self, name: str) -> bool:
        return self.headers.get(name) is not None


def build_request_context(request: Request) -> RequestContext:
    client = request.client
    server = request.scope.get("server")
    return RequestContext(
        remote_address=client.host if client else None,
        local_address=str(server[0]) if server else None,
        scheme=request.url.scheme,
        path=request.url.path,
        base_url=str(request.base_url),
        headers=request.headers,
        cookies=request.cookies,
    )
