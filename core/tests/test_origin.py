from __future__ import annotations

import socket

import pytest
from starlette.datastructures import Headers

from gatehouse_core.errors import HostResolutionError
from gatehouse_core.welcome.context import RequestContext
from gatehouse_core.welcome.origin import OriginClassifier, is_local, resolve_address

LOCAL = ["127.0.0.1", "127.0.0.53", "::1", "0.0.0.0", "::", "::ffff:127.0.0.1", "[::1]"]
REMOTE = ["203.0.113.5", "10.0.0.7", "192.168.1.20", "2001:db8::1", "::ffff:203.0.113.5"]


@pytest.mark.parametrize("remote", LOCAL)
@pytest.mark.parametrize("local", LOCAL)
def test_loopback_and_wildcard_pairs_are_local(remote: str, local: str) -> None:
    assert is_local(remote, local, False) is True


@pytest.mark.parametrize("remote", LOCAL + REMOTE)
@pytest.mark.parametrize("local", LOCAL + REMOTE)
def test_forwarding_header_always_disqualifies(remote: str, local: str) -> None:
    assert is_local(remote, local, True) is False


@pytest.mark.parametrize("address", REMOTE)
def test_any_routable_end_is_not_local(address: str) -> None:
    assert is_local(address, "127.0.0.1", False) is False
    assert is_local("127.0.0.1", address, False) is False


def test_missing_addresses_are_not_local() -> None:
    assert is_local(None, "127.0.0.1", False) is False
    assert is_local("127.0.0.1", None, False) is False


def test_host_names_are_resolved(monkeypatch) -> None:
    def _fake_getaddrinfo(host, port, *args, **kwargs):
        assert host == "localhost"
        return [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("127.0.0.1", 0))]

    monkeypatch.setattr(socket, "getaddrinfo", _fake_getaddrinfo)

    assert str(resolve_address("localhost")) == "127.0.0.1"
    assert is_local("localhost", "127.0.0.1", False) is True


def test_unresolvable_host_raises(monkeypatch) -> None:
    def _fail(host, port, *args, **kwargs):
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(socket, "getaddrinfo", _fail)

    with pytest.raises(HostResolutionError):
        is_local("no-such-host.invalid", "127.0.0.1", False)


def _ctx(headers: dict[str, str]) -> RequestContext:
    return RequestContext(
        remote_address="127.0.0.1",
        local_address="127.0.0.1",
        scheme="http",
        path="/",
        base_url="http://localhost/",
        headers=Headers(headers=headers),
        cookies={},
    )


def test_classifier_checks_configured_forwarding_headers() -> None:
    classifier = OriginClassifier(["X-Forwarded-For", "Forwarded"])

    assert classifier.is_local(_ctx({})) is True
    assert classifier.is_local(_ctx({"x-forwarded-for": "203.0.113.5"})) is False
    assert classifier.is_local(_ctx({"forwarded": "for=203.0.113.5"})) is False
    # Headers outside the configured set do not matter.
    assert classifier.is_local(_ctx({"x-real-ip": "203.0.113.5"})) is True
