"""Requester metadata extracted from beacon requests."""

from __future__ import annotations

from fastapi.requests import HTTPConnection

from beacon_relay.domain.notification import UNKNOWN_CLIENT, NotificationEvent, NotificationTarget

FORWARDED_FOR_HEADER = "x-forwarded-for"


def requester_address(connection: HTTPConnection, *, trust_forwarded_for: bool = False) -> str:
    """Return the best-known originating address of the request.

    ``X-Forwarded-For`` is client-controlled; it is only honoured when the
    relay sits behind a proxy that overwrites it.
    """
    if trust_forwarded_for:
        forwarded = connection.headers.get(FORWARDED_FOR_HEADER, "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if connection.client is not None and connection.client.host:
        return connection.client.host
    return UNKNOWN_CLIENT


def requester_client(connection: HTTPConnection) -> str:
    return connection.headers.get("user-agent") or UNKNOWN_CLIENT


def build_event(
    connection: HTTPConnection,
    *,
    token: str,
    target: NotificationTarget,
    trust_forwarded_for: bool = False,
) -> NotificationEvent:
    return NotificationEvent(
        token=token,
        target=target,
        address=requester_address(connection, trust_forwarded_for=trust_forwarded_for),
        client=requester_client(connection),
    )


def raw_request_target(connection: HTTPConnection) -> tuple[str, str]:
    """Return the undecoded path and query string from the ASGI scope."""
    scope = connection.scope
    raw_path = scope.get("raw_path")
    # Some ASGI servers leave the query string on raw_path.
    path = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else scope.get("path", "/")
    query = scope.get("query_string", b"").decode("latin-1")
    return path, query


__all__ = [
    "FORWARDED_FOR_HEADER",
    "build_event",
    "raw_request_target",
    "requester_address",
    "requester_client",
]
