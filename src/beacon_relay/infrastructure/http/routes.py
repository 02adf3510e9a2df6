"""HTTP and WebSocket route definitions for the relay."""

from __future__ import annotations

import logging
import string
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import quote

from fastapi import Depends, FastAPI, Request, WebSocket
from fastapi.responses import Response

from beacon_relay.application.notify import NotificationDispatcher
from beacon_relay.application.routing import Route, RouteKind, classify, request_target
from beacon_relay.application.subscriptions import SubscriptionManager
from beacon_relay.domain.exceptions import MtaStsFetchError
from beacon_relay.domain.notification import NotificationTarget
from beacon_relay.domain.pixel import PIXEL_CONTENT_TYPE, PIXEL_PNG
from beacon_relay.infrastructure.http.requester import build_event, raw_request_target
from beacon_relay.infrastructure.mta_sts import MtaStsClient
from beacon_relay.infrastructure.websocket.connection import WebSocketConnection

logger = logging.getLogger("beacon_relay.http")

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

_HTTP_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
_LOCATION_SAFE = string.punctuation


@dataclass(frozen=True)
class RelayRouteDeps:
    subscriptions: SubscriptionManager
    dispatcher: NotificationDispatcher
    mta_sts: MtaStsClient
    trust_forwarded_for: bool = False


def add_relay_routes(app: FastAPI, dependency_provider: Callable[[], RelayRouteDeps]) -> None:
    def get_dependencies() -> RelayRouteDeps:
        return dependency_provider()

    @app.websocket("/{path:path}")
    async def subscribe(
        websocket: WebSocket,
        path: str,
        deps: RelayRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> None:
        route = classify(request_target(*raw_request_target(websocket)), upgrade=True)
        if route.kind is not RouteKind.SUBSCRIBE or route.token is None:
            logger.info("subscription rejected", extra={"data": {"path": path}})
            await _deny_upgrade(websocket)
            return

        await websocket.accept()
        connection = WebSocketConnection(websocket)
        await deps.subscriptions.subscribe(route.token, connection)
        await connection.serve()

    @app.api_route("/{path:path}", methods=_HTTP_METHODS, include_in_schema=False)
    async def dispatch(
        request: Request,
        path: str,
        deps: RelayRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> Response:
        route = classify(request_target(*raw_request_target(request)), method=request.method)
        if route.kind is RouteKind.IMAGE_BEACON:
            _notify(request, route, NotificationTarget.IMAGE, deps)
            return Response(content=PIXEL_PNG, media_type=PIXEL_CONTENT_TYPE)
        if route.kind is RouteKind.REDIRECT_BEACON:
            _notify(request, route, NotificationTarget.LINK, deps)
            return Response(status_code=307, headers={"Location": _location(route.link or "")})
        if route.kind is RouteKind.MTA_STS and route.domain is not None:
            return await _pass_through_mta_sts(route.domain, deps.mta_sts)
        return Response(status_code=404)


# --- Helpers ---


def _notify(request: Request, route: Route, target: NotificationTarget, deps: RelayRouteDeps) -> None:
    if route.token is None:
        return
    event = build_event(
        request,
        token=route.token,
        target=target,
        trust_forwarded_for=deps.trust_forwarded_for,
    )
    deps.dispatcher.dispatch(event)


async def _pass_through_mta_sts(domain: str, client: MtaStsClient) -> Response:
    try:
        policy = await client.fetch(domain)
    except MtaStsFetchError as exc:
        logger.warning("An error occurred when fetching the MTA-STS file for %s: %s", domain, exc)
        return Response(status_code=404, headers=CORS_HEADERS)
    return Response(
        content=policy.body,
        status_code=policy.status_code,
        headers={
            "Content-Type": "text/plain",
            "Content-Disposition": "inline",
            **CORS_HEADERS,
        },
    )


async def _deny_upgrade(websocket: WebSocket) -> None:
    try:
        await websocket.send_denial_response(Response(status_code=404))
    except RuntimeError:
        # Server without the denial-response extension; starlette answers 403.
        await websocket.close()


def _location(link: str) -> str:
    """Keep the decoded link as-is unless it holds bytes a header cannot carry."""
    if all(0x21 <= ord(char) <= 0x7E for char in link):
        return link
    return quote(link, safe=_LOCATION_SAFE)


__all__ = ["CORS_HEADERS", "RelayRouteDeps", "add_relay_routes"]
