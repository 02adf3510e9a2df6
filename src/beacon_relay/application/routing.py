"""Classification of inbound requests by the shape of their request target."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from urllib.parse import unquote

SUBSCRIBE_PATH = re.compile(r"/([a-z0-9]+)", re.IGNORECASE | re.ASCII)
IMAGE_PATH = re.compile(r"/([a-zA-Z0-9]+)\.png")
LINK_PATH = re.compile(r"/([a-zA-Z0-9]+)/(.*)")
MTA_STS_PATH = re.compile(
    r"/mta-sts\.txt\?domain="
    r"((?:[a-z0-9](?:[-a-z0-9]{0,61}[a-z0-9])?\.)+[a-z][-a-z0-9]{0,61}[a-z0-9])"
)


class RouteKind(StrEnum):
    SUBSCRIBE = "subscribe"
    IMAGE_BEACON = "image_beacon"
    REDIRECT_BEACON = "redirect_beacon"
    MTA_STS = "mta_sts"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class Route:
    kind: RouteKind
    token: str | None = None
    link: str | None = None
    domain: str | None = None


NOT_FOUND = Route(RouteKind.NOT_FOUND)


def request_target(raw_path: str, query_string: str = "") -> str:
    """Rebuild the undecoded request target (path plus ``?query`` when present)."""
    if query_string:
        return f"{raw_path}?{query_string}"
    return raw_path


def classify(target: str, *, method: str = "GET", upgrade: bool = False) -> Route:
    """Map a raw request target onto the relay action it asks for.

    Rules apply in priority order: WebSocket upgrades either subscribe or are
    rejected; plain GETs may be an image beacon, a redirect beacon or an
    MTA-STS passthrough; everything else is not found.
    """
    if upgrade:
        match = SUBSCRIBE_PATH.fullmatch(target)
        if match is None:
            return NOT_FOUND
        return Route(RouteKind.SUBSCRIBE, token=match.group(1))

    if method.upper() != "GET":
        return NOT_FOUND

    match = IMAGE_PATH.fullmatch(target)
    if match is not None:
        return Route(RouteKind.IMAGE_BEACON, token=match.group(1))

    match = LINK_PATH.fullmatch(target)
    if match is not None:
        return Route(RouteKind.REDIRECT_BEACON, token=match.group(1), link=unquote(match.group(2)))

    match = MTA_STS_PATH.fullmatch(target)
    if match is not None:
        return Route(RouteKind.MTA_STS, domain=match.group(1))

    return NOT_FOUND


__all__ = ["NOT_FOUND", "Route", "RouteKind", "classify", "request_target"]
