"""Port describing the cross-instance notification broadcast."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

from beacon_relay.domain.notification import NotificationEvent

NotificationHandler = Callable[[NotificationEvent], Awaitable[None]]


class NotifierPort(Protocol):
    """Fan a notification out to every relay instance, the publisher included."""

    async def start(self, handler: NotificationHandler) -> None:
        """Begin delivering received events to ``handler``."""

    async def publish(self, event: NotificationEvent) -> None:
        """Broadcast ``event``; raise ``BroadcastError`` when the substrate is down."""

    async def aclose(self) -> None:
        """Stop receiving and release resources."""


__all__ = ["NotificationHandler", "NotifierPort"]
