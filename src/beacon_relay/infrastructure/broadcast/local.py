"""Direct-dispatch notifier for single-instance deployments."""

from __future__ import annotations

from beacon_relay.application.ports.notifier import NotificationHandler, NotifierPort
from beacon_relay.domain.notification import NotificationEvent


class LocalNotifier(NotifierPort):
    """Hands every published event straight to this process's handler."""

    def __init__(self) -> None:
        self._handler: NotificationHandler | None = None

    async def start(self, handler: NotificationHandler) -> None:
        self._handler = handler

    async def publish(self, event: NotificationEvent) -> None:
        handler = self._handler
        if handler is None:
            return
        await handler(event)

    async def aclose(self) -> None:
        self._handler = None


__all__ = ["LocalNotifier"]
