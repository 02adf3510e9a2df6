"""Use cases for claiming tokens and pushing notifications to subscribers."""

from __future__ import annotations

import logging

from beacon_relay.application.ports.connection import SubscriberConnection
from beacon_relay.application.ports.registry import ConnectionRegistryPort
from beacon_relay.domain.notification import NotificationEvent, ensure_token

logger = logging.getLogger("beacon_relay.subscriptions")

# 4000-4999 is reserved for applications by RFC 6455.
EVICTION_CLOSE_CODE = 4000
EVICTION_CLOSE_REASON = "Another client subscribed to this token."

SHUTDOWN_CLOSE_CODE = 1001
SHUTDOWN_CLOSE_REASON = "Relay shutting down."


class SubscriptionManager:
    """Owns the subscribe / unsubscribe / deliver lifecycle of local connections."""

    def __init__(self, registry: ConnectionRegistryPort) -> None:
        self._registry = registry

    async def subscribe(self, token: str, connection: SubscriberConnection) -> None:
        """Make ``connection`` the owner of ``token``, evicting the previous owner."""
        ensure_token(token)
        previous = self._registry.register(token, connection)
        connection.add_close_handler(lambda: self.unsubscribe(token, connection))
        # No suspension point between the swap and close(), which marks the
        # displaced connection closed before it yields.
        if previous is not None:
            await previous.close(EVICTION_CLOSE_CODE, EVICTION_CLOSE_REASON)
        logger.info(
            "subscriber registered",
            extra={"data": {"token": token, "evicted": previous is not None}},
        )

    def unsubscribe(self, token: str, connection: SubscriberConnection) -> None:
        if self._registry.unregister(token, connection):
            logger.info("subscriber unregistered", extra={"data": {"token": token}})

    async def deliver(self, connection: SubscriberConnection, payload: str) -> bool:
        """Send ``payload`` best-effort; return whether the send went through."""
        if connection.closed:
            return False
        try:
            await connection.send_text(payload)
        except (OSError, RuntimeError) as exc:
            logger.debug("delivery to closed subscriber dropped", extra={"data": {"error": str(exc)}})
            return False
        return True

    async def handle_event(self, event: NotificationEvent) -> None:
        """Receive handler for the notifier: deliver to the local owner, if any."""
        connection = self._registry.lookup(event.token)
        if connection is None:
            return
        delivered = await self.deliver(connection, event.to_message())
        logger.info(
            "notification delivered" if delivered else "notification dropped",
            extra={"data": {"token": event.token, "target": event.target.value}},
        )

    async def close_all(self) -> int:
        """Close every local connection for shutdown and return how many were open."""
        entries = self._registry.drain()
        for _token, connection in entries:
            await connection.close(SHUTDOWN_CLOSE_CODE, SHUTDOWN_CLOSE_REASON)
        return len(entries)


__all__ = [
    "EVICTION_CLOSE_CODE",
    "EVICTION_CLOSE_REASON",
    "SHUTDOWN_CLOSE_CODE",
    "SHUTDOWN_CLOSE_REASON",
    "SubscriptionManager",
]
