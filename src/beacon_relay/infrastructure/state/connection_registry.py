"""In-memory implementation of the connection registry port."""

from __future__ import annotations

from threading import Lock

from beacon_relay.application.ports.connection import SubscriberConnection
from beacon_relay.application.ports.registry import ConnectionRegistryPort


class InMemoryConnectionRegistry(ConnectionRegistryPort):
    """Holds the token owners of this process for its lifetime."""

    def __init__(self) -> None:
        self._connections: dict[str, SubscriberConnection] = {}
        self._lock = Lock()

    def register(self, token: str, connection: SubscriberConnection) -> SubscriberConnection | None:
        with self._lock:
            previous = self._connections.get(token)
            self._connections[token] = connection
        if previous is connection:
            return None
        return previous

    def unregister(self, token: str, connection: SubscriberConnection) -> bool:
        with self._lock:
            if self._connections.get(token) is not connection:
                return False
            del self._connections[token]
            return True

    def lookup(self, token: str) -> SubscriberConnection | None:
        with self._lock:
            return self._connections.get(token)

    def tokens(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(self._connections)

    def drain(self) -> tuple[tuple[str, SubscriberConnection], ...]:
        with self._lock:
            entries = tuple(self._connections.items())
            self._connections.clear()
        return entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)


__all__ = ["InMemoryConnectionRegistry"]
