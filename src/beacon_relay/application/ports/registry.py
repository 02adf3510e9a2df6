"""Port describing token ownership bookkeeping."""

from __future__ import annotations

from typing import Protocol

from beacon_relay.application.ports.connection import SubscriberConnection


class ConnectionRegistryPort(Protocol):
    """Maps each token to the single local connection that owns it."""

    def register(self, token: str, connection: SubscriberConnection) -> SubscriberConnection | None:
        """Store ``connection`` under ``token`` and return the displaced owner, if any."""

    def unregister(self, token: str, connection: SubscriberConnection) -> bool:
        """Remove ``token`` only while it still maps to ``connection``."""

    def lookup(self, token: str) -> SubscriberConnection | None:
        """Return the current owner of ``token``."""

    def drain(self) -> tuple[tuple[str, SubscriberConnection], ...]:
        """Remove and return every entry."""


__all__ = ["ConnectionRegistryPort"]
