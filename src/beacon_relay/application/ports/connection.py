"""Port describing a live subscriber connection."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

CloseHandler = Callable[[], None]


class SubscriberConnection(Protocol):
    """Message-oriented channel to exactly one remote subscriber."""

    @property
    def closed(self) -> bool:
        """Return ``True`` once the connection can no longer deliver messages."""

    async def send_text(self, payload: str) -> None:
        """Send one text message to the subscriber."""

    async def close(self, code: int, reason: str) -> None:
        """Close the connection with ``code``/``reason``; closing twice is a no-op.

        The connection must report ``closed`` and run its close handlers
        before the first suspension point.
        """

    def add_close_handler(self, handler: CloseHandler) -> None:
        """Register ``handler`` to run exactly once when the connection closes."""


__all__ = ["CloseHandler", "SubscriberConnection"]
