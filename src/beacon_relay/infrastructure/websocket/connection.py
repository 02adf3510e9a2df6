"""Starlette WebSocket adapter for the subscriber connection port."""

from __future__ import annotations

import logging

from fastapi import WebSocket, WebSocketDisconnect

from beacon_relay.application.ports.connection import CloseHandler, SubscriberConnection

logger = logging.getLogger("beacon_relay.websocket")


class WebSocketConnection(SubscriberConnection):
    """Wraps an accepted WebSocket; close handlers run once, on the first close."""

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._closed = False
        self._handlers: list[CloseHandler] = []

    @property
    def closed(self) -> bool:
        return self._closed

    async def send_text(self, payload: str) -> None:
        if self._closed:
            raise ConnectionError("websocket is closed")
        try:
            await self._websocket.send_text(payload)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            self._finalize()
            raise ConnectionError(f"websocket send failed: {exc}") from exc

    async def close(self, code: int, reason: str) -> None:
        if self._closed:
            return
        self._finalize()
        try:
            await self._websocket.close(code=code, reason=reason)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.debug("websocket already gone on close", extra={"data": {"error": str(exc)}})

    def add_close_handler(self, handler: CloseHandler) -> None:
        if self._closed:
            handler()
            return
        self._handlers.append(handler)

    async def serve(self) -> None:
        """Consume inbound frames until the peer disconnects, then finalize."""
        try:
            while not self._closed:
                message = await self._websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.debug("websocket receive ended", extra={"data": {"error": str(exc)}})
        finally:
            self._finalize()

    def _finalize(self) -> None:
        if self._closed:
            return
        self._closed = True
        handlers, self._handlers = self._handlers, []
        for handler in handlers:
            try:
                handler()
            except Exception:  # pragma: no cover - handlers are internal callbacks
                logger.exception("websocket close handler failed")


__all__ = ["WebSocketConnection"]
