"""Fire-and-forget publishing of beacon notifications."""

from __future__ import annotations

import asyncio
import logging

from opentelemetry import trace

from beacon_relay.application.ports.notifier import NotifierPort
from beacon_relay.domain.exceptions import BroadcastError
from beacon_relay.domain.notification import NotificationEvent

logger = logging.getLogger("beacon_relay.notify")
tracer = trace.get_tracer("beacon_relay.notify")

DEFAULT_PUBLISH_TIMEOUT_SECONDS = 2.0


class NotificationDispatcher:
    """Publishes events in the background so beacon responses never wait on delivery.

    Delivery is best-effort: a broadcast substrate that is down or slow only
    costs the notification, never the HTTP response that triggered it.
    """

    def __init__(
        self,
        notifier: NotifierPort,
        *,
        publish_timeout_seconds: float = DEFAULT_PUBLISH_TIMEOUT_SECONDS,
    ) -> None:
        if publish_timeout_seconds <= 0:
            raise ValueError("publish_timeout_seconds must be positive")
        self._notifier = notifier
        self._timeout = publish_timeout_seconds
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, event: NotificationEvent) -> asyncio.Task[None]:
        """Schedule ``event`` for publishing and return immediately."""
        task = asyncio.create_task(self._publish(event), name=f"publish-{event.token}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def aclose(self, *, timeout: float = 5.0) -> None:
        """Wait for in-flight publishes, cancelling any that outlive ``timeout``."""
        pending = tuple(self._pending)
        if not pending:
            return
        _done, stragglers = await asyncio.wait(pending, timeout=timeout)
        for task in stragglers:
            task.cancel()
        if stragglers:
            await asyncio.gather(*stragglers, return_exceptions=True)
            logger.warning("cancelled pending publishes", extra={"data": {"count": len(stragglers)}})

    async def _publish(self, event: NotificationEvent) -> None:
        with tracer.start_as_current_span(
            "beacon.publish",
            attributes={"beacon.token": event.token, "beacon.target": event.target.value},
        ):
            try:
                async with asyncio.timeout(self._timeout):
                    await self._notifier.publish(event)
            except TimeoutError:
                logger.warning(
                    "notification publish timed out",
                    extra={"data": {"token": event.token, "timeout_s": self._timeout}},
                )
            except BroadcastError as exc:
                logger.warning(
                    "notification publish failed",
                    extra={"data": {"token": event.token, "error": str(exc)}},
                )
            except Exception:
                logger.exception("notification publish crashed", extra={"data": {"token": event.token}})


__all__ = ["DEFAULT_PUBLISH_TIMEOUT_SECONDS", "NotificationDispatcher"]
