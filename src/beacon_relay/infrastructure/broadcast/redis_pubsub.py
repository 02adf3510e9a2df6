"""Redis pub/sub notifier for multi-instance deployments."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from beacon_relay.application.ports.notifier import NotificationHandler, NotifierPort
from beacon_relay.domain.exceptions import BroadcastError, EnvelopeDecodeError
from beacon_relay.domain.notification import NotificationEvent, decode_envelope, encode_envelope

logger = logging.getLogger("beacon_relay.broadcast")

DEFAULT_CHANNEL = "beacon-relay"
DEFAULT_HEALTH_CHECK_SECONDS = 30.0
DEFAULT_CONNECT_TIMEOUT_SECONDS = 5.0


class RedisNotifier(NotifierPort):
    """Publishes envelopes on one channel that every relay instance subscribes to.

    Redis delivers a message to every subscriber of the channel, the
    publishing instance included, so no separate local dispatch is needed.
    """

    def __init__(
        self,
        client: Redis,
        *,
        channel: str = DEFAULT_CHANNEL,
        reconnect_initial_seconds: float = 0.5,
        reconnect_max_seconds: float = 30.0,
        poll_interval_seconds: float = DEFAULT_HEALTH_CHECK_SECONDS,
        owns_client: bool = True,
    ) -> None:
        if not channel:
            raise ValueError("channel must be provided")
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        self._client = client
        self._channel = channel
        self._reconnect_initial = reconnect_initial_seconds
        self._reconnect_max = reconnect_max_seconds
        self._poll_interval = poll_interval_seconds
        self._owns_client = owns_client
        self._handler: NotificationHandler | None = None
        self._task: asyncio.Task[None] | None = None

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        channel: str = DEFAULT_CHANNEL,
        health_check_seconds: float = DEFAULT_HEALTH_CHECK_SECONDS,
        connect_timeout_seconds: float = DEFAULT_CONNECT_TIMEOUT_SECONDS,
    ) -> RedisNotifier:
        # The listener polls once per health-check interval, so every poll
        # PINGs an idle subscription and a dead socket surfaces as an error.
        client = Redis.from_url(
            url,
            health_check_interval=health_check_seconds,
            socket_connect_timeout=connect_timeout_seconds,
            socket_keepalive=True,
        )
        return cls(client, channel=channel, poll_interval_seconds=health_check_seconds)

    @property
    def channel(self) -> str:
        return self._channel

    async def start(self, handler: NotificationHandler) -> None:
        self._handler = handler
        if self._task is not None and not self._task.done():
            return
        pubsub: PubSub | None = self._client.pubsub(ignore_subscribe_messages=True)
        try:
            await pubsub.subscribe(self._channel)
        except (RedisError, OSError) as exc:
            logger.warning(
                "redis subscribe failed; retrying in background",
                extra={"data": {"channel": self._channel, "error": str(exc)}},
            )
            await _close_quietly(pubsub)
            pubsub = None
        self._task = asyncio.create_task(self._listen(pubsub), name="redis-notifier-listener")
        logger.info("redis notifier started", extra={"data": {"channel": self._channel}})

    async def publish(self, event: NotificationEvent) -> None:
        try:
            await self._client.publish(self._channel, encode_envelope(event))
        except (RedisError, OSError) as exc:
            raise BroadcastError(f"redis publish to {self._channel!r} failed: {exc}") from exc

    async def aclose(self) -> None:
        task = self._task
        self._task = None
        self._handler = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._owns_client:
            await self._client.aclose()

    async def _listen(self, pubsub: PubSub | None) -> None:
        delay = self._reconnect_initial
        while True:
            if pubsub is None:
                pubsub = self._client.pubsub(ignore_subscribe_messages=True)
                try:
                    await pubsub.subscribe(self._channel)
                except (RedisError, OSError) as exc:
                    logger.warning(
                        "redis resubscribe failed",
                        extra={"data": {"channel": self._channel, "error": str(exc), "retry_in_s": delay}},
                    )
                    await _close_quietly(pubsub)
                    pubsub = None
                    await asyncio.sleep(delay)
                    delay = min(delay * 2, self._reconnect_max)
                    continue
                logger.info("redis notifier resubscribed", extra={"data": {"channel": self._channel}})
            try:
                delay = self._reconnect_initial
                while True:
                    message = await pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=self._poll_interval,
                    )
                    if message is not None:
                        await self._on_message(message)
            except (RedisError, OSError) as exc:
                logger.warning(
                    "redis subscription lost",
                    extra={"data": {"channel": self._channel, "error": str(exc), "retry_in_s": delay}},
                )
            finally:
                await _close_quietly(pubsub)
                pubsub = None
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._reconnect_max)

    async def _on_message(self, message: Mapping[str, Any]) -> None:
        if message.get("type") != "message":
            return
        try:
            event = decode_envelope(message["data"])
        except EnvelopeDecodeError as exc:
            logger.warning("discarding malformed envelope", extra={"data": {"error": str(exc)}})
            return
        handler = self._handler
        if handler is None:
            return
        try:
            await handler(event)
        except Exception:
            logger.exception("notification handler failed", extra={"data": {"token": event.token}})


async def _close_quietly(pubsub: PubSub) -> None:
    try:
        await pubsub.aclose()
    except (RedisError, OSError) as exc:
        logger.debug("redis pubsub close failed", extra={"data": {"error": str(exc)}})


__all__ = [
    "DEFAULT_CHANNEL",
    "DEFAULT_CONNECT_TIMEOUT_SECONDS",
    "DEFAULT_HEALTH_CHECK_SECONDS",
    "RedisNotifier",
]
