"""Runtime wiring for the relay."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from beacon_relay.application.notify import NotificationDispatcher
from beacon_relay.application.ports.notifier import NotifierPort
from beacon_relay.application.subscriptions import SubscriptionManager
from beacon_relay.infrastructure.broadcast.local import LocalNotifier
from beacon_relay.infrastructure.broadcast.redis_pubsub import RedisNotifier
from beacon_relay.infrastructure.http.routes import RelayRouteDeps
from beacon_relay.infrastructure.mta_sts import MtaStsClient
from beacon_relay.infrastructure.state.connection_registry import InMemoryConnectionRegistry
from beacon_relay.runtime.settings import BroadcastSettings, Settings

logger = logging.getLogger("beacon_relay.runtime")


@dataclass(frozen=True, slots=True)
class RuntimeContext:
    """Aggregated runtime components for one relay instance."""

    settings: Settings
    registry: InMemoryConnectionRegistry
    notifier: NotifierPort
    subscriptions: SubscriptionManager
    dispatcher: NotificationDispatcher
    mta_sts: MtaStsClient
    route_deps_provider: Callable[[], RelayRouteDeps]

    async def start(self) -> None:
        await self.notifier.start(self.subscriptions.handle_event)

    async def stop(self) -> None:
        await self.dispatcher.aclose()
        closed = await self.subscriptions.close_all()
        await self.notifier.aclose()
        await self.mta_sts.aclose()
        logger.info("relay runtime stopped", extra={"data": {"closed_connections": closed}})


def build_notifier(settings: BroadcastSettings) -> NotifierPort:
    if settings.backend == "redis":
        logger.info("using redis broadcast", extra={"data": {"channel": settings.channel}})
        return RedisNotifier.from_url(
            settings.redis_url_value,
            channel=settings.channel,
            health_check_seconds=settings.redis_health_check_seconds,
            connect_timeout_seconds=settings.redis_connect_timeout_seconds,
        )
    logger.info("using local broadcast (single instance)")
    return LocalNotifier()


def build_runtime(
    settings: Settings | None = None,
    *,
    notifier: NotifierPort | None = None,
    mta_sts: MtaStsClient | None = None,
) -> RuntimeContext:
    """Construct the runtime context shared by the HTTP app."""
    resolved = settings or Settings.load()
    registry = InMemoryConnectionRegistry()
    resolved_notifier = notifier or build_notifier(resolved.broadcast)
    subscriptions = SubscriptionManager(registry)
    dispatcher = NotificationDispatcher(
        resolved_notifier,
        publish_timeout_seconds=resolved.broadcast.publish_timeout_seconds,
    )
    resolved_mta_sts = mta_sts or MtaStsClient(timeout=resolved.http.mta_sts_timeout_seconds)

    route_deps = RelayRouteDeps(
        subscriptions=subscriptions,
        dispatcher=dispatcher,
        mta_sts=resolved_mta_sts,
        trust_forwarded_for=resolved.http.trust_forwarded_for,
    )

    return RuntimeContext(
        settings=resolved,
        registry=registry,
        notifier=resolved_notifier,
        subscriptions=subscriptions,
        dispatcher=dispatcher,
        mta_sts=resolved_mta_sts,
        route_deps_provider=lambda: route_deps,
    )


__all__ = ["RuntimeContext", "build_notifier", "build_runtime"]
