from __future__ import annotations

import httpx
import pytest

from beacon_relay.infrastructure.broadcast.local import LocalNotifier
from beacon_relay.infrastructure.broadcast.redis_pubsub import RedisNotifier
from beacon_relay.infrastructure.mta_sts import MtaStsClient
from beacon_relay.runtime.bootstrap import build_notifier, build_runtime
from beacon_relay.runtime.settings import BroadcastSettings, Settings
from tests.fixtures.fakes import FakeConnection, RecordingNotifier

pytestmark = pytest.mark.anyio("asyncio")


def test_build_notifier_defaults_to_local(monkeypatch) -> None:
    monkeypatch.delenv("BEACON_RELAY_BROADCAST", raising=False)

    assert isinstance(build_notifier(BroadcastSettings()), LocalNotifier)


def test_build_notifier_selects_redis(monkeypatch) -> None:
    monkeypatch.setenv("BEACON_RELAY_BROADCAST", "redis")
    monkeypatch.setenv("BEACON_RELAY_CHANNEL", "beacons")

    notifier = build_notifier(BroadcastSettings())

    assert isinstance(notifier, RedisNotifier)
    assert notifier.channel == "beacons"


async def test_runtime_start_and_stop() -> None:
    notifier = RecordingNotifier()
    runtime = build_runtime(
        Settings(),
        notifier=notifier,
        mta_sts=MtaStsClient(client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))),
    )
    deps = runtime.route_deps_provider()
    assert deps.subscriptions is runtime.subscriptions
    assert deps.dispatcher is runtime.dispatcher

    await runtime.start()
    assert notifier.handler == runtime.subscriptions.handle_event

    connection = FakeConnection()
    await runtime.subscriptions.subscribe("abc", connection)
    await runtime.stop()

    assert notifier.closed is True
    assert connection.close_calls == [(1001, "Relay shutting down.")]
    assert len(runtime.registry) == 0
