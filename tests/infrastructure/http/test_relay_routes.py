from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from starlette.testclient import WebSocketDenialResponse
from fastapi import WebSocketDisconnect

from beacon_relay.application.ports.notifier import NotifierPort
from beacon_relay.application.subscriptions import (
    EVICTION_CLOSE_CODE,
    EVICTION_CLOSE_REASON,
    SHUTDOWN_CLOSE_CODE,
)
from beacon_relay.domain.pixel import PIXEL_PNG
from beacon_relay.infrastructure.broadcast.redis_pubsub import RedisNotifier
from beacon_relay.infrastructure.mta_sts import MtaStsClient
from beacon_relay.runtime.app import create_app
from beacon_relay.runtime.bootstrap import RuntimeContext, build_runtime
from beacon_relay.runtime.settings import Settings
from tests.fixtures.fakes import FakeRedis, HangingNotifier, RecordingNotifier


def _plain_policy(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="version: STSv1", headers={"Content-Type": "text/plain"})


def _runtime(handler=_plain_policy, notifier: NotifierPort | None = None) -> RuntimeContext:
    transport = httpx.MockTransport(handler)
    return build_runtime(
        Settings(),
        notifier=notifier,
        mta_sts=MtaStsClient(client=httpx.AsyncClient(transport=transport)),
    )


def test_image_beacon_serves_pixel_and_notifies() -> None:
    notifier = RecordingNotifier()
    runtime = _runtime(notifier=notifier)

    with TestClient(create_app(runtime)) as client:
        response = client.get("/abc.png", headers={"User-Agent": "Mail/1.0"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content == PIXEL_PNG
    assert len(notifier.published) == 1
    event = notifier.published[0]
    assert (event.token, event.target.value, event.client) == ("abc", "Image", "Mail/1.0")


def test_redirect_beacon_redirects_to_decoded_link() -> None:
    notifier = RecordingNotifier()

    with TestClient(create_app(_runtime(notifier=notifier))) as client:
        response = client.get("/abc/https%3A%2F%2Fexample.com", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "https://example.com"
    assert [event.target.value for event in notifier.published] == ["Link"]


def test_redirect_location_escapes_non_ascii_characters() -> None:
    with TestClient(create_app(_runtime())) as client:
        response = client.get("/abc/https%3A%2F%2Fexample.com%2F%C3%A9", follow_redirects=False)

    assert response.status_code == 307
    assert response.headers["location"] == "https://example.com/%C3%A9"


@pytest.mark.parametrize("path", ["/", "/abc", "/abc!/x", "/abc!.png", "/favicon.ico", "/mta-sts.txt"])
def test_unknown_paths_are_not_found(path: str) -> None:
    notifier = RecordingNotifier()

    with TestClient(create_app(_runtime(notifier=notifier))) as client:
        response = client.get(path, follow_redirects=False)

    assert response.status_code == 404
    assert notifier.published == []


def test_non_get_beacon_is_not_found() -> None:
    with TestClient(create_app(_runtime())) as client:
        response = client.post("/abc.png")

    assert response.status_code == 404


@pytest.mark.parametrize("path", ["/abc.png", "/abc!/x", "/abc!", "/"])
def test_subscribe_with_invalid_token_is_denied(path: str) -> None:
    with TestClient(create_app(_runtime())) as client:
        with pytest.raises(WebSocketDenialResponse) as excinfo:
            with client.websocket_connect(path):
                pass

    assert excinfo.value.status_code == 404


def test_subscriber_receives_image_notification() -> None:
    with TestClient(create_app(_runtime())) as client:
        with client.websocket_connect("/abc") as websocket:
            client.get("/abc.png", headers={"User-Agent": "Mail/1.0"})
            message = websocket.receive_text()

    assert json.loads(message) == {"target": "Image", "address": "testclient", "client": "Mail/1.0"}


def test_subscriber_receives_link_notification() -> None:
    with TestClient(create_app(_runtime())) as client:
        with client.websocket_connect("/abc") as websocket:
            client.get("/abc/https%3A%2F%2Fexample.com", follow_redirects=False)
            message = json.loads(websocket.receive_text())

    assert message["target"] == "Link"


def test_new_subscriber_evicts_previous_owner() -> None:
    with TestClient(create_app(_runtime())) as client:
        with client.websocket_connect("/abc") as first:
            with client.websocket_connect("/abc") as second:
                with pytest.raises(WebSocketDisconnect) as excinfo:
                    first.receive_text()

                client.get("/abc.png")
                message = json.loads(second.receive_text())

    assert excinfo.value.code == EVICTION_CLOSE_CODE
    assert excinfo.value.reason == EVICTION_CLOSE_REASON
    assert message["target"] == "Image"


def test_disconnected_subscriber_is_unregistered() -> None:
    runtime = _runtime()

    with TestClient(create_app(runtime)) as client:
        with client.websocket_connect("/abc"):
            assert runtime.registry.tokens() == ("abc",)
        assert runtime.registry.tokens() == ()


def test_shutdown_closes_open_subscribers() -> None:
    runtime = _runtime()

    with TestClient(create_app(runtime)) as client:
        with client.websocket_connect("/abc") as websocket:
            client.portal.call(runtime.subscriptions.close_all)
            with pytest.raises(WebSocketDisconnect) as excinfo:
                websocket.receive_text()

    assert excinfo.value.code == SHUTDOWN_CLOSE_CODE


def test_forwarded_for_is_used_only_when_trusted(monkeypatch) -> None:
    monkeypatch.setenv("BEACON_RELAY_TRUST_FORWARDED_FOR", "true")
    notifier = RecordingNotifier()
    runtime = _runtime(notifier=notifier)

    with TestClient(create_app(runtime)) as client:
        client.get("/abc.png", headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

    assert notifier.published[0].address == "203.0.113.9"


def test_redis_backed_relay_delivers_through_the_channel() -> None:
    broker = FakeRedis()
    runtime = _runtime(notifier=RedisNotifier(broker, channel="relay"))

    with TestClient(create_app(runtime)) as client:
        with client.websocket_connect("/abc") as websocket:
            client.get("/abc.png")
            message = json.loads(websocket.receive_text())

    assert message["target"] == "Image"
    assert [channel for channel, _ in broker.published] == ["relay"]
    assert broker.closed is True


def test_mta_sts_passthrough_mirrors_plain_text_policy() -> None:
    with TestClient(create_app(_runtime())) as client:
        response = client.get("/mta-sts.txt?domain=example.com")

    assert response.status_code == 200
    assert response.text == "version: STSv1"
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["content-disposition"] == "inline"


def test_mta_sts_passthrough_rejects_wrong_content_type(caplog) -> None:
    def html(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html></html>", headers={"Content-Type": "text/html"})

    with TestClient(create_app(_runtime(handler=html))) as client:
        response = client.get("/mta-sts.txt?domain=example.com")

    assert response.status_code == 404
    assert response.headers["access-control-allow-origin"] == "*"
    assert any(
        "An error occurred when fetching the MTA-STS file for example.com" in record.getMessage()
        for record in caplog.records
    )


def test_beacon_response_does_not_wait_for_publish(monkeypatch) -> None:
    monkeypatch.setenv("BEACON_RELAY_PUBLISH_TIMEOUT_SECONDS", "0.5")
    runtime = _runtime(notifier=HangingNotifier())

    with TestClient(create_app(runtime)) as client:
        response = client.get("/abc.png")

        assert response.status_code == 200
        assert runtime.dispatcher.pending == 1


def test_beacon_on_one_instance_reaches_subscriber_on_another() -> None:
    broker = FakeRedis()
    instance_a = _runtime(notifier=RedisNotifier(broker, channel="relay"))
    instance_b = _runtime(notifier=RedisNotifier(broker, channel="relay"))

    with TestClient(create_app(instance_a)) as client_a, TestClient(create_app(instance_b)) as client_b:
        with client_b.websocket_connect("/abc") as websocket:
            client_a.get("/abc.png", headers={"User-Agent": "first"})
            first = json.loads(websocket.receive_text())
            client_a.get(
                "/abc/https%3A%2F%2Fexample.com",
                headers={"User-Agent": "second"},
                follow_redirects=False,
            )
            # The Link event arriving next shows the Image event was delivered once.
            second = json.loads(websocket.receive_text())

            assert instance_a.registry.tokens() == ()
            assert instance_b.registry.tokens() == ("abc",)

    assert first == {"target": "Image", "address": "testclient", "client": "first"}
    assert second == {"target": "Link", "address": "testclient", "client": "second"}
    assert len(broker.published) == 2
