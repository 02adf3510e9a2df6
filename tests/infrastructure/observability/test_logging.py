from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from beacon_relay.infrastructure.observability.logging import (
    ExtrasFormatter,
    _sanitize_for_json,
    build_log_config,
)


def _record(data: object | None = None) -> logging.LogRecord:
    record = logging.LogRecord("beacon_relay.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    if data is not None:
        record.__dict__["data"] = data
    return record


def test_formatter_appends_data_payload(monkeypatch) -> None:
    monkeypatch.delenv("BEACON_RELAY_JSON_LOGS", raising=False)
    monkeypatch.delenv("K_SERVICE", raising=False)
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    formatter = ExtrasFormatter("%(levelname)s %(message)s")

    formatted = formatter.format(_record({"token": "abc", "count": 2}))

    assert formatted == 'INFO hello world | data={"count":2,"token":"abc"}'


def test_formatter_emits_json_when_requested(monkeypatch) -> None:
    monkeypatch.setenv("BEACON_RELAY_JSON_LOGS", "1")
    formatter = ExtrasFormatter("%(message)s")

    payload = json.loads(formatter.format(_record({"token": "abc"})))

    assert payload["message"] == "hello world"
    assert payload["severity"] == "INFO"
    assert payload["logger"] == "beacon_relay.test"
    assert payload["data"] == {"token": "abc"}


def test_sanitize_handles_unserializable_values() -> None:
    @dataclass
    class Point:
        x: int

    sanitized = _sanitize_for_json({"blob": b"abc", "point": Point(1), "items": {1, 2}, "other": object})

    assert sanitized["blob"] == "<bytes len=3>"
    assert sanitized["point"] == {"x": 1}
    assert sorted(sanitized["items"]) == [1, 2]
    assert isinstance(sanitized["other"], str)


def test_build_log_config_honours_level_env(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = build_log_config(extra_loggers={"beacon_relay.subscriptions": {"level": "WARNING"}})

    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["beacon_relay.subscriptions"] == {"level": "WARNING"}
    assert config["loggers"]["uvicorn.access"]["propagate"] is False
    assert config["handlers"]["console"]["filters"] == ["otel_context"]
