"""Entrypoint for running the relay under uvicorn."""

from __future__ import annotations

from beacon_relay.infrastructure.observability.logging import configure_logging
from beacon_relay.infrastructure.observability.tracing import configure_tracing, shutdown_tracing
from beacon_relay.runtime.app import create_app
from beacon_relay.runtime.bootstrap import build_runtime
from beacon_relay.runtime.settings import Settings

configure_logging()
configure_tracing(service_name="beacon-relay")
_settings = Settings.load()
_runtime = build_runtime(_settings)

app = create_app(_runtime)


def main() -> None:
    import uvicorn

    config = uvicorn.Config(
        app,
        host=_settings.listen_host,
        port=_settings.port,
        # logging already setup
        log_config=None,
    )
    try:
        uvicorn.Server(config).run()
    finally:
        shutdown_tracing()


__all__ = ["app", "main"]
