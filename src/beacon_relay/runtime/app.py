"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from beacon_relay.infrastructure.http.middleware import request_logging_middleware
from beacon_relay.infrastructure.http.routes import add_relay_routes
from beacon_relay.runtime.bootstrap import RuntimeContext


def create_app(runtime: RuntimeContext) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        await runtime.start()
        yield
        await runtime.stop()

    # The relay owns the whole path space, so no docs/openapi routes.
    app = FastAPI(
        title="Beacon Relay",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.middleware("http")(request_logging_middleware)
    add_relay_routes(app, runtime.route_deps_provider)
    return app


__all__ = ["create_app"]
