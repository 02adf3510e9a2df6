"""Configuration for the relay runtime."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from beacon_relay.application.notify import DEFAULT_PUBLISH_TIMEOUT_SECONDS
from beacon_relay.infrastructure.broadcast.redis_pubsub import (
    DEFAULT_CHANNEL,
    DEFAULT_CONNECT_TIMEOUT_SECONDS,
    DEFAULT_HEALTH_CHECK_SECONDS,
)
from beacon_relay.infrastructure.mta_sts import DEFAULT_TIMEOUT_SECONDS

_MODEL_CONFIG = SettingsConfigDict(
    env_prefix="",
    extra="ignore",
    case_sensitive=False,
    frozen=True,
    env_file=".env",
    env_file_encoding="utf-8",
)


class BroadcastSettings(BaseSettings):
    """Selects and configures the cross-instance broadcast substrate."""

    model_config = _MODEL_CONFIG

    backend: Literal["local", "redis"] = Field(default="local", alias="BEACON_RELAY_BROADCAST")
    redis_url: SecretStr = Field(
        default_factory=lambda: SecretStr("redis://127.0.0.1:6379/0"), alias="BEACON_RELAY_REDIS_URL"
    )
    channel: str = Field(default=DEFAULT_CHANNEL, alias="BEACON_RELAY_CHANNEL", min_length=1)
    redis_health_check_seconds: float = Field(
        default=DEFAULT_HEALTH_CHECK_SECONDS,
        alias="BEACON_RELAY_REDIS_HEALTH_CHECK_SECONDS",
        gt=0,
    )
    redis_connect_timeout_seconds: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT_SECONDS,
        alias="BEACON_RELAY_REDIS_CONNECT_TIMEOUT_SECONDS",
        gt=0,
    )
    publish_timeout_seconds: float = Field(
        default=DEFAULT_PUBLISH_TIMEOUT_SECONDS,
        alias="BEACON_RELAY_PUBLISH_TIMEOUT_SECONDS",
        gt=0,
    )

    @property
    def redis_url_value(self) -> str:
        return self.redis_url.get_secret_value()


class HttpSettings(BaseSettings):
    """Request handling knobs."""

    model_config = _MODEL_CONFIG

    # Only enable behind a proxy that overwrites X-Forwarded-For.
    trust_forwarded_for: bool = Field(default=False, alias="BEACON_RELAY_TRUST_FORWARDED_FOR")
    mta_sts_timeout_seconds: float = Field(
        default=DEFAULT_TIMEOUT_SECONDS,
        alias="BEACON_RELAY_MTA_STS_TIMEOUT_SECONDS",
        gt=0,
    )


class Settings(BaseSettings):
    """Relay runtime configuration resolved from the environment."""

    model_config = _MODEL_CONFIG

    # --- Server ---
    listen_host: str = Field(default="0.0.0.0", alias="BEACON_RELAY_HOST")  # noqa: S104
    port: int = Field(default=5000, alias="PORT")

    # --- Component settings ---
    broadcast: BroadcastSettings = Field(default_factory=BroadcastSettings)
    http: HttpSettings = Field(default_factory=HttpSettings)

    # --- Loader ---
    @classmethod
    def load(cls) -> Settings:
        instance = cls()
        logger = logging.getLogger("beacon_relay.settings")
        logger.info("relay settings loaded: %r", instance)
        return instance


__all__ = ["BroadcastSettings", "HttpSettings", "Settings"]
