"""Notification payloads and the cross-instance envelope codec."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from enum import StrEnum

from beacon_relay.domain.exceptions import EnvelopeDecodeError, InvalidTokenError

TOKEN_PATTERN = re.compile(r"[A-Za-z0-9]+")

UNKNOWN_CLIENT = "[unknown]"


def is_valid_token(token: str) -> bool:
    return bool(TOKEN_PATTERN.fullmatch(token))


def ensure_token(token: str) -> str:
    """Return ``token`` unchanged or raise when it is not alphanumeric."""
    if not isinstance(token, str) or not is_valid_token(token):
        raise InvalidTokenError(f"invalid token: {token!r}")
    return token


class NotificationTarget(StrEnum):
    """Kind of beacon that triggered a notification."""

    IMAGE = "Image"
    LINK = "Link"


def _compact(value: object) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


@dataclass(frozen=True, slots=True)
class NotificationEvent:
    """A single beacon hit addressed to the owner of ``token``."""

    token: str
    target: NotificationTarget
    address: str
    client: str = UNKNOWN_CLIENT

    def __post_init__(self) -> None:
        ensure_token(self.token)

    def to_message(self) -> str:
        """Serialize the subscriber-facing message (the event without its token)."""
        return _compact(
            {
                "target": self.target.value,
                "address": self.address,
                "client": self.client,
            }
        )


def encode_envelope(event: NotificationEvent) -> str:
    """Wrap ``event`` for the broadcast channel: ``{"token": ..., "data": "<message>"}``."""
    return _compact({"token": event.token, "data": event.to_message()})


def decode_envelope(raw: str | bytes) -> NotificationEvent:
    """Parse a broadcast envelope back into a :class:`NotificationEvent`."""
    try:
        envelope = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise EnvelopeDecodeError(f"envelope is not valid JSON: {exc}") from exc
    if not isinstance(envelope, dict):
        raise EnvelopeDecodeError("envelope must be a JSON object")

    token = envelope.get("token")
    data = envelope.get("data")
    if not isinstance(token, str) or not is_valid_token(token):
        raise EnvelopeDecodeError(f"envelope token is invalid: {token!r}")
    if not isinstance(data, str):
        raise EnvelopeDecodeError("envelope data must be a JSON string")

    try:
        message = json.loads(data)
    except ValueError as exc:
        raise EnvelopeDecodeError(f"envelope data is not valid JSON: {exc}") from exc
    if not isinstance(message, dict):
        raise EnvelopeDecodeError("envelope data must encode a JSON object")

    try:
        target = NotificationTarget(message.get("target"))
    except ValueError as exc:
        raise EnvelopeDecodeError(f"unknown notification target: {message.get('target')!r}") from exc

    address = message.get("address")
    client = message.get("client", UNKNOWN_CLIENT)
    if not isinstance(address, str) or not isinstance(client, str):
        raise EnvelopeDecodeError("envelope address and client must be strings")

    return NotificationEvent(token=token, target=target, address=address, client=client)


__all__ = [
    "NotificationEvent",
    "NotificationTarget",
    "TOKEN_PATTERN",
    "UNKNOWN_CLIENT",
    "decode_envelope",
    "encode_envelope",
    "ensure_token",
    "is_valid_token",
]
