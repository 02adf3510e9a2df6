"""Domain-specific exception types."""

from __future__ import annotations


class BeaconRelayError(Exception):
    """Base class for relay failures."""


class InvalidTokenError(BeaconRelayError, ValueError):
    """Raised when a token is not a non-empty alphanumeric string."""


class EnvelopeDecodeError(BeaconRelayError, ValueError):
    """Raised when a broadcast envelope cannot be decoded."""


class BroadcastError(BeaconRelayError, RuntimeError):
    """Raised when the cross-instance broadcast substrate is unavailable."""


class MtaStsFetchError(BeaconRelayError, RuntimeError):
    """Raised when an MTA-STS policy file cannot be passed through."""


__all__ = [
    "BeaconRelayError",
    "BroadcastError",
    "EnvelopeDecodeError",
    "InvalidTokenError",
    "MtaStsFetchError",
]
