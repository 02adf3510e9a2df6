"""Passthrough client for MTA-STS policy files."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from beacon_relay.domain.exceptions import MtaStsFetchError

logger = logging.getLogger("beacon_relay.mta_sts")

DEFAULT_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class MtaStsPolicy:
    status_code: int
    body: bytes


def policy_url(domain: str) -> str:
    return f"https://mta-sts.{domain}/.well-known/mta-sts.txt"


class MtaStsClient:
    """Fetches ``https://mta-sts.<domain>/.well-known/mta-sts.txt`` on behalf of a caller."""

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def fetch(self, domain: str) -> MtaStsPolicy:
        """Return the upstream status and body, or raise ``MtaStsFetchError``.

        Only ``text/plain`` (or unlabelled) responses are passed through; any
        other content type is treated as a failed fetch.
        """
        url = policy_url(domain)
        try:
            response = await self._client.get(
                url,
                headers={"Accept": "text/plain"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise MtaStsFetchError(str(exc) or exc.__class__.__name__) from exc

        logger.debug(
            "mta-sts policy fetched",
            extra={"data": {"url": url, "status_code": response.status_code}},
        )
        content_type = response.headers.get("content-type")
        if content_type is not None and not content_type.startswith("text/plain"):
            raise MtaStsFetchError("Received the wrong content type.")
        return MtaStsPolicy(status_code=response.status_code, body=response.content)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["DEFAULT_TIMEOUT_SECONDS", "MtaStsClient", "MtaStsPolicy", "policy_url"]
