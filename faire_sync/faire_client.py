from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from faire_sync.errors import FaireTransportError
from faire_sync.metrics import faire_page_fetch_duration_seconds, faire_pages_fetched_total

logger = logging.getLogger(__name__)

ENTITY_TYPES = ("products", "orders")


@dataclass(frozen=True)
class FaireCredentials:
    app_credentials: str
    access_token: str


@dataclass(frozen=True)
class FairePage:
    records: list[dict[str, Any]]
    cursor: str | None


class FaireClient:
    """
    Faire external API v2 client for one store's credentials.

    Fetches exactly one page per call. Retry and pacing belong to the caller.
    """

    def __init__(
        self,
        base_url: str,
        credentials: FaireCredentials,
        page_size: int = 50,
        timeout: httpx.Timeout | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._page_size = page_size
        self._client = httpx.Client(
            timeout=timeout or httpx.Timeout(60.0, connect=10.0),
            transport=transport,
        )

    def __enter__(self) -> "FaireClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _headers(self) -> dict[str, str]:
        return {
            "X-FAIRE-APP-CREDENTIALS": self._credentials.app_credentials,
            "X-FAIRE-OAUTH-ACCESS-TOKEN": self._credentials.access_token,
            "Content-Type": "application/json",
        }

    def fetch_page(self, entity_type: str, cursor: str | None = None) -> FairePage:
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f"Unsupported entity type: {entity_type}")

        params: dict[str, Any] = {"limit": self._page_size}
        if cursor:
            params["cursor"] = cursor

        url = f"{self._base_url}/{entity_type}"
        started = time.monotonic()
        try:
            resp = self._client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            raise FaireTransportError(None, f"{type(e).__name__}: {e}") from e
        finally:
            faire_page_fetch_duration_seconds.labels(entity_type=entity_type).observe(time.monotonic() - started)

        if not resp.is_success:
            logger.debug(f"[FAIRE] GET {entity_type} -> HTTP {resp.status_code}")
            raise FaireTransportError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except ValueError as e:
            raise FaireTransportError(resp.status_code, f"invalid JSON body: {resp.text[:200]}") from e

        if not isinstance(data, dict):
            raise FaireTransportError(resp.status_code, f"unexpected response shape: {type(data).__name__}")

        records = data.get(entity_type) or []
        next_cursor = data.get("cursor") or None
        faire_pages_fetched_total.labels(entity_type=entity_type).inc()
        return FairePage(records=list(records), cursor=next_cursor)
