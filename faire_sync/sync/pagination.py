from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from faire_sync.errors import FaireTransportError, SyncDeadlineExceeded
from faire_sync.faire_client import FaireClient, FairePage
from faire_sync.settings import Settings

logger = logging.getLogger(__name__)


class RunDeadline:
    """Cooperative per-run deadline, checked between pages and records."""

    def __init__(self, timeout_seconds: float = 0, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = clock() + timeout_seconds if timeout_seconds else None

    @classmethod
    def none(cls) -> "RunDeadline":
        return cls(0)

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, where: str) -> None:
        if self.expired():
            raise SyncDeadlineExceeded(f"run deadline exceeded before {where}")


@dataclass(frozen=True)
class PagingPolicy:
    page_delay: float = 0.3
    retry_count: int = 4
    retry_max_wait: float = 30.0
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_settings(cls, settings: Settings, sleep: Callable[[float], None] = time.sleep) -> "PagingPolicy":
        return cls(
            page_delay=settings.faire_page_delay,
            retry_count=settings.faire_retry_count,
            retry_max_wait=settings.faire_retry_max_wait,
            sleep=sleep,
        )


def _is_transient(e: BaseException) -> bool:
    return isinstance(e, FaireTransportError) and e.is_transient


def fetch_page_with_retry(
    client: FaireClient,
    entity_type: str,
    cursor: str | None,
    policy: PagingPolicy,
) -> FairePage:
    """Fetch one page, retrying network errors, 429 and 5xx with exponential backoff."""
    retrying = Retrying(
        stop=stop_after_attempt(policy.retry_count),
        wait=wait_exponential(multiplier=1, min=1, max=policy.retry_max_wait),
        retry=retry_if_exception(_is_transient),
        reraise=True,
        sleep=policy.sleep,
        before_sleep=lambda retry_state: logger.warning(
            f"[SYNC:FAIRE] Retrying {entity_type} page (attempt {retry_state.attempt_number}): "
            f"{retry_state.outcome.exception()}"
        ),
    )
    return retrying(client.fetch_page, entity_type, cursor)


def drain_pages(
    client: FaireClient,
    entity_type: str,
    policy: PagingPolicy,
    deadline: RunDeadline,
    label: str = "",
) -> list[dict[str, Any]]:
    """
    Fetch every page of ``entity_type`` one at a time until no cursor is returned.

    Pages are never fetched in parallel; ``policy.page_delay`` is slept between
    consecutive requests. A transport error that survives the retries propagates.
    """
    records: list[dict[str, Any]] = []
    cursor: str | None = None
    page_num = 1

    while True:
        deadline.check(f"{entity_type} page {page_num}")
        page = fetch_page_with_retry(client, entity_type, cursor, policy)
        logger.info(f"[SYNC:FAIRE] {label} {entity_type} page {page_num}: {len(page.records)} records")

        if not page.records:
            break
        records.extend(page.records)

        if not page.cursor:
            break
        cursor = page.cursor
        page_num += 1
        policy.sleep(policy.page_delay)

    logger.info(f"[SYNC:FAIRE] {label} total {entity_type} fetched: {len(records)}")
    return records
