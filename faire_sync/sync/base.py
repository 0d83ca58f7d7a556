from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from faire_sync.errors import Err, Ok, RecordError, Result
from faire_sync.faire_client import FaireClient
from faire_sync.models import FaireStore
from faire_sync.sync.pagination import PagingPolicy, RunDeadline, drain_pages

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=BaseModel)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_record(schema: type[P], raw: Any, entity_type: str) -> Result[P]:
    """Validate one upstream record; a malformed record becomes a RecordError."""
    raw_id = raw.get("id") if isinstance(raw, dict) else None
    try:
        return Ok(schema.model_validate(raw))
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}" for err in e.errors()[:3]
        )
        return Err(RecordError(entity_type, {"id": raw_id}, f"invalid payload ({details})"))


class StoreSyncPhase:
    """
    Shared plumbing for one store's drain-and-reconcile phase.

    Subclasses implement ``run`` and accumulate into ``self.result``. Records are
    reconciled in the caller's session and committed every ``batch_commit_size``
    top-level records. If ``run`` raises, ``committed_result`` still reports the
    counts up to the last commit and every record error seen so far.
    """

    entity_type: str = ""
    result_type: type = None

    def __init__(
        self,
        session: Session,
        store: FaireStore,
        client: FaireClient,
        policy: PagingPolicy | None = None,
        deadline: RunDeadline | None = None,
        batch_commit_size: int = 200,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.store = store
        self.client = client
        self.policy = policy or PagingPolicy()
        self.deadline = deadline or RunDeadline.none()
        self.batch_commit_size = batch_commit_size
        self.clock = clock
        self._uncommitted = 0
        self.result = self.result_type()
        self._committed = self.result_type()

    def drain(self) -> list[dict[str, Any]]:
        return drain_pages(self.client, self.entity_type, self.policy, self.deadline, label=self.store.name)

    def record_done(self) -> None:
        self._uncommitted += 1
        if self._uncommitted >= self.batch_commit_size:
            self.flush_batch()

    def flush_batch(self) -> None:
        self.session.commit()
        self._uncommitted = 0
        self._committed = replace(self.result, errors=[])

    def committed_result(self):
        return replace(self._committed, fetched=self.result.fetched, errors=list(self.result.errors))
