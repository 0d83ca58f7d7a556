from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from faire_sync.errors import Err, Ok, RecordError, Result
from faire_sync.metrics import faire_record_errors_total, faire_records_reconciled_total
from faire_sync.models import FaireBase

logger = logging.getLogger(__name__)

# Never overwritten by reconciliation
_PROTECTED_FIELDS = frozenset({"id", "created_at"})


def reconcile(
    session: Session,
    model: type[FaireBase],
    natural_key: dict[str, Any],
    fields: dict[str, Any],
    synced_at: datetime,
    entity_type: str | None = None,
) -> Result[uuid.UUID]:
    """
    Upsert one row by its natural key.

    Runs inside a SAVEPOINT so a failing record rolls back alone and the
    surrounding store transaction keeps going. Failures come back as
    ``Err(RecordError)``; nothing is raised for record-level problems.
    """
    entity_type = entity_type or model.__tablename__
    values = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS and k not in natural_key}

    try:
        with session.begin_nested():
            row = session.scalars(select(model).filter_by(**natural_key)).one_or_none()
            if row is None:
                row = model(**natural_key, **values, last_synced_at=synced_at)
                session.add(row)
            else:
                changed = {name: value for name, value in values.items() if getattr(row, name) != value}
                if changed or "updated_at" not in model.__table__.c:
                    for name, value in changed.items():
                        setattr(row, name, value)
                    row.last_synced_at = synced_at
                else:
                    _touch_synced_at(session, model, row, synced_at)
            session.flush()
            local_id = row.id
    except (SQLAlchemyError, ValueError, TypeError) as e:
        logger.warning(f"[RECONCILE] {entity_type} {natural_key} failed: {e}")
        faire_record_errors_total.labels(entity_type=entity_type).inc()
        return Err(RecordError(entity_type, _printable(natural_key), _first_line(e)))

    faire_records_reconciled_total.labels(entity_type=entity_type).inc()
    return Ok(local_id)


def _touch_synced_at(session: Session, model: type[FaireBase], row: FaireBase, synced_at: datetime) -> None:
    # updated_at is set to itself so its onupdate default does not fire
    session.execute(
        update(model)
        .where(model.id == row.id)
        .values(last_synced_at=synced_at, updated_at=model.updated_at)
        .execution_options(synchronize_session=False)
    )
    set_committed_value(row, "last_synced_at", synced_at)


def _printable(natural_key: dict[str, Any]) -> dict[str, Any]:
    return {k: str(v) if isinstance(v, uuid.UUID) else v for k, v in natural_key.items()}


def _first_line(e: Exception) -> str:
    text = str(e).strip()
    return text.splitlines()[0] if text else type(e).__name__
