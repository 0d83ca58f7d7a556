from sqlalchemy import select
from sqlalchemy.orm import Session

from faire_sync.models import FaireStore, FaireSyncLog


def list_sync_logs(session: Session, store_code: str | None = None, limit: int = 50) -> list[tuple[FaireSyncLog, str]]:
    """Most recent sync runs first, each paired with its store's code."""
    stmt = (
        select(FaireSyncLog, FaireStore.code)
        .join(FaireStore, FaireStore.id == FaireSyncLog.store_id)
        .order_by(FaireSyncLog.started_at.desc())
        .limit(limit)
    )
    if store_code:
        stmt = stmt.where(FaireStore.code == store_code)
    return [(log, code) for log, code in session.execute(stmt).all()]
