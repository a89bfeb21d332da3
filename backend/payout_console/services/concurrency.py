# Overview: Transaction helpers shared by the write paths.

from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..errors import PersistenceError
from ..extensions import db
from ..models import LedgerClock

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def next_change_seq() -> int:
    """
    Tick the ledger clock inside the current transaction.

    Other writers block on the clock row until this transaction ends, so
    a poller that has seen tick N has already seen every commit below N.
    """
    ticked = db.session.execute(
        update(LedgerClock).where(LedgerClock.id == 1).values(seq=LedgerClock.seq + 1)
    )
    if ticked.rowcount == 0:
        db.session.add(LedgerClock(id=1, seq=1))
        db.session.flush()
        return 1
    return db.session.execute(select(LedgerClock.seq).where(LedgerClock.id == 1)).scalar_one()


def commit_or_raise(message: str, details: dict | None = None) -> None:
    """
    Commit the current unit of work as one transaction.

    Any store failure rolls the whole transaction back and surfaces as
    PersistenceError. Lock waits are bounded by the engine's timeout
    (DB_LOCK_TIMEOUT_SECONDS), which ends in OperationalError here.
    """
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Commit failed: %s", message)
        raise PersistenceError(
            message,
            details=details,
            retryable=isinstance(exc, OperationalError),
        ) from exc
