"""Scoped transactions: commit on normal exit, roll back on any error, store failures become ``Unavailable``."""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.core.config import SWAP_LOCK_TIMEOUT_MS
from app.core.errors import Unavailable

logger = logging.getLogger(__name__)

STORE_ERRORS = (OperationalError, PoolTimeoutError)


def _apply_lock_timeout(db: Session, timeout_ms: int) -> Optional[str]:
    """Bound lock waits for the current transaction; returns the statement that undoes it, if one is needed."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        db.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))
    elif dialect in {"mysql", "mariadb"}:
        # No transaction-scoped form exists, so the pooled connection gets its old value back on exit.
        previous = db.execute(text("SELECT @@SESSION.innodb_lock_wait_timeout")).scalar()
        seconds = max(1, int(timeout_ms) // 1000)
        db.execute(text(f"SET SESSION innodb_lock_wait_timeout = {seconds}"))
        return f"SET SESSION innodb_lock_wait_timeout = {int(previous)}"
    # sqlite: bounded by the connection busy timeout set on the engine.
    return None


@contextmanager
def store_guard(operation: str) -> Iterator[None]:
    """Translate store failures raised by read-only paths into ``Unavailable``."""
    try:
        yield
    except STORE_ERRORS as exc:
        logger.warning("Store unavailable during %s: %s", operation, exc)
        raise Unavailable(f"Data store unavailable during {operation}") from exc


@contextmanager
def transaction(db: Session, operation: str = "transaction", timeout_ms: int = SWAP_LOCK_TIMEOUT_MS) -> Iterator[Session]:
    restore = None
    try:
        with store_guard(operation):
            restore = _apply_lock_timeout(db, timeout_ms)
            yield db
            if restore is not None:
                db.execute(text(restore))
                restore = None
            db.commit()
    except BaseException:
        if restore is not None:
            try:
                db.execute(text(restore))
            except STORE_ERRORS:
                logger.warning("Could not restore lock timeout after failed %s", operation)
        db.rollback()
        raise
