# Overview: Row locking and retry helpers for multi-row mutations.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class ConcurrentUpdateError(Exception):
    """The row changed under us on every attempt; the caller should retry later."""


def lock_for_update(query):
    """
    Apply row-level locking for the read-modify-write of an order.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Run func() and commit, as one transaction.

    Any exception rolls the session back. OperationalError (deadlocks,
    lock timeouts) and StaleDataError (optimistic version mismatch) are
    retried with exponential backoff; func must therefore re-read what it
    needs on every call.

    Once attempts run out a StaleDataError becomes ConcurrentUpdateError
    (409) while an OperationalError is re-raised as is (503).
    """
    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                if isinstance(exc, OperationalError):
                    raise
                raise ConcurrentUpdateError(str(exc)) from exc
            current_app.logger.warning(
                "Concurrent update detected (attempt %s/%s), retrying", attempt + 1, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
