# Overview: Transaction boundary and conflict retry for every ledger mutation.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the version_id columns catch the race at commit instead.
    """
    return query.with_for_update()


def run_atomically(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Run func() and commit its work as one all-or-nothing transaction.

    - Any exception rolls the session back before propagating, so a failure
      halfway through never leaves a partial write behind.
    - OperationalError (deadlocks, locks) and StaleDataError (optimistic
      version conflict) are retried with exponential backoff; func() runs
      again from scratch against fresh rows.
    - Once attempts are exhausted the conflict surfaces as ConflictError.

    Returns whatever func() returned.
    """
    if attempts is None:
        attempts = current_app.config.get("COMMIT_RETRY_ATTEMPTS", 5)
    if backoff_base is None:
        backoff_base = current_app.config.get("COMMIT_RETRY_BACKOFF", 0.05)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning(
                    "Giving up after %d attempts on concurrent update: %s", attempts, exc
                )
                raise ConflictError(
                    "Concurrent update conflict, please retry",
                    details={"attempts": attempts},
                ) from exc
            current_app.logger.warning(
                "Concurrent update conflict (attempt %d/%d), retrying: %s",
                attempt + 1, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except Exception:
            db.session.rollback()
            raise
