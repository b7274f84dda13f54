# Overview: Unit-of-work helpers; retry on lock contention and translate storage failures.

from __future__ import annotations

import logging
import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from ..errors import PersistenceError
from ..extensions import db

log = logging.getLogger(__name__)


def _retry_policy(attempts: int | None, backoff_base: float | None) -> tuple[int, float]:
    if attempts is None:
        attempts = current_app.config.get("CHECKOUT_RETRY_ATTEMPTS", 3)
    if backoff_base is None:
        backoff_base = current_app.config.get("CHECKOUT_RETRY_BACKOFF", 0.1)
    return max(1, attempts), backoff_base


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute one unit of work, rolling the session back on every failure.

    - OperationalError (database locked/busy, dropped connection) is retried
      with exponential backoff; when attempts run out it surfaces as
      PersistenceError.
    - Any other SQLAlchemyError surfaces as PersistenceError immediately.
    - Business errors raised by func propagate unchanged after rollback.

    func must be safe to re-run from scratch: it opens, stages and commits
    its own writes.
    """
    attempts, backoff_base = _retry_policy(attempts, backoff_base)

    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                log.error("Unit of work failed after %d attempts: %s", attempts, exc)
                raise PersistenceError(
                    "Storage unavailable, transaction rolled back",
                    details={"attempts": attempts},
                ) from exc
            delay = backoff_base * (2 ** attempt)
            log.warning("Storage busy (attempt %d/%d), retrying in %.2fs", attempt + 1, attempts, delay)
            time.sleep(delay)
        except SQLAlchemyError as exc:
            db.session.rollback()
            log.error("Unit of work failed: %s", exc)
            raise PersistenceError("Storage failure, transaction rolled back") from exc
        except Exception:
            db.session.rollback()
            raise
