# Overview: Service-layer helpers for row locking, retries and expected-version checks.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..domain.errors import ValidationError, VersionConflict


def lock_for_update(query):
    """
    Apply row-level locking for read-modify-write operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a whole unit of work with retry on database lock failures.

    func must load, change and commit on its own so a retry starts from a clean
    session. Retries on OperationalError (deadlocks, locks) and StaleDataError;
    domain errors propagate on the first attempt.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def parse_expected_version(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("expected_version must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("expected_version must be an integer")


def check_expected_version(row, expected_version) -> None:
    """Reject the write when the caller read an older version of the row."""
    expected = parse_expected_version(expected_version)
    if expected is None:
        return
    if row.version_id != expected:
        raise VersionConflict(row.entity_type, expected, row.version_id)
