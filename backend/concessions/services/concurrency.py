# Overview: Locking and retry helpers shared by every service that mutates ledgers.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import LockTimeoutError
from ..extensions import db

"""
Serialization rules (authoritative)

- Every change to lot quantities (consume, receive, release, adjust, purchase
  create/delete) runs while holding ledger_lock(). Availability is checked and
  lots are decremented inside the same critical section, so two orders can
  never both take the last unit.
- Every session state transition and every order runs while holding
  session_lock(session_id). The session row is re-read under the lock.
- Lock order is ALWAYS session lock first, ledger lock second.
- The commit happens before the lock is released.

These are in-process locks: one server process owns the database. SELECT ...
FOR UPDATE is still applied where it matters so that a row-locking backend
gets the same guarantee across processes.
"""

DEFAULT_LOCK_TIMEOUT_SECONDS = 10.0

_registry_guard = threading.Lock()
_session_locks: dict[int, threading.RLock] = {}
_ledger_lock = threading.RLock()


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def fresh(query):
    """Re-read rows from the database even if they are already in the identity map."""
    return query.populate_existing()


def _lock_timeout() -> float:
    if has_app_context():
        return float(current_app.config.get("LOCK_TIMEOUT_SECONDS", DEFAULT_LOCK_TIMEOUT_SECONDS))
    return DEFAULT_LOCK_TIMEOUT_SECONDS


@contextmanager
def _hold(lock, label: str):
    if not lock.acquire(timeout=_lock_timeout()):
        raise LockTimeoutError(f"Timed out waiting for the {label} lock")
    try:
        yield
    finally:
        lock.release()


def ledger_lock():
    """Re-entrant lock guarding all inventory lot mutation."""
    return _hold(_ledger_lock, "inventory ledger")


def session_lock(session_id: int):
    """Re-entrant lock for one concession session's lifecycle and orders."""
    with _registry_guard:
        lock = _session_locks.get(session_id)
        if lock is None:
            lock = threading.RLock()
            _session_locks[session_id] = lock
    return _hold(lock, f"session {session_id}")


def forget_session_lock(session_id: int) -> None:
    """Drop a session's lock once the session is closed, cancelled or deleted."""
    with _registry_guard:
        _session_locks.pop(session_id, None)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Any other exception rolls the unit of
    work back and propagates unchanged, so callers never see partial writes.
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
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise last_exc
