"""Optimistic-concurrency transaction runner.

Every lifecycle write runs through :func:`run_in_transaction`. The body gets a
fresh session, performs all of its reads, then its writes; the commit is
rejected when a versioned row changed underneath it (``StaleDataError``), when
a concurrent insert claimed the same unique key or when the database reports
a lock/serialization failure (``OperationalError``). The whole body is then
re-run with fresh reads, up to a bounded number of attempts.

Other integrity failures (NOT NULL, foreign key, CHECK) are bugs in the body,
not races, and propagate on the first attempt.

Bodies may run more than once, so they must not perform external side
effects (notifications, reward issuance); callers do those after the runner
returns.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from tradeya.config import get_settings
from tradeya.errors import TransactionConflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_BACKOFF_SECONDS = 0.01

# PostgreSQL: unique_violation, serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"23505", "40001", "40P01"})

# SQLite reports every constraint as SQLITE_CONSTRAINT; only the message tells them apart
UNIQUE_VIOLATION_MARKERS = ("UNIQUE constraint failed", "PRIMARY KEY must be unique")


def _sqlstate(exc: IntegrityError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the integrity error comes from a concurrent insert of the same key."""
    code = _sqlstate(exc)
    if code is not None:
        return code in RETRYABLE_SQLSTATES
    message = str(exc.orig)
    return any(marker in message for marker in UNIQUE_VIOLATION_MARKERS)


def is_conflict(exc: Exception) -> bool:
    """Whether ``exc`` is a concurrent-modification conflict worth retrying."""
    if isinstance(exc, (StaleDataError, OperationalError)):
        return True
    if isinstance(exc, IntegrityError):
        return is_unique_violation(exc)
    return False


async def run_in_transaction(
    session_factory: async_sessionmaker[AsyncSession],
    work: Callable[[AsyncSession], Awaitable[T]],
    *,
    max_attempts: int | None = None,
    name: str = "transaction",
) -> T:
    """Run ``work`` atomically, retrying on concurrent-modification conflicts.

    Domain errors and non-conflict integrity errors raised by ``work`` roll
    the transaction back and propagate unchanged. Raises
    ``TransactionConflict`` once ``max_attempts`` is spent.
    """
    attempts = max_attempts or get_settings().transaction_max_attempts
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        async with session_factory() as session:
            try:
                async with session.begin():
                    return await work(session)
            except (StaleDataError, IntegrityError, OperationalError) as exc:
                if not is_conflict(exc):
                    logger.error("%s failed with non-retryable %s: %s", name, exc.__class__.__name__, exc.orig)
                    raise
                last_error = exc
                logger.info(
                    "%s conflict on attempt %d/%d: %s",
                    name, attempt, attempts, exc.__class__.__name__,
                )
        if attempt < attempts:
            await asyncio.sleep(RETRY_BACKOFF_SECONDS * attempt)

    logger.warning("%s gave up after %d attempts", name, attempts)
    raise TransactionConflict(f"{name} could not commit after {attempts} attempts") from last_error
