"""Serializable transaction runner for reserve/confirm.

Each attempt opens its own session and a SERIALIZABLE transaction. A
serialization failure or deadlock is retried once with a fresh session; a
second conflict is reported to the caller as ``SLOT_TAKEN``. Any other
database error is ``STORE_UNAVAILABLE``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.scheduling.results import ErrorKind, Failure


SERIALIZABLE = "SERIALIZABLE"
DEFAULT_ATTEMPTS = 2
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})
EXCLUSION_VIOLATION_SQLSTATE = "23P01"

logger = logging.getLogger("slotbook.scheduling.transactions")

T = TypeVar("T")


def sqlstate_of(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    return None


def is_serialization_failure(exc: DBAPIError) -> bool:
    return sqlstate_of(exc) in RETRYABLE_SQLSTATES


def run_in_transaction(
    session_factory: Callable[[], Session],
    operation: Callable[[Session], T],
    *,
    name: str,
    isolation_level: str | None = SERIALIZABLE,
    attempts: int = DEFAULT_ATTEMPTS,
) -> T | Failure:
    """Run ``operation`` and commit, whatever it returns.

    Operations return their typed failures instead of raising, so the
    side effects of failure paths (deleting a stale hold) commit too.
    """
    for attempt in range(1, attempts + 1):
        db = session_factory()
        try:
            if isolation_level:
                db.connection(execution_options={"isolation_level": isolation_level})
            result = operation(db)
            db.commit()
            return result
        except DBAPIError as exc:
            db.rollback()
            sqlstate = sqlstate_of(exc)
            if is_serialization_failure(exc):
                logger.info(
                    "%s serialization conflict sqlstate=%s attempt=%s/%s",
                    name,
                    sqlstate,
                    attempt,
                    attempts,
                )
                continue
            if sqlstate == EXCLUSION_VIOLATION_SQLSTATE:
                logger.info("%s rejected by booking overlap constraint", name)
                return Failure.of(ErrorKind.SLOT_TAKEN)
            logger.exception("%s failed against the store", name)
            return Failure.of(ErrorKind.STORE_UNAVAILABLE)
        except SQLAlchemyError:
            db.rollback()
            logger.exception("%s failed against the store", name)
            return Failure.of(ErrorKind.STORE_UNAVAILABLE)
        finally:
            db.close()

    logger.info("%s gave up after %s serialization conflicts", name, attempts)
    return Failure.of(ErrorKind.SLOT_TAKEN, "That time was just claimed by another request.")


def describe_outcome(result: Any) -> str:
    if isinstance(result, Failure):
        return result.kind.value
    return "ok"
