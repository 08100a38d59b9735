from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.db.models import Hold
from app.scheduling.results import ErrorKind, Failure, HoldReceipt
from app.scheduling.store import (
    fetch_live_holds,
    fetch_overlapping_bookings,
    find_active_service,
    find_hold,
    is_live,
)
from app.scheduling.timeutils import Clock, ensure_utc, is_aware, utc_now
from app.scheduling.transactions import describe_outcome, run_in_transaction


HOLD_DURATION_MINUTES = 8
HOLD_DURATION = timedelta(minutes=HOLD_DURATION_MINUTES)

logger = logging.getLogger("slotbook.scheduling.holds")


def validate_interval(start: datetime, end: datetime) -> Failure | None:
    if not is_aware(start) or not is_aware(end):
        return Failure.of(ErrorKind.INVALID_INTERVAL, "start and end must include timezone information.")
    if start >= end:
        return Failure.of(ErrorKind.INVALID_INTERVAL, "start must be before end.")
    return None


def reserve_hold_in_transaction(
    db: Session,
    service_id: int,
    start: datetime,
    end: datetime,
    session_id: str,
    now: datetime,
) -> HoldReceipt | Failure:
    if find_active_service(db, service_id) is None:
        return Failure.of(ErrorKind.SERVICE_NOT_FOUND)

    if fetch_overlapping_bookings(db, service_id, start, end):
        return Failure.of(ErrorKind.SLOT_TAKEN)
    if fetch_live_holds(db, service_id, start, end, now):
        return Failure.of(ErrorKind.SLOT_TAKEN)

    hold = Hold(
        id=str(uuid.uuid4()),
        service_id=service_id,
        start_time=start,
        end_time=end,
        session_id=session_id,
        created_at=now,
        expires_at=now + HOLD_DURATION,
    )
    db.add(hold)
    db.flush()

    return HoldReceipt(
        hold_id=hold.id,
        service_id=service_id,
        start=start,
        end=end,
        expires_at=hold.expires_at,
    )


def reserve_hold(
    session_factory: Callable[[], Session],
    service_id: int,
    start: datetime,
    end: datetime,
    session_id: str,
    clock: Clock = utc_now,
) -> HoldReceipt | Failure:
    invalid = validate_interval(start, end)
    if invalid is not None:
        return invalid

    start_utc = ensure_utc(start)
    end_utc = ensure_utc(end)
    result = run_in_transaction(
        session_factory,
        lambda db: reserve_hold_in_transaction(
            db,
            service_id=service_id,
            start=start_utc,
            end=end_utc,
            session_id=session_id,
            now=ensure_utc(clock()),
        ),
        name="reserve_hold",
    )
    logger.info(
        "reserve_hold service_id=%s start=%s end=%s outcome=%s",
        service_id,
        start_utc.isoformat(),
        end_utc.isoformat(),
        describe_outcome(result),
    )
    return result


def release_hold(
    session_factory: Callable[[], Session],
    hold_id: str,
    session_id: str,
) -> bool | Failure:
    """Delete a hold on behalf of the session that owns it."""

    def _release(db: Session) -> bool | Failure:
        hold = find_hold(db, hold_id)
        if hold is None or hold.session_id != session_id:
            return Failure.of(ErrorKind.HOLD_NOT_FOUND)
        db.delete(hold)
        db.flush()
        return True

    return run_in_transaction(session_factory, _release, name="release_hold", isolation_level=None)


def sweep_expired_holds(db: Session, now: datetime | None = None) -> int:
    now = ensure_utc(now or utc_now())
    expired = [
        hold
        for hold in db.query(Hold).filter(Hold.expires_at <= now).all()
        if not is_live(hold, now)
    ]
    for hold in expired:
        db.delete(hold)
    db.commit()
    if expired:
        logger.info("Swept %s expired holds", len(expired))
    return len(expired)
