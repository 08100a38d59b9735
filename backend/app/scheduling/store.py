from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.db.models import Booking, Hold, Service
from app.scheduling.overlap import intervals_overlap, overlap_clause
from app.scheduling.timeutils import ensure_utc


def find_active_service(db: Session, service_id: int) -> Service | None:
    service = db.get(Service, service_id)
    if service is None or not service.is_active:
        return None
    return service


def find_hold(db: Session, hold_id: str) -> Hold | None:
    return db.get(Hold, hold_id)


def find_booking(db: Session, booking_id: str) -> Booking | None:
    return db.get(Booking, booking_id)


def is_live(hold: Hold, now: datetime) -> bool:
    return ensure_utc(hold.expires_at) > ensure_utc(now)


def fetch_overlapping_bookings(
    db: Session,
    service_id: int,
    start: datetime,
    end: datetime,
) -> list[Booking]:
    rows = (
        db.query(Booking)
        .filter(Booking.service_id == service_id)
        .filter(overlap_clause(Booking.start_time, Booking.end_time, start, end))
        .all()
    )
    return [
        row
        for row in rows
        if row.service_id == service_id
        and intervals_overlap(row.start_time, row.end_time, start, end)
    ]


def fetch_live_holds(
    db: Session,
    service_id: int,
    start: datetime,
    end: datetime,
    now: datetime,
) -> list[Hold]:
    rows = (
        db.query(Hold)
        .filter(Hold.service_id == service_id)
        .filter(Hold.expires_at > now)
        .filter(overlap_clause(Hold.start_time, Hold.end_time, start, end))
        .all()
    )
    return [
        row
        for row in rows
        if row.service_id == service_id
        and is_live(row, now)
        and intervals_overlap(row.start_time, row.end_time, start, end)
    ]
