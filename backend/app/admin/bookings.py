from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from app.db.models import Booking, Service
from app.scheduling.overlap import intervals_overlap, overlap_clause
from app.scheduling.slots import BusinessHours, day_window
from app.scheduling.timeutils import ensure_utc, format_instant


def list_bookings(
    db: Session,
    hours: BusinessHours,
    day: date | None = None,
    service_id: int | None = None,
) -> list[Booking]:
    query = db.query(Booking)
    window = day_window(day, hours) if day is not None else None
    if service_id is not None:
        query = query.filter(Booking.service_id == service_id)
    if window is not None:
        query = query.filter(overlap_clause(Booking.start_time, Booking.end_time, *window))

    bookings = [
        b
        for b in query.order_by(Booking.start_time).all()
        if (service_id is None or b.service_id == service_id)
        and (window is None or intervals_overlap(b.start_time, b.end_time, *window))
    ]
    return sorted(bookings, key=lambda b: ensure_utc(b.start_time))


def serialize_booking(booking: Booking, service: Service | None = None) -> dict[str, Any]:
    return {
        "booking_id": booking.id,
        "service_id": booking.service_id,
        "service_name": service.name if service is not None else None,
        "start_time": format_instant(booking.start_time),
        "end_time": format_instant(booking.end_time),
        "customer_name": booking.customer_name,
        "customer_phone": booking.customer_phone,
        "notes": booking.notes,
        "created_at": format_instant(booking.created_at) if booking.created_at else None,
    }
