from __future__ import annotations

from datetime import date, datetime

from sqlalchemy.orm import Session

from app.scheduling.overlap import overlaps_any
from app.scheduling.results import Availability, ErrorKind, Failure, SlotChoice, TimeSlot
from app.scheduling.slots import (
    BusinessHours,
    day_window,
    format_slot_label,
    generate_slots,
    load_business_hours,
)
from app.scheduling.store import fetch_live_holds, fetch_overlapping_bookings, find_active_service
from app.scheduling.timeutils import format_instant, parse_instant, utc_now


CHOICE_SEPARATOR = "|"


def encode_slot_choice(slot: TimeSlot) -> str:
    return f"{format_instant(slot.start)}{CHOICE_SEPARATOR}{format_instant(slot.end)}"


def decode_slot_choice(value: str) -> tuple[datetime, datetime]:
    parts = (value or "").split(CHOICE_SEPARATOR)
    if len(parts) != 2:
        raise ValueError("Slot value must look like '<start>|<end>'.")
    return parse_instant(parts[0]), parse_instant(parts[1])


def resolve_availability(
    db: Session,
    service_id: int,
    day: date,
    hours: BusinessHours | None = None,
    now: datetime | None = None,
) -> Availability | Failure:
    """Free slots for ``service_id`` on the business-local calendar ``day``.

    The result is advisory: a listed slot can still be taken before the
    customer reserves it, which the hold path reports as ``SLOT_TAKEN``.
    """
    hours = hours or load_business_hours()
    now = now or utc_now()

    service = find_active_service(db, service_id)
    if service is None:
        return Failure.of(ErrorKind.SERVICE_NOT_FOUND)

    window_start, window_end = day_window(day, hours)
    candidates = generate_slots(day, service.duration_minutes, hours)

    bookings = fetch_overlapping_bookings(db, service_id, window_start, window_end)
    holds = fetch_live_holds(db, service_id, window_start, window_end, now)

    free = [
        slot
        for slot in candidates
        if not overlaps_any(slot.start, slot.end, bookings)
        and not overlaps_any(slot.start, slot.end, holds)
    ]
    choices = [
        SlotChoice(title=format_slot_label(slot.start, hours), value=encode_slot_choice(slot))
        for slot in free
    ]
    return Availability(service_id=service_id, day=day, slots=free, choices=choices)
