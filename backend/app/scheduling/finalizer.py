"""Hold to booking state machine.

    HELD --book--------------> BOOKED
    HELD --expire------------> RELEASED   (expires_at <= now)
    HELD --release_conflict--> RELEASED   (a booking already covers the interval)

Every transition runs inside the caller's serializable transaction and is a
named function taking a ``TransitionContext``. The releasing transitions
delete the hold before reporting their failure so a stale hold never keeps
blocking availability.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.orm import Session

from app.db.models import Booking, Hold, Service
from app.scheduling.results import BookingReceipt, ErrorKind, Failure
from app.scheduling.store import fetch_overlapping_bookings, find_hold, is_live
from app.scheduling.timeutils import Clock, ensure_utc, utc_now
from app.scheduling.transactions import describe_outcome, run_in_transaction


logger = logging.getLogger("slotbook.scheduling.finalizer")


class HoldState(str, Enum):
    HELD = "held"
    BOOKED = "booked"
    RELEASED = "released"


class HoldTransition(str, Enum):
    BOOK = "book"
    EXPIRE = "expire"
    RELEASE_CONFLICT = "release_conflict"

    @property
    def target(self) -> HoldState:
        if self is HoldTransition.BOOK:
            return HoldState.BOOKED
        return HoldState.RELEASED


class CustomerDetails(BaseModel):
    customer_name: str = Field(min_length=1, max_length=255)
    customer_phone: str = Field(min_length=1, max_length=32)
    notes: str | None = Field(default=None, max_length=1024)


class TransitionContext:
    def __init__(self, db: Session, now: datetime):
        self.db = db
        self.now = ensure_utc(now)


def next_transition(hold: Hold, now: datetime, conflicting_bookings: list[Booking]) -> HoldTransition:
    if not is_live(hold, now):
        return HoldTransition.EXPIRE
    if conflicting_bookings:
        return HoldTransition.RELEASE_CONFLICT
    return HoldTransition.BOOK


def expire_hold(ctx: TransitionContext, hold: Hold) -> Failure:
    ctx.db.delete(hold)
    ctx.db.flush()
    return Failure.of(ErrorKind.HOLD_EXPIRED)


def release_conflicting_hold(ctx: TransitionContext, hold: Hold) -> Failure:
    ctx.db.delete(hold)
    ctx.db.flush()
    return Failure.of(ErrorKind.SLOT_TAKEN)


def book_hold(ctx: TransitionContext, hold: Hold, customer: CustomerDetails) -> BookingReceipt:
    service = ctx.db.get(Service, hold.service_id)
    booking = Booking(
        id=str(uuid.uuid4()),
        service_id=hold.service_id,
        start_time=hold.start_time,
        end_time=hold.end_time,
        customer_name=customer.customer_name,
        customer_phone=customer.customer_phone,
        notes=customer.notes,
        created_at=ctx.now,
    )
    ctx.db.add(booking)
    ctx.db.delete(hold)
    ctx.db.flush()

    return BookingReceipt(
        booking_id=booking.id,
        service_id=booking.service_id,
        service_name=service.name if service is not None else "",
        start=ensure_utc(booking.start_time),
        end=ensure_utc(booking.end_time),
        customer_name=booking.customer_name,
        customer_phone=booking.customer_phone,
        notes=booking.notes,
        created_at=ctx.now,
    )


def confirm_in_transaction(
    ctx: TransitionContext,
    hold_id: str,
    customer: CustomerDetails,
) -> BookingReceipt | Failure:
    hold = find_hold(ctx.db, hold_id)
    if hold is None:
        return Failure.of(ErrorKind.HOLD_NOT_FOUND)

    conflicting: list[Booking] = []
    if is_live(hold, ctx.now):
        conflicting = fetch_overlapping_bookings(
            ctx.db, hold.service_id, hold.start_time, hold.end_time
        )

    transition = next_transition(hold, ctx.now, conflicting)
    if transition is HoldTransition.EXPIRE:
        return expire_hold(ctx, hold)
    if transition is HoldTransition.RELEASE_CONFLICT:
        logger.info(
            "Hold %s overlaps existing bookings %s; releasing",
            hold.id,
            [b.id for b in conflicting],
        )
        return release_conflicting_hold(ctx, hold)
    return book_hold(ctx, hold, customer)


def confirm_booking(
    session_factory: Callable[[], Session],
    hold_id: str,
    customer_name: str,
    customer_phone: str,
    notes: str | None = None,
    clock: Clock = utc_now,
) -> BookingReceipt | Failure:
    try:
        customer = CustomerDetails(
            customer_name=customer_name,
            customer_phone=customer_phone,
            notes=notes or None,
        )
    except ValidationError as exc:
        return Failure.of(
            ErrorKind.INVALID_INTERVAL,
            f"Invalid customer details: {exc.errors()[0]['msg']}",
        )

    result = run_in_transaction(
        session_factory,
        lambda db: confirm_in_transaction(TransitionContext(db, clock()), hold_id, customer),
        name="confirm_booking",
    )
    logger.info("confirm_booking hold_id=%s outcome=%s", hold_id, describe_outcome(result))
    return result
