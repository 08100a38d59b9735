from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from app.scheduling.results import CancellationReceipt, ErrorKind, Failure
from app.scheduling.store import find_booking
from app.scheduling.transactions import run_in_transaction


logger = logging.getLogger("slotbook.scheduling.cancellation")


def cancel_booking(
    session_factory: Callable[[], Session],
    booking_id: str,
) -> CancellationReceipt | Failure:
    """Delete a booking so its interval becomes available again."""

    def _cancel(db: Session) -> CancellationReceipt | Failure:
        booking = find_booking(db, booking_id)
        if booking is None:
            return Failure.of(ErrorKind.BOOKING_NOT_FOUND)
        db.delete(booking)
        db.flush()
        return CancellationReceipt(booking_id=booking_id)

    result = run_in_transaction(session_factory, _cancel, name="cancel_booking", isolation_level=None)
    if isinstance(result, CancellationReceipt):
        logger.info("Cancelled booking %s", booking_id)
    return result
