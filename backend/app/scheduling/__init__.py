from app.scheduling.availability import decode_slot_choice, encode_slot_choice, resolve_availability
from app.scheduling.cancellation import cancel_booking
from app.scheduling.finalizer import (
    CustomerDetails,
    HoldState,
    HoldTransition,
    TransitionContext,
    confirm_booking,
    next_transition,
)
from app.scheduling.holds import (
    HOLD_DURATION_MINUTES,
    release_hold,
    reserve_hold,
    sweep_expired_holds,
)
from app.scheduling.overlap import intervals_overlap
from app.scheduling.results import (
    Availability,
    BookingReceipt,
    CancellationReceipt,
    ErrorKind,
    Failure,
    HoldReceipt,
    SlotChoice,
    TimeSlot,
)
from app.scheduling.slots import BusinessHours, day_window, generate_slots, load_business_hours

__all__ = [
    "Availability",
    "BookingReceipt",
    "BusinessHours",
    "CancellationReceipt",
    "CustomerDetails",
    "ErrorKind",
    "Failure",
    "HOLD_DURATION_MINUTES",
    "HoldReceipt",
    "HoldState",
    "HoldTransition",
    "SlotChoice",
    "TimeSlot",
    "TransitionContext",
    "cancel_booking",
    "confirm_booking",
    "day_window",
    "decode_slot_choice",
    "encode_slot_choice",
    "generate_slots",
    "intervals_overlap",
    "load_business_hours",
    "next_transition",
    "release_hold",
    "reserve_hold",
    "resolve_availability",
    "sweep_expired_holds",
]
