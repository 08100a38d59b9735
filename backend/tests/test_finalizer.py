from datetime import timedelta

from app.db.models import Booking, Hold
from app.scheduling.availability import resolve_availability
from app.scheduling.cancellation import cancel_booking
from app.scheduling.finalizer import (
    CustomerDetails,
    HoldState,
    HoldTransition,
    TransitionContext,
    book_hold,
    confirm_booking,
    expire_hold,
    next_transition,
    release_conflicting_hold,
)
from app.scheduling.holds import reserve_hold
from app.scheduling.results import BookingReceipt, ErrorKind, Failure, HoldReceipt
from app.scheduling.slots import BusinessHours
from conftest import make_booking, make_hold, utc


NOW = utc(2026, 10, 19, 18, 0)
TWO_PM = utc(2026, 10, 20, 20, 0)
HALF_PAST_TWO = utc(2026, 10, 20, 20, 30)


def _factory(session):
    return lambda: session


def _live_hold():
    return make_hold(TWO_PM, HALF_PAST_TWO, expires_at=NOW + timedelta(minutes=8))


def test_next_transition_picks_expire_then_conflict_then_book():
    hold = _live_hold()
    booking = make_booking(TWO_PM, HALF_PAST_TWO)

    assert next_transition(hold, NOW, []) is HoldTransition.BOOK
    assert next_transition(hold, NOW, [booking]) is HoldTransition.RELEASE_CONFLICT
    assert next_transition(hold, NOW + timedelta(minutes=8), []) is HoldTransition.EXPIRE
    assert next_transition(hold, NOW + timedelta(minutes=8), [booking]) is HoldTransition.EXPIRE


def test_transition_targets():
    assert HoldTransition.BOOK.target is HoldState.BOOKED
    assert HoldTransition.EXPIRE.target is HoldState.RELEASED
    assert HoldTransition.RELEASE_CONFLICT.target is HoldState.RELEASED


def test_expire_and_release_transitions_delete_the_hold(fake_session):
    expiring = _live_hold()
    conflicting = _live_hold()
    fake_session.store[Hold].extend([expiring, conflicting])
    ctx = TransitionContext(fake_session, NOW)

    assert expire_hold(ctx, expiring).kind is ErrorKind.HOLD_EXPIRED
    assert release_conflicting_hold(ctx, conflicting).kind is ErrorKind.SLOT_TAKEN
    assert fake_session.store[Hold] == []


def test_book_transition_moves_hold_into_a_booking(fake_session):
    hold = _live_hold()
    fake_session.store[Hold].append(hold)
    ctx = TransitionContext(fake_session, NOW)

    receipt = book_hold(ctx, hold, CustomerDetails(customer_name="Alice", customer_phone="+15555550123"))

    assert fake_session.store[Hold] == []
    booking = fake_session.store[Booking][0]
    assert booking.id == receipt.booking_id
    assert (booking.start_time, booking.end_time) == (TWO_PM, HALF_PAST_TWO)
    assert receipt.service_name == "Haircut"
    assert receipt.created_at == NOW


def test_confirm_books_a_live_hold(fake_session):
    hold = _live_hold()
    fake_session.store[Hold].append(hold)

    result = confirm_booking(
        _factory(fake_session), hold.id, "Alice", "+15555550123", notes="First visit", clock=lambda: NOW
    )

    assert isinstance(result, BookingReceipt)
    assert result.notes == "First visit"
    assert result.start == TWO_PM
    assert fake_session.isolation_levels == ["SERIALIZABLE"]
    assert fake_session.store[Hold] == []
    assert len(fake_session.store[Booking]) == 1


def test_confirm_after_expiry_deletes_hold_and_reports_expired(fake_session):
    hold = _live_hold()
    fake_session.store[Hold].append(hold)

    result = confirm_booking(
        _factory(fake_session), hold.id, "Alice", "+15555550123", clock=lambda: NOW + timedelta(minutes=8)
    )

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.HOLD_EXPIRED
    assert fake_session.store[Hold] == []
    assert fake_session.store[Booking] == []
    assert fake_session.commits == 1


def test_confirm_over_an_existing_booking_releases_the_hold(fake_session):
    hold = _live_hold()
    fake_session.store[Hold].append(hold)
    fake_session.store[Booking].append(make_booking(TWO_PM + timedelta(minutes=15), HALF_PAST_TWO))

    result = confirm_booking(_factory(fake_session), hold.id, "Alice", "+15555550123", clock=lambda: NOW)

    assert result.kind is ErrorKind.SLOT_TAKEN
    assert fake_session.store[Hold] == []
    assert len(fake_session.store[Booking]) == 1


def test_confirm_unknown_hold_is_not_found(fake_session):
    result = confirm_booking(_factory(fake_session), "missing", "Alice", "+15555550123", clock=lambda: NOW)

    assert result.kind is ErrorKind.HOLD_NOT_FOUND


def test_confirm_rejects_invalid_customer_details(fake_session):
    hold = _live_hold()
    fake_session.store[Hold].append(hold)

    result = confirm_booking(_factory(fake_session), hold.id, "", "+15555550123", clock=lambda: NOW)

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.INVALID_INTERVAL
    assert result.message.startswith("Invalid customer details:")
    assert fake_session.store[Hold] == [hold]
    assert fake_session.store[Booking] == []
    assert fake_session.isolation_levels == []


def test_confirmed_interval_disappears_and_reappears_after_cancel(fake_session):
    factory = _factory(fake_session)
    hours = BusinessHours()
    day = TWO_PM.date()

    hold = reserve_hold(factory, 1, TWO_PM, HALF_PAST_TWO, "session-a", clock=lambda: NOW)
    assert isinstance(hold, HoldReceipt)
    booking = confirm_booking(factory, hold.hold_id, "Alice", "+15555550123", clock=lambda: NOW)
    assert isinstance(booking, BookingReceipt)

    later = NOW + timedelta(hours=1)
    booked_view = resolve_availability(fake_session, 1, day, hours=hours, now=later)
    assert TWO_PM not in [slot.start for slot in booked_view.slots]

    cancel_booking(factory, booking.booking_id)

    reopened = resolve_availability(fake_session, 1, day, hours=hours, now=later)
    assert TWO_PM in [slot.start for slot in reopened.slots]
