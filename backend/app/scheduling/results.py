from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from app.scheduling.timeutils import format_instant


class ErrorKind(str, Enum):
    SERVICE_NOT_FOUND = "SERVICE_NOT_FOUND"
    INVALID_INTERVAL = "INVALID_INTERVAL"
    SLOT_TAKEN = "SLOT_TAKEN"
    HOLD_NOT_FOUND = "HOLD_NOT_FOUND"
    HOLD_EXPIRED = "HOLD_EXPIRED"
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"


DEFAULT_MESSAGES = {
    ErrorKind.SERVICE_NOT_FOUND: "Service not found or inactive.",
    ErrorKind.INVALID_INTERVAL: "Start must be before end and both must include a timezone.",
    ErrorKind.SLOT_TAKEN: "That time is no longer available.",
    ErrorKind.HOLD_NOT_FOUND: "Hold not found.",
    ErrorKind.HOLD_EXPIRED: "Hold has expired. Please pick a time again.",
    ErrorKind.BOOKING_NOT_FOUND: "Booking not found.",
    ErrorKind.STORE_UNAVAILABLE: "Temporary issue reaching the booking store. Please retry.",
}


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str

    @classmethod
    def of(cls, kind: ErrorKind, message: str | None = None) -> "Failure":
        return cls(kind=kind, message=message or DEFAULT_MESSAGES[kind])

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.STORE_UNAVAILABLE


class TimeSlot(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class SlotChoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    value: str


class Availability(BaseModel):
    model_config = ConfigDict(frozen=True)

    service_id: int
    day: date
    slots: list[TimeSlot]
    choices: list[SlotChoice]


class HoldReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    hold_id: str
    service_id: int
    start: datetime
    end: datetime
    expires_at: datetime


class BookingReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    booking_id: str
    service_id: int
    service_name: str
    start: datetime
    end: datetime
    customer_name: str
    customer_phone: str
    notes: str | None = None
    created_at: datetime


class CancellationReceipt(BaseModel):
    model_config = ConfigDict(frozen=True)

    booking_id: str


def serialize_slot(slot: TimeSlot) -> dict[str, str]:
    return {"start": format_instant(slot.start), "end": format_instant(slot.end)}


def serialize_availability(availability: Availability) -> dict[str, Any]:
    return {
        "service_id": availability.service_id,
        "date": availability.day.isoformat(),
        "slots": [serialize_slot(slot) for slot in availability.slots],
        "choices": [{"title": c.title, "value": c.value} for c in availability.choices],
    }


def serialize_hold_receipt(receipt: HoldReceipt) -> dict[str, Any]:
    return {
        "hold_id": receipt.hold_id,
        "service_id": receipt.service_id,
        "start": format_instant(receipt.start),
        "end": format_instant(receipt.end),
        "expires_at": format_instant(receipt.expires_at),
    }


def serialize_booking_receipt(receipt: BookingReceipt) -> dict[str, Any]:
    return {
        "booking_id": receipt.booking_id,
        "service_id": receipt.service_id,
        "service_name": receipt.service_name,
        "start_time": format_instant(receipt.start),
        "end_time": format_instant(receipt.end),
        "customer_name": receipt.customer_name,
        "customer_phone": receipt.customer_phone,
        "notes": receipt.notes,
        "created_at": format_instant(receipt.created_at),
    }
