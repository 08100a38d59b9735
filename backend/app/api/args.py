from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from app.scheduling.availability import decode_slot_choice
from app.scheduling.finalizer import CustomerDetails
from app.scheduling.timeutils import is_aware


class DateArgs(BaseModel):
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")

    @field_validator("date")
    @classmethod
    def validate_calendar_date(cls, value: str) -> str:
        date.fromisoformat(value)
        return value

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)


class AvailabilityArgs(DateArgs):
    service_id: int


class ReserveHoldArgs(BaseModel):
    service_id: int
    session_id: str = Field(min_length=1, max_length=255)
    start: datetime | None = None
    end: datetime | None = None
    # Opaque "<start>|<end>" value from an availability choice.
    slot: str | None = None

    @model_validator(mode="after")
    def resolve_interval(self) -> "ReserveHoldArgs":
        if self.slot:
            self.start, self.end = decode_slot_choice(self.slot)
        if self.start is None or self.end is None:
            raise ValueError("Provide start and end, or a slot value.")
        if not is_aware(self.start) or not is_aware(self.end):
            raise ValueError("start and end must include timezone information.")
        return self


class ConfirmBookingArgs(CustomerDetails):
    hold_id: str = Field(min_length=1, max_length=36)


def parse_date_args(raw_args: dict[str, Any]) -> DateArgs:
    return DateArgs.model_validate(raw_args)


def parse_availability_args(raw_args: dict[str, Any]) -> AvailabilityArgs:
    return AvailabilityArgs.model_validate(raw_args)


def parse_reserve_hold_args(raw_args: dict[str, Any]) -> ReserveHoldArgs:
    return ReserveHoldArgs.model_validate(raw_args)


def parse_confirm_booking_args(raw_args: dict[str, Any]) -> ConfirmBookingArgs:
    return ConfirmBookingArgs.model_validate(raw_args)


def map_validation_error(error: ValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }
