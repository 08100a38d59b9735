"""Candidate slot generation.

All local wall-clock arithmetic lives in this module. Slots are walked in the
business timezone so daylight-saving shifts never move a slot's local start
time, and are handed to the rest of the engine as UTC instants.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app import config
from app.scheduling.results import TimeSlot


WEEKDAY_NAMES = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
MONDAY_TO_SATURDAY = frozenset(range(6))


class BusinessHours(BaseModel):
    model_config = ConfigDict(frozen=True)

    timezone: str = "America/Denver"
    open_time: time = time(9, 0)
    close_time: time = time(18, 0)
    granularity_minutes: int = Field(default=30, gt=0)
    # Python weekday numbers, Monday == 0.
    open_days: frozenset[int] = MONDAY_TO_SATURDAY

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("open_days")
    @classmethod
    def validate_open_days(cls, value: frozenset[int]) -> frozenset[int]:
        if any(day < 0 or day > 6 for day in value):
            raise ValueError("open_days must contain weekday numbers 0-6.")
        return value

    @model_validator(mode="after")
    def validate_window(self) -> "BusinessHours":
        if self.open_time >= self.close_time:
            raise ValueError("open_time must be before close_time.")
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def parse_open_days(raw: str) -> frozenset[int]:
    days = set()
    for part in raw.split(","):
        name = part.strip().lower()[:3]
        if not name:
            continue
        if name not in WEEKDAY_NAMES:
            raise ValueError(f"Unknown weekday: {part!r}")
        days.add(WEEKDAY_NAMES.index(name))
    return frozenset(days)


def load_business_hours() -> BusinessHours:
    return BusinessHours(
        timezone=config.BUSINESS_TIMEZONE,
        open_time=time.fromisoformat(config.BUSINESS_OPEN_TIME),
        close_time=time.fromisoformat(config.BUSINESS_CLOSE_TIME),
        granularity_minutes=config.SLOT_GRANULARITY_MINUTES,
        open_days=parse_open_days(config.BUSINESS_OPEN_DAYS),
    )


def generate_slots(day: date, duration_minutes: int, hours: BusinessHours) -> list[TimeSlot]:
    """Candidate slots for a business-local calendar day, earliest first.

    The walk starts at ``open_time`` and steps by the granularity in local
    wall-clock time. Wall times that do not exist on the day (the spring
    forward gap) are skipped. Each start is converted to UTC, ``end`` is
    always ``start + duration`` as an absolute instant, and a slot is emitted
    only if that end is at or before the absolute instant of ``close_time``.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if day.weekday() not in hours.open_days:
        return []

    tzinfo = hours.tzinfo
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=hours.granularity_minutes)
    cursor = datetime.combine(day, hours.open_time)
    close = datetime.combine(day, hours.close_time)
    close_utc = close.replace(tzinfo=tzinfo).astimezone(timezone.utc)

    slots: list[TimeSlot] = []
    while cursor < close:
        local = cursor
        cursor += step
        start_utc = local.replace(tzinfo=tzinfo).astimezone(timezone.utc)
        if start_utc.astimezone(tzinfo).replace(tzinfo=None) != local:
            continue
        if start_utc + duration > close_utc:
            break
        slots.append(TimeSlot(start=start_utc, end=start_utc + duration))
    return slots


def day_window(day: date, hours: BusinessHours) -> tuple[datetime, datetime]:
    tzinfo = hours.tzinfo
    local_start = datetime.combine(day, time.min, tzinfo=tzinfo)
    local_end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tzinfo)
    return local_start.astimezone(timezone.utc), local_end.astimezone(timezone.utc)


def format_slot_label(start: datetime, hours: BusinessHours) -> str:
    local = start.astimezone(hours.tzinfo)
    return local.strftime("%I:%M %p").lstrip("0")
