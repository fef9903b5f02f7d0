"""Availability models for overlap checks and calendars."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from .enums import BookingStatus


class DateRange(BaseModel):
    """Half-open date interval [start, end)."""

    model_config = ConfigDict(strict=True, frozen=True)

    start: dt.date
    end: dt.date


class ConflictingBooking(BaseModel):
    """An existing booking that overlaps a requested stay."""

    model_config = ConfigDict(strict=True)

    booking_id: str
    check_in_date: dt.date
    check_out_date: dt.date
    status: BookingStatus


class AvailabilityResult(BaseModel):
    """Result of checking a requested stay against existing bookings."""

    model_config = ConfigDict(strict=True)

    property_id: str
    check_in: dt.date
    check_out: dt.date
    is_available: bool
    conflicts: list[ConflictingBooking] = Field(default_factory=list)


class BookedDatesResponse(BaseModel):
    """Nights held by pending or confirmed bookings inside a window."""

    model_config = ConfigDict(strict=True)

    property_id: str
    start: dt.date
    end: dt.date
    booked_dates: list[dt.date] = Field(default_factory=list)
