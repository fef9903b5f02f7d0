"""Booking models."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import BLOCKING_BOOKING_STATUSES, BookingStatus


class BookingRequest(BaseModel):
    """Booking data carried in a payment's metadata until the payment clears.

    No booking row exists while the payment is pending; the row is written
    by finalization once the money has actually moved.
    """

    model_config = ConfigDict(strict=True)

    check_in_date: dt.date = Field(..., description="Check-in date")
    check_out_date: dt.date = Field(..., description="Check-out date (exclusive)")
    guests_count: int = Field(default=1, ge=1, description="Number of guests")
    special_requests: str | None = Field(default=None, max_length=1000)
    contact_phone: str | None = Field(default=None, max_length=32)

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days


class Booking(BaseModel):
    """A booking of a property for the nights [check_in_date, check_out_date)."""

    model_config = ConfigDict(strict=True)

    booking_id: str = Field(..., description="Unique booking ID")
    property_id: str = Field(..., description="Booked property")
    user_id: str = Field(..., description="Guest user ID")
    check_in_date: dt.date
    check_out_date: dt.date
    guests_count: int = Field(..., ge=1)
    status: BookingStatus
    payment_id: str | None = Field(default=None, description="Booking-fee payment")
    total_amount: Decimal = Field(..., ge=0, description="Amount paid")
    currency: str = Field(default="EUR")
    special_requests: str | None = None
    contact_phone: str | None = None
    created_at: dt.datetime
    updated_at: dt.datetime | None = None
    cancelled_at: dt.datetime | None = None

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    @property
    def is_blocking(self) -> bool:
        """Whether this booking holds its nights against other bookings."""
        return self.status in BLOCKING_BOOKING_STATUSES


class BookingCancellation(BaseModel):
    """Outcome of a guest cancellation."""

    model_config = ConfigDict(strict=True)

    booking: Booking
    refund_amount: Decimal = Field(..., ge=0)
    refund_percentage: int = Field(..., ge=0, le=100)
    policy_tier: str
    description: str
    stripe_refund_id: str | None = None
