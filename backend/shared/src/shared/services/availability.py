"""Availability service: date-conflict checks against existing bookings.

A stay occupies the nights of the half-open interval [check_in, check_out).
Only pending and confirmed bookings hold their nights; cancelled and
completed ones are ignored. Checking is a linear scan over the property's
bookings, run once optimistically before checkout and once more,
authoritatively, when the payment is finalized.
"""

import datetime as dt
from typing import TYPE_CHECKING

from shared.models import (
    AvailabilityResult,
    Booking,
    BookingError,
    ConflictingBooking,
    DateRange,
    ErrorCode,
)
from shared.utils.logging import get_logger

from .booking_items import item_to_booking

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


def ranges_overlap(requested: DateRange, existing: DateRange) -> bool:
    """Whether a requested stay [A,B) conflicts with an existing one [S,E).

    Conflict when A lies in [S,E), B lies in (S,E], or [A,B) contains [S,E).
    A check-out on the day another stay checks in shares no night.
    """
    a, b = requested.start, requested.end
    s, e = existing.start, existing.end
    return (s <= a < e) or (s < b <= e) or (a <= s and b >= e)


def validate_date_range(check_in: dt.date, check_out: dt.date) -> None:
    """Raise INVALID_DATE_RANGE unless check_out is after check_in."""
    if check_out <= check_in:
        raise BookingError(
            ErrorCode.INVALID_DATE_RANGE,
            details={
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
            },
        )


class AvailabilityService:
    """Service for availability checking against the bookings table."""

    BOOKINGS_TABLE = "bookings"
    PROPERTY_INDEX = "property-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize availability service.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def get_blocking_bookings(self, property_id: str) -> list[Booking]:
        """Get all pending or confirmed bookings of a property."""
        items = self.db.query_by_gsi(
            self.BOOKINGS_TABLE,
            self.PROPERTY_INDEX,
            "property_id",
            property_id,
        )
        bookings = [item_to_booking(item) for item in items]
        return [b for b in bookings if b.is_blocking]

    def find_conflicts(
        self,
        property_id: str,
        check_in: dt.date,
        check_out: dt.date,
        exclude_booking_id: str | None = None,
    ) -> list[Booking]:
        """Find blocking bookings that overlap the requested stay.

        Args:
            property_id: Property to check
            check_in: Requested check-in
            check_out: Requested check-out (exclusive)
            exclude_booking_id: Booking to ignore (e.g. the one being changed)

        Returns:
            Conflicting bookings, ordered by check-in date
        """
        requested = DateRange(start=check_in, end=check_out)
        conflicts = [
            booking
            for booking in self.get_blocking_bookings(property_id)
            if booking.booking_id != exclude_booking_id
            and ranges_overlap(
                requested,
                DateRange(start=booking.check_in_date, end=booking.check_out_date),
            )
        ]
        return sorted(conflicts, key=lambda b: b.check_in_date)

    def check_availability(
        self,
        property_id: str,
        check_in: dt.date,
        check_out: dt.date,
    ) -> AvailabilityResult:
        """Check whether a stay is free of conflicts.

        Args:
            property_id: Property to check
            check_in: Check-in date
            check_out: Check-out date

        Returns:
            AvailabilityResult listing any conflicting bookings
        """
        validate_date_range(check_in, check_out)
        conflicts = self.find_conflicts(property_id, check_in, check_out)

        return AvailabilityResult(
            property_id=property_id,
            check_in=check_in,
            check_out=check_out,
            is_available=not conflicts,
            conflicts=[
                ConflictingBooking(
                    booking_id=b.booking_id,
                    check_in_date=b.check_in_date,
                    check_out_date=b.check_out_date,
                    status=b.status,
                )
                for b in conflicts
            ],
        )

    def ensure_available(
        self,
        property_id: str,
        check_in: dt.date,
        check_out: dt.date,
    ) -> None:
        """Raise DATES_UNAVAILABLE if the stay overlaps a blocking booking."""
        conflicts = self.find_conflicts(property_id, check_in, check_out)
        if conflicts:
            logger.info(
                "Dates %s..%s unavailable for property %s (%d conflicts)",
                check_in,
                check_out,
                property_id,
                len(conflicts),
            )
            raise BookingError(
                ErrorCode.DATES_UNAVAILABLE,
                details={
                    "property_id": property_id,
                    "conflicting_bookings": ",".join(b.booking_id for b in conflicts),
                },
            )

    def get_booked_dates(
        self,
        property_id: str,
        start: dt.date,
        end: dt.date,
    ) -> list[dt.date]:
        """List nights in [start, end) held by pending or confirmed bookings.

        Used to grey out days in the property calendar.
        """
        window = DateRange(start=start, end=end)
        booked: set[dt.date] = set()
        for booking in self.get_blocking_bookings(property_id):
            stay = DateRange(start=booking.check_in_date, end=booking.check_out_date)
            if not ranges_overlap(window, stay):
                continue
            first = max(stay.start, window.start)
            last = min(stay.end, window.end)
            for offset in range((last - first).days):
                booked.add(first + dt.timedelta(days=offset))
        return sorted(booked)
