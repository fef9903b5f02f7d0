"""Enumeration types for Holibayt booking data models."""

from enum import Enum


class BookingStatus(str, Enum):
    """Status of a booking."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Bookings in these states hold their nights
BLOCKING_BOOKING_STATUSES: frozenset[BookingStatus] = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED}
)


class PaymentType(str, Enum):
    """What a payment is for."""

    BOOKING_FEE = "booking_fee"
    SECURITY_DEPOSIT = "security_deposit"


class TransactionStatus(str, Enum):
    """Status of a payment transaction."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PriceType(str, Enum):
    """Period the listing price refers to."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    TOTAL = "total"


class PropertyCategory(str, Enum):
    """Listing category."""

    SALE = "sale"
    RENT = "rent"
    SHORT_STAY = "short-stay"
