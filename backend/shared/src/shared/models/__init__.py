"""Pydantic models for Holibayt booking data entities."""

from .availability import (
    AvailabilityResult,
    BookedDatesResponse,
    ConflictingBooking,
    DateRange,
)
from .booking import Booking, BookingCancellation, BookingRequest
from .enums import (
    BLOCKING_BOOKING_STATUSES,
    BookingStatus,
    PaymentType,
    PriceType,
    PropertyCategory,
    TransactionStatus,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    STRIPE_ERROR_MESSAGES,
    BookingError,
    ErrorCode,
    ErrorResponse,
    get_user_friendly_stripe_message,
)
from .payment import CheckoutResult, FinalizationResult, Payment
from .pricing import PriceBreakdown, to_cents
from .property import Property
from .stripe_webhook import StripeWebhookEvent

__all__ = [
    # Enums
    "BLOCKING_BOOKING_STATUSES",
    "BookingStatus",
    "PaymentType",
    "PriceType",
    "PropertyCategory",
    "TransactionStatus",
    # Availability
    "AvailabilityResult",
    "BookedDatesResponse",
    "ConflictingBooking",
    "DateRange",
    # Booking
    "Booking",
    "BookingCancellation",
    "BookingRequest",
    # Payment
    "CheckoutResult",
    "FinalizationResult",
    "Payment",
    # Pricing
    "PriceBreakdown",
    "to_cents",
    # Property
    "Property",
    # Errors
    "BookingError",
    "ErrorCode",
    "ErrorResponse",
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "STRIPE_ERROR_MESSAGES",
    "get_user_friendly_stripe_message",
    # Stripe
    "StripeWebhookEvent",
]
