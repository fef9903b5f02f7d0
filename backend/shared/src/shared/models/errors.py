"""Standard error codes for the booking backend.

Every domain failure is raised as a BookingError carrying one of these codes.
The API layer maps the code to an HTTP status and renders ErrorResponse.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes."""

    # Booking error codes (ERR_001-ERR_011)
    DATES_UNAVAILABLE = "ERR_001"
    INVALID_DATE_RANGE = "ERR_002"
    MAX_GUESTS_EXCEEDED = "ERR_003"
    PROPERTY_NOT_BOOKABLE = "ERR_004"
    PROPERTY_NOT_FOUND = "ERR_005"
    BOOKING_NOT_FOUND = "ERR_006"
    UNAUTHORIZED = "ERR_007"
    PAYMENT_FAILED = "ERR_008"
    PAYMENT_NOT_FOUND = "ERR_009"
    INVALID_AMOUNT = "ERR_010"
    BOOKING_NOT_CANCELLABLE = "ERR_011"

    # Authentication
    AUTH_REQUIRED = "ERR_AUTH_001"

    # Stripe
    INVALID_WEBHOOK_SIGNATURE = "ERR_STRIPE_001"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.DATES_UNAVAILABLE: "The requested dates are not available",
    ErrorCode.INVALID_DATE_RANGE: "Check-out must be after check-in",
    ErrorCode.MAX_GUESTS_EXCEEDED: "Number of guests exceeds the property capacity",
    ErrorCode.PROPERTY_NOT_BOOKABLE: "This property cannot be booked",
    ErrorCode.PROPERTY_NOT_FOUND: "Property not found",
    ErrorCode.BOOKING_NOT_FOUND: "Booking not found",
    ErrorCode.UNAUTHORIZED: "Not authorized for this action",
    ErrorCode.PAYMENT_FAILED: "Payment processing failed",
    ErrorCode.PAYMENT_NOT_FOUND: "Payment not found",
    ErrorCode.INVALID_AMOUNT: "Payment amount is outside the allowed range",
    ErrorCode.BOOKING_NOT_CANCELLABLE: "This booking can no longer be cancelled",
    ErrorCode.AUTH_REQUIRED: "Authentication required to perform this action",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Invalid webhook signature",
}

ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.DATES_UNAVAILABLE: "Pick other dates from the availability calendar",
    ErrorCode.INVALID_DATE_RANGE: "Choose a check-out date after the check-in date",
    ErrorCode.MAX_GUESTS_EXCEEDED: "Reduce the number of guests",
    ErrorCode.PROPERTY_NOT_BOOKABLE: "Contact the host or choose another listing",
    ErrorCode.PROPERTY_NOT_FOUND: "Verify the property ID",
    ErrorCode.BOOKING_NOT_FOUND: "Verify the booking ID",
    ErrorCode.UNAUTHORIZED: "Sign in with the account that owns this resource",
    ErrorCode.PAYMENT_FAILED: "Try again or use a different card",
    ErrorCode.PAYMENT_NOT_FOUND: "Verify the payment ID",
    ErrorCode.INVALID_AMOUNT: "Adjust the stay so the amount is within limits",
    ErrorCode.BOOKING_NOT_CANCELLABLE: "Contact support",
    ErrorCode.AUTH_REQUIRED: "Sign in and retry",
    ErrorCode.INVALID_WEBHOOK_SIGNATURE: "Verify webhook secret configuration",
}


class ErrorResponse(BaseModel):
    """Standard error body returned for domain failures."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ) -> "ErrorResponse":
        return cls(
            error_code=code,
            message=ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class BookingError(Exception):
    """Exception raised by booking and payment operations."""

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
    ):
        self.code = code
        self.message = ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse.from_code(self.code, self.details)


# Stripe error code to user-facing message
STRIPE_ERROR_MESSAGES: dict[str, str] = {
    "card_declined": "Your card was declined. Please try a different card.",
    "expired_card": "Your card has expired. Please use a different card.",
    "insufficient_funds": "Your card has insufficient funds. Please try a different card.",
    "incorrect_cvc": "The security code (CVC) is incorrect. Please check and try again.",
    "processing_error": "A processing error occurred. Please try again.",
    "rate_limit": "Too many requests. Please wait a moment and try again.",
    "amount_too_small": "The amount is below the minimum that can be charged.",
    "amount_too_large": "The amount exceeds the maximum that can be charged.",
    "charge_already_refunded": "This payment has already been refunded.",
}


def get_user_friendly_stripe_message(
    stripe_error_code: Optional[str],
    default_message: str = "Payment could not be processed. Please try again.",
) -> str:
    """Get a user-facing message for a Stripe error code."""
    if stripe_error_code and stripe_error_code in STRIPE_ERROR_MESSAGES:
        return STRIPE_ERROR_MESSAGES[stripe_error_code]
    return default_message
