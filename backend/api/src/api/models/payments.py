"""API models for payment endpoints."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from shared.models import BookingRequest, PaymentType


class CheckoutRequest(BaseModel):
    """Request to start a Stripe Checkout for a stay.

    The amount is not part of the request - it is priced server-side from
    the listing. The paying user is derived from the JWT.
    """

    model_config = ConfigDict(
        # Note: strict=False allows string-to-date coercion from JSON
        # (JSON has no native date type, dates arrive as ISO strings)
        strict=False,
        json_schema_extra={
            "examples": [
                {
                    "property_id": "prop-algiers-01",
                    "payment_type": "booking_fee",
                    "check_in_date": "2025-07-15",
                    "check_out_date": "2025-07-20",
                    "guests_count": 2,
                }
            ]
        },
    )

    property_id: str = Field(..., description="Property to book")
    payment_type: PaymentType = Field(
        default=PaymentType.BOOKING_FEE,
        description="booking_fee (stay total) or security_deposit",
    )
    check_in_date: date = Field(..., description="Check-in date (YYYY-MM-DD)")
    check_out_date: date = Field(
        ..., description="Check-out date (YYYY-MM-DD), exclusive"
    )
    guests_count: int = Field(default=1, ge=1, description="Number of guests")
    special_requests: str | None = Field(default=None, max_length=1000)
    contact_phone: str | None = Field(default=None, max_length=32)
    redirect_base_url: str | None = Field(
        default=None,
        description="Frontend origin for Stripe redirects; defaults to APP_URL",
        examples=["https://holibayt.com"],
    )

    def to_booking_request(self) -> BookingRequest:
        return BookingRequest(
            check_in_date=self.check_in_date,
            check_out_date=self.check_out_date,
            guests_count=self.guests_count,
            special_requests=self.special_requests,
            contact_phone=self.contact_phone,
        )


class VerifyPaymentRequest(BaseModel):
    """Sent by the success page after Stripe redirects the guest back."""

    model_config = ConfigDict(strict=True)

    payment_id: str = Field(..., examples=["PAY-ABC123DEF456"])
    session_id: str = Field(..., examples=["cs_test_abc123def456"])
