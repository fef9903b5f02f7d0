"""Payment model for transaction records."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .booking import BookingRequest
from .enums import PaymentType, TransactionStatus


class Payment(BaseModel):
    """A guest payment for a property.

    Amounts are stored in currency units with two decimals. A booking-fee
    payment carries the booking request it pays for; the booking itself is
    only written once the payment is confirmed.
    """

    model_config = ConfigDict(strict=True)

    payment_id: str = Field(..., description="Unique payment ID")
    user_id: str = Field(..., description="Paying user")
    property_id: str = Field(..., description="Property being paid for")
    amount: Decimal = Field(..., ge=0, description="Amount in currency units")
    currency: str = Field(default="EUR", description="Currency code")
    payment_type: PaymentType = Field(..., description="booking_fee or security_deposit")
    status: TransactionStatus = Field(..., description="Transaction status")
    description: str | None = Field(default=None)
    booking_request: BookingRequest | None = Field(
        default=None,
        description="Booking to create once the payment clears",
    )
    booking_id: str | None = Field(
        default=None, description="Booking created from this payment"
    )
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(
        default=None, description="Completion timestamp"
    )
    error_message: str | None = Field(
        default=None, description="Error details if failed"
    )

    stripe_checkout_session_id: str | None = Field(
        default=None,
        description="Stripe Checkout Session ID (cs_xxx)",
        examples=["cs_test_abc123def456"],
    )
    stripe_payment_intent_id: str | None = Field(
        default=None,
        description="Stripe PaymentIntent ID (pi_xxx)",
        examples=["pi_3ABC123DEF456"],
    )
    stripe_refund_id: str | None = Field(
        default=None,
        description="Stripe Refund ID (re_xxx) if refunded",
        examples=["re_3ABC123DEF456"],
    )
    refund_amount: Decimal | None = Field(
        default=None,
        ge=0,
        description="Refunded amount in currency units",
    )
    refunded_at: datetime | None = Field(
        default=None,
        description="Timestamp when refund was processed",
    )

    @property
    def is_final(self) -> bool:
        """Completed or refunded payments are never finalized again."""
        return self.status in (TransactionStatus.COMPLETED, TransactionStatus.REFUNDED)


class CheckoutResult(BaseModel):
    """Result of starting a Stripe Checkout for a payment."""

    model_config = ConfigDict(strict=True)

    payment_id: str
    amount: Decimal
    currency: str
    session_id: str
    checkout_url: str | None = Field(
        default=None,
        description="Stripe Checkout URL for payment redirect",
        examples=["https://checkout.stripe.com/c/pay/cs_test_abc123"],
    )
    expires_at: datetime | None = Field(
        default=None,
        description="When the checkout session expires (30 minutes)",
    )


class FinalizationResult(BaseModel):
    """Outcome of finalizing a payment after Stripe reported on it.

    ``refunded`` is set when the payment cleared but the dates had been taken
    in the meantime, in which case ``booking_id`` is always None.
    """

    model_config = ConfigDict(strict=True)

    payment_id: str
    status: TransactionStatus
    booking_id: str | None = None
    refunded: bool = False
    stripe_payment_status: str | None = None
    stripe_payment_intent_id: str | None = None
    message: str | None = None
