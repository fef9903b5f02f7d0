"""Stripe webhook event model for idempotency and auditing."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class StripeWebhookEvent(BaseModel):
    """Log of a received Stripe webhook event."""

    model_config = ConfigDict(strict=True)

    event_id: str = Field(
        ...,
        description="Stripe event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Stripe event type",
        examples=["checkout.session.completed", "charge.refunded"],
    )
    processed_at: datetime
    payload_hash: str = Field(..., description="SHA-256 hash of the payload")
    booking_id: str | None = None
    payment_id: str | None = None
    processing_result: str = Field(
        default="success",
        description="success, refunded, failed, skipped or error",
    )
    error_message: str | None = None
