"""Webhook endpoints for external service integrations.

Provides endpoints for:
- Stripe webhook events (checkout.session.completed, charge.refunded)

These endpoints do NOT require JWT authentication as they receive
signed payloads from external services.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from api.dependencies import get_webhook_handler
from api.models.common import ErrorResponse
from shared.models.errors import BookingError, ErrorCode
from shared.services.stripe_service import (
    StripeService,
    StripeServiceError,
    get_stripe_service,
)
from shared.services.webhook_handler import WebhookHandler
from shared.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


class WebhookResponse(BaseModel):
    """Standard webhook response."""

    received: bool
    event_id: str | None = None
    event_type: str | None = None
    processing_result: str  # success, refunded, failed, duplicate, skipped, error


@router.post(
    "/webhooks/stripe",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- checkout.session.completed: Finalizes the payment (booking or refund)
- charge.refunded: Records refund information on the payment

**No authentication required** - signature is verified using Stripe webhook secret.

**Idempotent**: Duplicate events (same event_id) return 200 with 'duplicate' result.
""",
    response_model=WebhookResponse,
    responses={
        400: {
            "description": "Invalid signature or missing header",
            "model": ErrorResponse,
        },
    },
)
async def handle_stripe_webhook(
    request: Request,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse:
    """Verify the signature and hand the event to the webhook handler."""
    signature = request.headers.get("Stripe-Signature")
    if not signature:
        logger.warning("Webhook request missing Stripe-Signature header")
        raise BookingError(
            ErrorCode.INVALID_WEBHOOK_SIGNATURE,
            details={"message": "Missing Stripe-Signature header"},
        )

    # Raw body is needed for signature verification
    payload = await request.body()

    try:
        event = get_stripe_service().verify_webhook_signature(payload, signature)
    except StripeServiceError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise BookingError(
            ErrorCode.INVALID_WEBHOOK_SIGNATURE,
            details={"message": "Invalid webhook signature"},
        ) from e

    event_id = event.get("id")
    event_type = event.get("type")
    log_webhook_event(logger, event_type, event_id, result="received")

    result = handler.handle_event(
        event, payload_hash=StripeService.compute_payload_hash(payload)
    )

    return WebhookResponse(
        received=True,
        event_id=event_id,
        event_type=event_type,
        processing_result=result,
    )
