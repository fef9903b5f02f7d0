"""Webhook handler for processing Stripe events.

Keeps the event logic separate from HTTP routing so it can be unit tested
without a request. Every processed event is logged by its Stripe event ID;
a repeated delivery of the same event is answered without reprocessing.
"""

import datetime as dt
import json
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from shared.models import BookingError, StripeWebhookEvent, TransactionStatus
from shared.utils.logging import get_logger, log_webhook_event

from .stripe_service import StripeService

if TYPE_CHECKING:
    from .booking import BookingService
    from .dynamodb import DynamoDBService
    from .payment_service import PaymentService

logger = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHARGE_REFUNDED = "charge.refunded"


class WebhookHandler:
    """Handler for processing Stripe webhook events."""

    WEBHOOK_EVENTS_TABLE = "stripe-webhook-events"

    def __init__(
        self,
        db: "DynamoDBService",
        bookings: "BookingService",
        payments: "PaymentService",
    ) -> None:
        self._db = db
        self._bookings = bookings
        self._payments = payments

    def is_event_already_processed(self, event_id: str) -> bool:
        """Check if webhook event was already processed (idempotency)."""
        existing = self._db.get_item(
            self.WEBHOOK_EVENTS_TABLE, {"event_id": event_id}, consistent_read=True
        )
        return existing is not None

    def log_event(self, event: StripeWebhookEvent) -> None:
        """Store the event record for idempotency and audit."""
        item: dict[str, Any] = {
            "event_id": event.event_id,
            "event_type": event.event_type,
            "processed_at": event.processed_at.isoformat(),
            "payload_hash": event.payload_hash,
            "processing_result": event.processing_result,
        }
        if event.booking_id:
            item["booking_id"] = event.booking_id
        if event.payment_id:
            item["payment_id"] = event.payment_id
        if event.error_message:
            item["error_message"] = event.error_message

        self._db.put_item(self.WEBHOOK_EVENTS_TABLE, item)

    def handle_event(self, event: dict[str, Any], payload_hash: str | None = None) -> str:
        """Dispatch a verified Stripe event.

        Args:
            event: Parsed Stripe event
            payload_hash: SHA-256 of the raw body; derived from the event if omitted

        Returns:
            Processing result: success, refunded, failed, duplicate, skipped or error
        """
        event_id = event.get("id", "")
        event_type = event.get("type", "")

        if self.is_event_already_processed(event_id):
            log_webhook_event(logger, event_type, event_id, result="duplicate")
            return "duplicate"

        if payload_hash is None:
            payload_hash = StripeService.compute_payload_hash(
                json.dumps(event, sort_keys=True, default=str).encode()
            )

        if event_type == CHECKOUT_COMPLETED:
            result, payment_id, booking_id, error = self.process_checkout_completed(event)
        elif event_type == CHARGE_REFUNDED:
            result, payment_id, booking_id, error = self.process_charge_refunded(event)
        else:
            result, payment_id, booking_id, error = "skipped", None, None, None

        log_webhook_event(
            logger,
            event_type,
            event_id,
            payment_id=payment_id,
            booking_id=booking_id,
            result=result,
            error=error,
        )
        self.log_event(
            StripeWebhookEvent(
                event_id=event_id,
                event_type=event_type,
                processed_at=dt.datetime.now(dt.UTC),
                payload_hash=payload_hash,
                booking_id=booking_id,
                payment_id=payment_id,
                processing_result=result,
                error_message=error,
            )
        )
        return result

    def process_checkout_completed(
        self, event: dict[str, Any]
    ) -> tuple[str, str | None, str | None, str | None]:
        """Finalize the payment named in the session metadata.

        Returns:
            Tuple of (result, payment_id, booking_id, error_message)
        """
        session = event.get("data", {}).get("object", {})
        payment_id = (session.get("metadata") or {}).get("payment_id")

        if not payment_id:
            return "error", None, None, "Missing payment_id in metadata"

        try:
            outcome = self._bookings.finalize_payment(
                payment_id,
                {
                    "session_id": session.get("id"),
                    "payment_status": session.get("payment_status"),
                    "payment_intent_id": session.get("payment_intent"),
                },
            )
        except BookingError as e:
            return "error", payment_id, None, e.message

        if outcome.refunded:
            return "refunded", payment_id, None, outcome.message
        if outcome.status == TransactionStatus.FAILED:
            return "failed", payment_id, None, outcome.message
        if outcome.status == TransactionStatus.PENDING:
            return "skipped", payment_id, None, (
                f"Payment status is '{outcome.stripe_payment_status}'"
            )
        return "success", payment_id, outcome.booking_id, None

    def process_charge_refunded(
        self, event: dict[str, Any]
    ) -> tuple[str, str | None, str | None, str | None]:
        """Record a refund made on Stripe's side against the payment.

        Returns:
            Tuple of (result, payment_id, booking_id, error_message)
        """
        charge = event.get("data", {}).get("object", {})
        payment_intent_id = charge.get("payment_intent")
        if not payment_intent_id:
            return "skipped", None, None, "No payment_intent in event"

        payment = self._payments.find_by_payment_intent(payment_intent_id)
        if payment is None:
            return "error", None, None, "Payment not found for refund"

        refunds = (charge.get("refunds") or {}).get("data") or []
        self._payments.mark_refunded(
            payment.payment_id,
            refund_amount=Decimal(charge.get("amount_refunded", 0)) / 100,
            stripe_refund_id=refunds[0].get("id") if refunds else payment.stripe_refund_id,
            refunded_at=dt.datetime.now(dt.UTC),
        )
        return "success", payment.payment_id, payment.booking_id, None
