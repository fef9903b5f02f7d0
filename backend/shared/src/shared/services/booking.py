"""Booking service: payment finalization and booking lifecycle.

Finalization is the only place a booking row is written. It runs when the
guest returns from Stripe Checkout and again when the
checkout.session.completed webhook arrives, in either order and possibly
concurrently:

- the booking ID is derived from the payment ID and written with a
  conditional put, so two finalizers of one payment create one booking;
- the overlap check is repeated right before the write, ignoring the
  booking this payment would create, so a stay taken by someone else while
  the guest was paying is refunded instead of double-booked.
"""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from boto3.dynamodb.conditions import Attr

from shared.models import (
    BLOCKING_BOOKING_STATUSES,
    Booking,
    BookingCancellation,
    BookingError,
    BookingRequest,
    BookingStatus,
    ErrorCode,
    FinalizationResult,
    Payment,
    PaymentType,
    TransactionStatus,
    get_user_friendly_stripe_message,
    to_cents,
)
from shared.utils.logging import get_logger, log_booking_operation, log_payment_operation

from .booking_items import booking_to_item, item_to_booking
from .refund_policy_service import RefundPolicyService
from .stripe_service import StripeServiceError

if TYPE_CHECKING:
    from .availability import AvailabilityService
    from .dynamodb import DynamoDBService
    from .payment_service import PaymentService
    from .stripe_service import StripeService

logger = get_logger(__name__)

# Stripe Checkout payment_status values
PAID_STATUSES = frozenset({"paid", "no_payment_required"})
UNPAID_STATUS = "unpaid"


def booking_id_for_payment(payment_id: str) -> str:
    """Booking ID owned by a booking-fee payment (PAY-X -> BK-X)."""
    return f"BK-{payment_id.removeprefix('PAY-')}"


class BookingService:
    """Service for turning paid checkouts into bookings and managing them."""

    BOOKINGS_TABLE = "bookings"
    USER_INDEX = "user-index"
    PROPERTY_INDEX = "property-index"
    STATUS_INDEX = "status-index"

    def __init__(
        self,
        db: "DynamoDBService",
        payments: "PaymentService",
        availability: "AvailabilityService",
        stripe_service: "StripeService",
        refund_policy: RefundPolicyService | None = None,
    ) -> None:
        """Initialize booking service.

        Args:
            db: DynamoDB service instance
            payments: Payment records
            availability: Overlap checker
            stripe_service: Stripe API wrapper for session lookups and refunds
            refund_policy: Cancellation refund calculator
        """
        self.db = db
        self.payments = payments
        self.availability = availability
        self.stripe = stripe_service
        self.refund_policy = refund_policy or RefundPolicyService()

    # Finalization

    def verify_payment(
        self,
        payment_id: str,
        session_id: str,
        user_id: str,
    ) -> FinalizationResult:
        """Finalize a payment when the guest lands on the success page.

        Args:
            payment_id: Payment the guest was paying
            session_id: Stripe Checkout Session ID from the redirect URL
            user_id: Calling user; must own the payment

        Raises:
            BookingError: PAYMENT_NOT_FOUND, UNAUTHORIZED or PAYMENT_FAILED
        """
        payment = self.payments.require_payment(payment_id, user_id=user_id)
        if payment.is_final:
            return self._already_final(payment)

        try:
            session = self.stripe.retrieve_checkout_session(session_id)
        except StripeServiceError as e:
            raise BookingError(
                ErrorCode.PAYMENT_FAILED,
                details={"reason": get_user_friendly_stripe_message(e.stripe_error_code)},
            ) from e

        session_payment_id = session.get("metadata", {}).get("payment_id")
        if session_payment_id != payment_id:
            logger.warning(
                "Checkout session %s belongs to payment %s, not %s",
                session_id,
                session_payment_id,
                payment_id,
            )
            raise BookingError(
                ErrorCode.UNAUTHORIZED,
                details={"payment_id": payment_id, "session_id": session_id},
            )

        return self.finalize_payment(payment_id, session)

    def finalize_payment(self, payment_id: str, session: dict[str, Any]) -> FinalizationResult:
        """Apply a Stripe Checkout outcome to a payment.

        Args:
            payment_id: Payment to finalize
            session: Checkout session fields: payment_status and
                payment_intent_id

        Returns:
            FinalizationResult describing the payment after this call

        Raises:
            BookingError: PAYMENT_NOT_FOUND
        """
        payment = self.payments.require_payment(payment_id)
        if payment.is_final:
            return self._already_final(payment)

        stripe_status = session.get("payment_status")
        payment_intent_id = session.get("payment_intent_id")

        if stripe_status == UNPAID_STATUS:
            self.payments.mark_failed(
                payment_id,
                "Payment was not completed",
                payment_intent_id=payment_intent_id,
            )
            log_payment_operation(
                logger, "finalize", payment_id=payment_id, status="failed"
            )
            return FinalizationResult(
                payment_id=payment_id,
                status=TransactionStatus.FAILED,
                stripe_payment_status=stripe_status,
                stripe_payment_intent_id=payment_intent_id,
                message="Payment was not completed",
            )

        if stripe_status not in PAID_STATUSES:
            logger.info(
                "Payment %s left as %s, Stripe status is %s",
                payment_id,
                payment.status.value,
                stripe_status,
            )
            return FinalizationResult(
                payment_id=payment_id,
                status=payment.status,
                stripe_payment_status=stripe_status,
                stripe_payment_intent_id=payment_intent_id,
            )

        if payment.payment_type != PaymentType.BOOKING_FEE or payment.booking_request is None:
            self.payments.mark_completed(payment_id, payment_intent_id=payment_intent_id)
            log_payment_operation(
                logger,
                "finalize",
                payment_id=payment_id,
                amount=payment.amount,
                status="completed",
                payment_type=payment.payment_type.value,
            )
            return FinalizationResult(
                payment_id=payment_id,
                status=TransactionStatus.COMPLETED,
                stripe_payment_status=stripe_status,
                stripe_payment_intent_id=payment_intent_id,
            )

        return self._confirm_booking(
            payment, payment.booking_request, stripe_status, payment_intent_id
        )

    def _confirm_booking(
        self,
        payment: Payment,
        request: BookingRequest,
        stripe_status: str,
        payment_intent_id: str | None,
    ) -> FinalizationResult:
        """Write the booking for a paid booking fee, or refund on conflict."""
        booking_id = booking_id_for_payment(payment.payment_id)

        conflicts = self.availability.find_conflicts(
            payment.property_id,
            request.check_in_date,
            request.check_out_date,
            exclude_booking_id=booking_id,
        )
        if conflicts:
            return self._refund_lost_race(
                payment,
                stripe_status,
                payment_intent_id,
                [b.booking_id for b in conflicts],
            )

        now = dt.datetime.now(dt.UTC)
        booking = Booking(
            booking_id=booking_id,
            property_id=payment.property_id,
            user_id=payment.user_id,
            check_in_date=request.check_in_date,
            check_out_date=request.check_out_date,
            guests_count=request.guests_count,
            status=BookingStatus.CONFIRMED,
            payment_id=payment.payment_id,
            total_amount=payment.amount,
            currency=payment.currency,
            special_requests=request.special_requests,
            contact_phone=request.contact_phone,
            created_at=now,
        )
        created = self.db.put_item(
            self.BOOKINGS_TABLE,
            booking_to_item(booking),
            condition_expression="attribute_not_exists(booking_id)",
        )
        if created:
            log_booking_operation(
                logger,
                "created",
                booking_id=booking_id,
                property_id=payment.property_id,
                status=BookingStatus.CONFIRMED.value,
                payment_id=payment.payment_id,
            )
        else:
            logger.info("Booking %s already written by another finalizer", booking_id)

        self.payments.mark_completed(
            payment.payment_id,
            booking_id=booking_id,
            payment_intent_id=payment_intent_id,
        )
        log_payment_operation(
            logger,
            "finalize",
            payment_id=payment.payment_id,
            booking_id=booking_id,
            amount=payment.amount,
            status="completed",
        )
        return FinalizationResult(
            payment_id=payment.payment_id,
            status=TransactionStatus.COMPLETED,
            booking_id=booking_id,
            stripe_payment_status=stripe_status,
            stripe_payment_intent_id=payment_intent_id,
            message="Booking confirmed",
        )

    def _refund_lost_race(
        self,
        payment: Payment,
        stripe_status: str,
        payment_intent_id: str | None,
        conflicting_ids: list[str],
    ) -> FinalizationResult:
        """Refund a payment whose dates were booked while the guest paid."""
        log_payment_operation(
            logger,
            "race_detected",
            payment_id=payment.payment_id,
            amount=payment.amount,
            conflicting_bookings=",".join(conflicting_ids),
        )

        if not payment_intent_id:
            message = "Dates no longer available and no payment intent to refund"
            self.payments.mark_failed(payment.payment_id, message)
            log_payment_operation(
                logger, "race_refund", payment_id=payment.payment_id, error=message
            )
            return FinalizationResult(
                payment_id=payment.payment_id,
                status=TransactionStatus.FAILED,
                stripe_payment_status=stripe_status,
                message=message,
            )

        try:
            refund = self.stripe.create_refund(
                payment_intent_id=payment_intent_id,
                reason="dates_unavailable",
                idempotency_key=f"race_refund_{payment.payment_id}",
            )
        except StripeServiceError as e:
            message = f"Dates no longer available; refund failed: {e}"
            self.payments.mark_failed(
                payment.payment_id, message, payment_intent_id=payment_intent_id
            )
            log_payment_operation(
                logger, "race_refund", payment_id=payment.payment_id, error=str(e)
            )
            return FinalizationResult(
                payment_id=payment.payment_id,
                status=TransactionStatus.FAILED,
                stripe_payment_status=stripe_status,
                stripe_payment_intent_id=payment_intent_id,
                message=message,
            )

        refund_amount = Decimal(refund["amount"]) / 100
        self.payments.mark_refunded(
            payment.payment_id,
            refund_amount=refund_amount,
            stripe_refund_id=refund["refund_id"],
            refunded_at=dt.datetime.now(dt.UTC),
            payment_intent_id=payment_intent_id,
            reason="Dates no longer available",
        )
        log_payment_operation(
            logger,
            "race_refund",
            payment_id=payment.payment_id,
            amount=refund_amount,
            status="refunded",
            refund_id=refund["refund_id"],
        )
        return FinalizationResult(
            payment_id=payment.payment_id,
            status=TransactionStatus.REFUNDED,
            refunded=True,
            stripe_payment_status=stripe_status,
            stripe_payment_intent_id=payment_intent_id,
            message="Dates no longer available; payment refunded",
        )

    def _already_final(self, payment: Payment) -> FinalizationResult:
        logger.info(
            "Payment %s already %s, nothing to do", payment.payment_id, payment.status.value
        )
        return FinalizationResult(
            payment_id=payment.payment_id,
            status=payment.status,
            booking_id=payment.booking_id,
            refunded=payment.status == TransactionStatus.REFUNDED,
            stripe_payment_intent_id=payment.stripe_payment_intent_id,
            message="Payment already finalized",
        )

    # Lookups

    def get_booking(self, booking_id: str) -> Booking | None:
        item = self.db.get_item(self.BOOKINGS_TABLE, {"booking_id": booking_id})
        return item_to_booking(item) if item else None

    def require_booking(self, booking_id: str, user_id: str | None = None) -> Booking:
        """Get a booking, optionally checking ``user_id`` is its guest.

        Raises:
            BookingError: BOOKING_NOT_FOUND or UNAUTHORIZED
        """
        booking = self.get_booking(booking_id)
        if booking is None:
            raise BookingError(
                ErrorCode.BOOKING_NOT_FOUND, details={"booking_id": booking_id}
            )
        if user_id is not None and booking.user_id != user_id:
            raise BookingError(ErrorCode.UNAUTHORIZED, details={"booking_id": booking_id})
        return booking

    def list_bookings_for_user(self, user_id: str) -> list[Booking]:
        """Get a guest's bookings, soonest check-in first."""
        items = self.db.query_by_gsi(
            self.BOOKINGS_TABLE, self.USER_INDEX, "user_id", user_id
        )
        return sorted(
            (item_to_booking(item) for item in items), key=lambda b: b.check_in_date
        )

    def list_bookings_for_property(self, property_id: str) -> list[Booking]:
        """Get all bookings of a property, soonest check-in first."""
        items = self.db.query_by_gsi(
            self.BOOKINGS_TABLE, self.PROPERTY_INDEX, "property_id", property_id
        )
        return sorted(
            (item_to_booking(item) for item in items), key=lambda b: b.check_in_date
        )

    # Lifecycle

    def cancel_booking(
        self,
        booking_id: str,
        user_id: str,
        today: dt.date | None = None,
    ) -> BookingCancellation:
        """Cancel a guest's booking and refund the booking fee per policy.

        Args:
            booking_id: Booking to cancel
            user_id: Calling user; must be the guest
            today: Cancellation date (defaults to the current UTC date)

        Raises:
            BookingError: BOOKING_NOT_FOUND, UNAUTHORIZED,
                BOOKING_NOT_CANCELLABLE or PAYMENT_FAILED
        """
        today = today or dt.datetime.now(dt.UTC).date()
        booking = self.require_booking(booking_id, user_id=user_id)
        if booking.status not in BLOCKING_BOOKING_STATUSES:
            raise BookingError(
                ErrorCode.BOOKING_NOT_CANCELLABLE,
                details={"booking_id": booking_id, "status": booking.status.value},
            )

        payment = (
            self.payments.get_payment(booking.payment_id) if booking.payment_id else None
        )
        refundable = (
            payment is not None
            and payment.status == TransactionStatus.COMPLETED
            and payment.stripe_payment_intent_id is not None
        )
        calculation = self.refund_policy.calculate_refund_amount(
            payment.amount if refundable else Decimal("0"),
            booking.check_in_date,
            today,
        )

        stripe_refund_id = None
        if refundable and calculation["refund_amount"] > 0:
            try:
                refund = self.stripe.create_refund(
                    payment_intent_id=payment.stripe_payment_intent_id,
                    amount_cents=to_cents(calculation["refund_amount"]),
                    reason="requested_by_customer",
                    idempotency_key=f"cancel_{booking_id}",
                )
            except StripeServiceError as e:
                log_payment_operation(
                    logger,
                    "cancel_refund",
                    payment_id=payment.payment_id,
                    booking_id=booking_id,
                    error=str(e),
                )
                raise BookingError(
                    ErrorCode.PAYMENT_FAILED,
                    details={
                        "reason": get_user_friendly_stripe_message(e.stripe_error_code)
                    },
                ) from e
            stripe_refund_id = refund["refund_id"]
            self.payments.mark_refunded(
                payment.payment_id,
                refund_amount=calculation["refund_amount"],
                stripe_refund_id=stripe_refund_id,
                refunded_at=dt.datetime.now(dt.UTC),
                reason="Cancelled by guest",
            )

        now = dt.datetime.now(dt.UTC)
        updated = self.db.update_item(
            self.BOOKINGS_TABLE,
            {"booking_id": booking_id},
            "SET #status = :cancelled, cancelled_at = :now, updated_at = :now",
            {
                ":cancelled": BookingStatus.CANCELLED.value,
                ":now": now.isoformat(),
                ":pending": BookingStatus.PENDING.value,
                ":confirmed": BookingStatus.CONFIRMED.value,
            },
            {"#status": "status"},
            condition_expression="#status = :pending OR #status = :confirmed",
        )
        if updated is None:
            raise BookingError(
                ErrorCode.BOOKING_NOT_CANCELLABLE, details={"booking_id": booking_id}
            )

        log_booking_operation(
            logger,
            "cancelled",
            booking_id=booking_id,
            property_id=booking.property_id,
            status=BookingStatus.CANCELLED.value,
            refund_amount=str(calculation["refund_amount"]),
        )
        return BookingCancellation(
            booking=item_to_booking(updated),
            refund_amount=calculation["refund_amount"],
            refund_percentage=calculation["refund_percentage"],
            policy_tier=calculation["policy_tier"],
            description=calculation["description"],
            stripe_refund_id=stripe_refund_id,
        )

    def complete_past_bookings(self, today: dt.date | None = None) -> list[Booking]:
        """Mark confirmed bookings whose check-out is on or before today as completed.

        Returns:
            The bookings that were completed
        """
        today = today or dt.datetime.now(dt.UTC).date()
        items = self.db.query_by_gsi(
            self.BOOKINGS_TABLE,
            self.STATUS_INDEX,
            "status",
            BookingStatus.CONFIRMED.value,
            filter_expression=Attr("check_out_date").lte(today.isoformat()),
        )

        completed: list[Booking] = []
        now = dt.datetime.now(dt.UTC).isoformat()
        for item in items:
            updated = self.db.update_item(
                self.BOOKINGS_TABLE,
                {"booking_id": item["booking_id"]},
                "SET #status = :completed, updated_at = :now",
                {
                    ":completed": BookingStatus.COMPLETED.value,
                    ":confirmed": BookingStatus.CONFIRMED.value,
                    ":now": now,
                },
                {"#status": "status"},
                condition_expression="#status = :confirmed",
            )
            if updated is None:
                continue
            booking = item_to_booking(updated)
            completed.append(booking)
            log_booking_operation(
                logger,
                "completed",
                booking_id=booking.booking_id,
                property_id=booking.property_id,
                status=BookingStatus.COMPLETED.value,
            )

        logger.info("Completed %d past bookings as of %s", len(completed), today)
        return completed
