"""Payment service: checkout creation and payment records.

A payment is written as pending before the guest is sent to Stripe Checkout.
For booking fees it carries the requested stay; the booking row itself is
only created by BookingService.finalize_payment once Stripe reports the
money as collected.
"""

import datetime as dt
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from shared.models import (
    BookingError,
    BookingRequest,
    CheckoutResult,
    ErrorCode,
    Payment,
    PaymentType,
    TransactionStatus,
    get_user_friendly_stripe_message,
    to_cents,
)
from shared.utils.logging import get_logger, log_payment_operation

from .stripe_service import StripeServiceError

if TYPE_CHECKING:
    from .availability import AvailabilityService
    from .dynamodb import DynamoDBService
    from .pricing import PricingService
    from .property_service import PropertyService
    from .stripe_service import StripeService

logger = get_logger(__name__)


class PaymentService:
    """Service for creating checkouts and tracking payment status."""

    PAYMENTS_TABLE = "payments"
    USER_INDEX = "user-index"

    MAX_AMOUNT = Decimal("500000")

    def __init__(
        self,
        db: "DynamoDBService",
        stripe_service: "StripeService",
        properties: "PropertyService",
        pricing: "PricingService",
        availability: "AvailabilityService",
    ) -> None:
        """Initialize payment service.

        Args:
            db: DynamoDB service instance
            stripe_service: Stripe API wrapper
            properties: Property lookup
            pricing: Price calculator
            availability: Overlap checker for the pre-checkout check
        """
        self.db = db
        self.stripe = stripe_service
        self.properties = properties
        self.pricing = pricing
        self.availability = availability

    def _generate_payment_id(self) -> str:
        """Generate a unique payment ID like PAY-ABC123DEF456."""
        return f"PAY-{uuid.uuid4().hex[:12].upper()}"

    def create_checkout(
        self,
        *,
        user_id: str,
        user_email: str | None,
        property_id: str,
        payment_type: PaymentType,
        booking_request: BookingRequest,
        redirect_base_url: str,
    ) -> CheckoutResult:
        """Price a stay, record a pending payment and open a Stripe Checkout.

        The amount is always computed here from the stored listing price.
        The availability check at this point is optimistic: it turns away
        dates that are already taken, but the authoritative check runs again
        when the payment is finalized.

        Args:
            user_id: Paying guest
            user_email: Guest email for the Stripe receipt
            property_id: Property to book
            payment_type: booking_fee or security_deposit
            booking_request: Requested stay
            redirect_base_url: Frontend origin for success/cancel redirects

        Returns:
            CheckoutResult with the Stripe Checkout URL

        Raises:
            BookingError: PROPERTY_NOT_FOUND, PROPERTY_NOT_BOOKABLE,
                MAX_GUESTS_EXCEEDED, INVALID_DATE_RANGE, DATES_UNAVAILABLE,
                INVALID_AMOUNT or PAYMENT_FAILED
        """
        prop = self.properties.require_property(property_id)
        breakdown = self.pricing.quote(
            prop,
            booking_request.check_in_date,
            booking_request.check_out_date,
            booking_request.guests_count,
        )

        if payment_type == PaymentType.BOOKING_FEE:
            self.availability.ensure_available(
                property_id,
                booking_request.check_in_date,
                booking_request.check_out_date,
            )
            amount = breakdown.total_amount
            product_name = f"Booking Fee - {prop.title}"
            description = f"Booking for {prop.title} ({breakdown.nights} nights)"
        else:
            amount = breakdown.security_deposit
            product_name = f"Security Deposit - {prop.title}"
            description = f"Refundable security deposit for {prop.title}"

        if amount < breakdown.min_charge or amount > self.MAX_AMOUNT:
            raise BookingError(
                ErrorCode.INVALID_AMOUNT,
                details={"amount": str(amount), "currency": breakdown.currency},
            )

        now = dt.datetime.now(dt.UTC)
        payment = Payment(
            payment_id=self._generate_payment_id(),
            user_id=user_id,
            property_id=property_id,
            amount=amount,
            currency=breakdown.currency,
            payment_type=payment_type,
            status=TransactionStatus.PENDING,
            description=description,
            booking_request=booking_request,
            created_at=now,
        )
        self.db.put_item(self.PAYMENTS_TABLE, self._payment_to_item(payment))

        base = redirect_base_url.rstrip("/")
        try:
            session = self.stripe.create_checkout_session(
                payment_id=payment.payment_id,
                amount_cents=to_cents(amount),
                currency=breakdown.currency,
                product_name=product_name,
                description=description,
                customer_email=user_email,
                success_url=(
                    f"{base}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"
                    f"&payment_id={payment.payment_id}"
                ),
                cancel_url=f"{base}/payment-cancelled?payment_id={payment.payment_id}",
                metadata={
                    "property_id": property_id,
                    "payment_type": payment_type.value,
                },
            )
        except StripeServiceError as e:
            message = get_user_friendly_stripe_message(e.stripe_error_code)
            self.mark_failed(payment.payment_id, message)
            log_payment_operation(
                logger,
                "create_checkout",
                payment_id=payment.payment_id,
                amount=amount,
                error=str(e),
            )
            raise BookingError(
                ErrorCode.PAYMENT_FAILED, details={"reason": message}
            ) from e

        self.db.update_item(
            self.PAYMENTS_TABLE,
            {"payment_id": payment.payment_id},
            "SET stripe_checkout_session_id = :sid, updated_at = :now",
            {":sid": session["session_id"], ":now": now.isoformat()},
        )
        log_payment_operation(
            logger,
            "create_checkout",
            payment_id=payment.payment_id,
            amount=amount,
            status=TransactionStatus.PENDING.value,
            payment_type=payment_type.value,
            property_id=property_id,
        )

        return CheckoutResult(
            payment_id=payment.payment_id,
            amount=amount,
            currency=breakdown.currency,
            session_id=session["session_id"],
            checkout_url=session.get("checkout_url"),
            expires_at=session.get("expires_at"),
        )

    def get_payment(self, payment_id: str) -> Payment | None:
        """Get a payment by ID, read consistently.

        Args:
            payment_id: Payment ID

        Returns:
            Payment object or None if not found
        """
        item = self.db.get_item(
            self.PAYMENTS_TABLE, {"payment_id": payment_id}, consistent_read=True
        )
        return self._item_to_payment(item) if item else None

    def require_payment(self, payment_id: str, user_id: str | None = None) -> Payment:
        """Get a payment, optionally checking it belongs to ``user_id``.

        Raises:
            BookingError: PAYMENT_NOT_FOUND or UNAUTHORIZED
        """
        payment = self.get_payment(payment_id)
        if payment is None:
            raise BookingError(
                ErrorCode.PAYMENT_NOT_FOUND, details={"payment_id": payment_id}
            )
        if user_id is not None and payment.user_id != user_id:
            raise BookingError(
                ErrorCode.UNAUTHORIZED, details={"payment_id": payment_id}
            )
        return payment

    def list_payments_for_user(self, user_id: str) -> list[Payment]:
        """Get all payments made by a user, newest first."""
        items = self.db.query_by_gsi(
            self.PAYMENTS_TABLE, self.USER_INDEX, "user_id", user_id
        )
        payments = [self._item_to_payment(item) for item in items]
        return sorted(payments, key=lambda p: p.created_at, reverse=True)

    def find_by_payment_intent(self, payment_intent_id: str) -> Payment | None:
        """Find the payment for a Stripe PaymentIntent.

        Stripe refund events carry only the intent; the payments table has no
        index on it, so this scans with a filter.
        """
        items = self.db.scan(
            self.PAYMENTS_TABLE,
            "stripe_payment_intent_id",
            payment_intent_id,
        )
        return self._item_to_payment(items[0]) if items else None

    def mark_completed(
        self,
        payment_id: str,
        *,
        booking_id: str | None = None,
        payment_intent_id: str | None = None,
    ) -> bool:
        """Mark a payment completed, unless it already reached a final state.

        Returns:
            True if the payment was updated
        """
        now = dt.datetime.now(dt.UTC).isoformat()
        update = "SET #status = :status, completed_at = :now, updated_at = :now"
        values: dict[str, Any] = {
            ":status": TransactionStatus.COMPLETED.value,
            ":now": now,
            ":completed": TransactionStatus.COMPLETED.value,
            ":refunded": TransactionStatus.REFUNDED.value,
        }
        if booking_id:
            update += ", booking_id = :bid"
            values[":bid"] = booking_id
        if payment_intent_id:
            update += ", stripe_payment_intent_id = :pi"
            values[":pi"] = payment_intent_id

        result = self.db.update_item(
            self.PAYMENTS_TABLE,
            {"payment_id": payment_id},
            update,
            values,
            {"#status": "status"},  # status is a reserved word
            condition_expression="#status <> :completed AND #status <> :refunded",
        )
        return result is not None

    def mark_failed(
        self,
        payment_id: str,
        error_message: str,
        *,
        payment_intent_id: str | None = None,
    ) -> None:
        """Mark a payment failed with the reason."""
        now = dt.datetime.now(dt.UTC).isoformat()
        update = "SET #status = :status, error_message = :err, updated_at = :now"
        values: dict[str, Any] = {
            ":status": TransactionStatus.FAILED.value,
            ":err": error_message,
            ":now": now,
        }
        if payment_intent_id:
            update += ", stripe_payment_intent_id = :pi"
            values[":pi"] = payment_intent_id
        self.db.update_item(
            self.PAYMENTS_TABLE,
            {"payment_id": payment_id},
            update,
            values,
            {"#status": "status"},
        )

    def mark_refunded(
        self,
        payment_id: str,
        *,
        refund_amount: Decimal,
        stripe_refund_id: str | None,
        refunded_at: dt.datetime,
        payment_intent_id: str | None = None,
        reason: str | None = None,
    ) -> None:
        """Update payment record with refund details.

        Args:
            payment_id: Payment ID to update
            refund_amount: Refund amount in currency units
            stripe_refund_id: Stripe Refund ID (e.g., re_xxx)
            refunded_at: Timestamp of refund
            payment_intent_id: PaymentIntent the refund was issued against
            reason: Why the refund happened, kept in error_message
        """
        update = (
            "SET #status = :status, refund_amount = :amount, "
            "refunded_at = :rat, updated_at = :rat"
        )
        values: dict[str, Any] = {
            ":status": TransactionStatus.REFUNDED.value,
            ":amount": refund_amount,
            ":rat": refunded_at.isoformat(),
        }
        if stripe_refund_id:
            update += ", stripe_refund_id = :rid"
            values[":rid"] = stripe_refund_id
        if payment_intent_id:
            update += ", stripe_payment_intent_id = :pi"
            values[":pi"] = payment_intent_id
        if reason:
            update += ", error_message = :reason"
            values[":reason"] = reason
        self.db.update_item(
            self.PAYMENTS_TABLE,
            {"payment_id": payment_id},
            update,
            values,
            {"#status": "status"},
        )

    # Conversion helpers

    def _payment_to_item(self, payment: Payment) -> dict[str, Any]:
        """Convert Payment model to DynamoDB item."""
        item: dict[str, Any] = {
            "payment_id": payment.payment_id,
            "user_id": payment.user_id,
            "property_id": payment.property_id,
            "amount": payment.amount,
            "currency": payment.currency,
            "payment_type": payment.payment_type.value,
            "status": payment.status.value,
            "created_at": payment.created_at.isoformat(),
        }
        if payment.description:
            item["description"] = payment.description
        if payment.booking_request:
            request = payment.booking_request
            item["booking_request"] = {
                "check_in_date": request.check_in_date.isoformat(),
                "check_out_date": request.check_out_date.isoformat(),
                "guests_count": request.guests_count,
            }
            if request.special_requests:
                item["booking_request"]["special_requests"] = request.special_requests
            if request.contact_phone:
                item["booking_request"]["contact_phone"] = request.contact_phone
        if payment.booking_id:
            item["booking_id"] = payment.booking_id
        if payment.updated_at:
            item["updated_at"] = payment.updated_at.isoformat()
        if payment.completed_at:
            item["completed_at"] = payment.completed_at.isoformat()
        if payment.error_message:
            item["error_message"] = payment.error_message
        # Stripe-specific fields
        if payment.stripe_checkout_session_id:
            item["stripe_checkout_session_id"] = payment.stripe_checkout_session_id
        if payment.stripe_payment_intent_id:
            item["stripe_payment_intent_id"] = payment.stripe_payment_intent_id
        if payment.stripe_refund_id:
            item["stripe_refund_id"] = payment.stripe_refund_id
        if payment.refund_amount is not None:
            item["refund_amount"] = payment.refund_amount
        if payment.refunded_at:
            item["refunded_at"] = payment.refunded_at.isoformat()
        return item

    def _item_to_payment(self, item: dict[str, Any]) -> Payment:
        """Convert DynamoDB item to Payment model."""
        raw_request = item.get("booking_request")
        booking_request = (
            BookingRequest(
                check_in_date=dt.date.fromisoformat(raw_request["check_in_date"]),
                check_out_date=dt.date.fromisoformat(raw_request["check_out_date"]),
                guests_count=int(raw_request.get("guests_count", 1)),
                special_requests=raw_request.get("special_requests"),
                contact_phone=raw_request.get("contact_phone"),
            )
            if raw_request
            else None
        )

        def _ts(field: str) -> dt.datetime | None:
            return dt.datetime.fromisoformat(item[field]) if item.get(field) else None

        return Payment(
            payment_id=item["payment_id"],
            user_id=item["user_id"],
            property_id=item["property_id"],
            amount=Decimal(str(item["amount"])),
            currency=item.get("currency", "EUR"),
            payment_type=PaymentType(item["payment_type"]),
            status=TransactionStatus(item["status"]),
            description=item.get("description"),
            booking_request=booking_request,
            booking_id=item.get("booking_id"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=_ts("updated_at"),
            completed_at=_ts("completed_at"),
            error_message=item.get("error_message"),
            stripe_checkout_session_id=item.get("stripe_checkout_session_id"),
            stripe_payment_intent_id=item.get("stripe_payment_intent_id"),
            stripe_refund_id=item.get("stripe_refund_id"),
            refund_amount=(
                Decimal(str(item["refund_amount"]))
                if item.get("refund_amount") is not None
                else None
            ),
            refunded_at=_ts("refunded_at"),
        )
