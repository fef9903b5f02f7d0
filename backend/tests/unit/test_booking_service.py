"""Unit tests for BookingService.

Covers payment finalization (booking creation, idempotency, refund when the
dates were taken while the guest was paying), booking lookups, guest
cancellation with policy refunds and the completion sweep.
"""

import datetime as dt
from decimal import Decimal

import pytest

from shared.models import (
    BookingError,
    BookingStatus,
    ErrorCode,
    PaymentType,
    TransactionStatus,
)
from shared.services.booking import booking_id_for_payment
from shared.services.stripe_service import StripeServiceError

GUEST_ID = "guest-123-abc"
OTHER_GUEST_ID = "guest-456-def"
PROPERTY_ID = "prop-algiers-01"


def _paid_session(payment_intent_id: str = "pi_test_456", status: str = "paid") -> dict:
    return {
        "session_id": "cs_test_123",
        "payment_status": status,
        "payment_intent_id": payment_intent_id,
    }


def test_booking_id_is_derived_from_payment_id() -> None:
    assert booking_id_for_payment("PAY-ABC123DEF456") == "BK-ABC123DEF456"


class TestFinalizePayment:
    def test_paid_booking_fee_creates_confirmed_booking(
        self, start_checkout, booking_service, payment_service
    ) -> None:
        checkout = start_checkout()

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert result.status == TransactionStatus.COMPLETED
        assert result.booking_id == booking_id_for_payment(checkout.payment_id)
        assert not result.refunded

        booking = booking_service.get_booking(result.booking_id)
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.user_id == GUEST_ID
        assert booking.check_in_date == dt.date(2030, 7, 10)
        assert booking.check_out_date == dt.date(2030, 7, 15)
        assert booking.total_amount == Decimal("525.00")
        assert booking.payment_id == checkout.payment_id

        payment = payment_service.get_payment(checkout.payment_id)
        assert payment.status == TransactionStatus.COMPLETED
        assert payment.booking_id == result.booking_id
        assert payment.stripe_payment_intent_id == "pi_test_456"

    def test_no_payment_required_counts_as_paid(
        self, start_checkout, booking_service
    ) -> None:
        checkout = start_checkout()

        result = booking_service.finalize_payment(
            checkout.payment_id, _paid_session(status="no_payment_required")
        )
        assert result.status == TransactionStatus.COMPLETED
        assert result.booking_id is not None

    def test_finalizing_twice_creates_one_booking(
        self, start_checkout, booking_service, mock_stripe
    ) -> None:
        checkout = start_checkout()

        first = booking_service.finalize_payment(checkout.payment_id, _paid_session())
        second = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert second.status == TransactionStatus.COMPLETED
        assert second.booking_id == first.booking_id
        assert len(booking_service.list_bookings_for_property(PROPERTY_ID)) == 1
        mock_stripe.create_refund.assert_not_called()

    def test_booking_already_written_by_other_finalizer(
        self, start_checkout, booking_service, make_booking, payment_service
    ) -> None:
        checkout = start_checkout()
        booking_id = booking_id_for_payment(checkout.payment_id)
        # The other finalizer wrote the booking but had not updated the payment yet
        make_booking(
            booking_id,
            dt.date(2030, 7, 10),
            dt.date(2030, 7, 15),
            user_id=GUEST_ID,
            payment_id=checkout.payment_id,
        )

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert result.status == TransactionStatus.COMPLETED
        assert result.booking_id == booking_id
        assert len(booking_service.list_bookings_for_property(PROPERTY_ID)) == 1
        assert payment_service.get_payment(checkout.payment_id).booking_id == booking_id

    def test_unpaid_session_fails_payment(
        self, start_checkout, booking_service, payment_service
    ) -> None:
        checkout = start_checkout()

        result = booking_service.finalize_payment(
            checkout.payment_id, _paid_session(status="unpaid")
        )

        assert result.status == TransactionStatus.FAILED
        assert result.booking_id is None
        assert payment_service.get_payment(checkout.payment_id).status == (
            TransactionStatus.FAILED
        )
        assert booking_service.list_bookings_for_property(PROPERTY_ID) == []

    def test_unknown_stripe_status_leaves_payment_pending(
        self, start_checkout, booking_service, payment_service
    ) -> None:
        checkout = start_checkout()

        result = booking_service.finalize_payment(
            checkout.payment_id, _paid_session(status="processing")
        )

        assert result.status == TransactionStatus.PENDING
        assert payment_service.get_payment(checkout.payment_id).status == (
            TransactionStatus.PENDING
        )

    def test_security_deposit_never_creates_booking(
        self, start_checkout, booking_service, payment_service
    ) -> None:
        checkout = start_checkout(payment_type=PaymentType.SECURITY_DEPOSIT)

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert result.status == TransactionStatus.COMPLETED
        assert result.booking_id is None
        assert booking_service.list_bookings_for_property(PROPERTY_ID) == []
        payment = payment_service.get_payment(checkout.payment_id)
        assert payment.payment_type == PaymentType.SECURITY_DEPOSIT
        assert payment.status == TransactionStatus.COMPLETED

    def test_booking_fee_without_stay_completes_without_booking(
        self, start_checkout, booking_service, payment_service, db
    ) -> None:
        checkout = start_checkout()
        item = db.get_item("payments", {"payment_id": checkout.payment_id})
        del item["booking_request"]
        db.put_item("payments", item)

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert result.status == TransactionStatus.COMPLETED
        assert result.booking_id is None
        assert booking_service.list_bookings_for_property(PROPERTY_ID) == []
        assert payment_service.get_payment(checkout.payment_id).status == (
            TransactionStatus.COMPLETED
        )

    def test_unknown_payment(self, booking_service, db) -> None:
        with pytest.raises(BookingError) as exc_info:
            booking_service.finalize_payment("PAY-MISSING", _paid_session())
        assert exc_info.value.code == ErrorCode.PAYMENT_NOT_FOUND


class TestLostRace:
    """Dates were booked by someone else while the guest was on Stripe."""

    def test_conflict_refunds_in_full(
        self, start_checkout, booking_service, payment_service, make_booking, mock_stripe
    ) -> None:
        checkout = start_checkout()
        make_booking("BK-winner", dt.date(2030, 7, 12), dt.date(2030, 7, 18))

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert result.status == TransactionStatus.REFUNDED
        assert result.refunded
        assert result.booking_id is None
        mock_stripe.create_refund.assert_called_once_with(
            payment_intent_id="pi_test_456",
            reason="dates_unavailable",
            idempotency_key=f"race_refund_{checkout.payment_id}",
        )

        payment = payment_service.get_payment(checkout.payment_id)
        assert payment.status == TransactionStatus.REFUNDED
        assert payment.refund_amount == Decimal("525.00")
        assert payment.stripe_refund_id == "re_test_123"
        assert [b.booking_id for b in booking_service.list_bookings_for_property(PROPERTY_ID)] == [
            "BK-winner"
        ]

    def test_pending_booking_also_wins(
        self, start_checkout, booking_service, make_booking
    ) -> None:
        checkout = start_checkout()
        make_booking(
            "BK-winner", dt.date(2030, 7, 14), dt.date(2030, 7, 16), BookingStatus.PENDING
        )

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())
        assert result.status == TransactionStatus.REFUNDED

    def test_cancelled_booking_does_not_block(
        self, start_checkout, booking_service, make_booking
    ) -> None:
        checkout = start_checkout()
        make_booking(
            "BK-old", dt.date(2030, 7, 10), dt.date(2030, 7, 15), BookingStatus.CANCELLED
        )

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())
        assert result.status == TransactionStatus.COMPLETED

    def test_refund_failure_marks_payment_failed(
        self, start_checkout, booking_service, payment_service, make_booking, mock_stripe
    ) -> None:
        checkout = start_checkout()
        make_booking("BK-winner", dt.date(2030, 7, 10), dt.date(2030, 7, 15))
        mock_stripe.create_refund.side_effect = StripeServiceError(
            "Failed to create refund", stripe_error_code="processing_error"
        )

        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert result.status == TransactionStatus.FAILED
        assert not result.refunded
        assert "refund failed" in result.message

        payment = payment_service.get_payment(checkout.payment_id)
        assert payment.status == TransactionStatus.FAILED
        assert "refund failed" in payment.error_message
        assert payment.stripe_payment_intent_id == "pi_test_456"

    def test_no_payment_intent_marks_payment_failed(
        self, start_checkout, booking_service, make_booking, mock_stripe
    ) -> None:
        checkout = start_checkout()
        make_booking("BK-winner", dt.date(2030, 7, 10), dt.date(2030, 7, 15))

        result = booking_service.finalize_payment(
            checkout.payment_id, _paid_session(payment_intent_id=None)
        )

        assert result.status == TransactionStatus.FAILED
        mock_stripe.create_refund.assert_not_called()

    def test_refunded_payment_is_not_refunded_again(
        self, start_checkout, booking_service, make_booking, mock_stripe
    ) -> None:
        checkout = start_checkout()
        make_booking("BK-winner", dt.date(2030, 7, 10), dt.date(2030, 7, 15))
        booking_service.finalize_payment(checkout.payment_id, _paid_session())

        again = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        assert again.status == TransactionStatus.REFUNDED
        assert again.refunded
        assert mock_stripe.create_refund.call_count == 1


class TestVerifyPayment:
    def test_verifies_through_stripe_session(
        self, start_checkout, booking_service, mock_stripe
    ) -> None:
        checkout = start_checkout()
        mock_stripe.retrieve_checkout_session.return_value = {
            **_paid_session(),
            "metadata": {"payment_id": checkout.payment_id},
        }

        result = booking_service.verify_payment(
            checkout.payment_id, checkout.session_id, GUEST_ID
        )

        mock_stripe.retrieve_checkout_session.assert_called_once_with(checkout.session_id)
        assert result.status == TransactionStatus.COMPLETED
        assert result.booking_id == booking_id_for_payment(checkout.payment_id)

    def test_other_users_payment_is_rejected(
        self, start_checkout, booking_service, mock_stripe
    ) -> None:
        checkout = start_checkout()

        with pytest.raises(BookingError) as exc_info:
            booking_service.verify_payment(
                checkout.payment_id, checkout.session_id, OTHER_GUEST_ID
            )

        assert exc_info.value.code == ErrorCode.UNAUTHORIZED
        mock_stripe.retrieve_checkout_session.assert_not_called()

    def test_session_for_another_payment_is_rejected(
        self, start_checkout, booking_service, mock_stripe
    ) -> None:
        checkout = start_checkout()
        mock_stripe.retrieve_checkout_session.return_value = {
            **_paid_session(),
            "metadata": {"payment_id": "PAY-SOMEONEELSE"},
        }

        with pytest.raises(BookingError) as exc_info:
            booking_service.verify_payment(checkout.payment_id, "cs_other", GUEST_ID)

        assert exc_info.value.code == ErrorCode.UNAUTHORIZED

    def test_stripe_lookup_failure(self, start_checkout, booking_service, mock_stripe) -> None:
        checkout = start_checkout()
        mock_stripe.retrieve_checkout_session.side_effect = StripeServiceError(
            "Failed to retrieve checkout session"
        )

        with pytest.raises(BookingError) as exc_info:
            booking_service.verify_payment(
                checkout.payment_id, checkout.session_id, GUEST_ID
            )

        assert exc_info.value.code == ErrorCode.PAYMENT_FAILED

    def test_final_payment_skips_stripe(
        self, start_checkout, booking_service, mock_stripe
    ) -> None:
        checkout = start_checkout()
        first = booking_service.finalize_payment(checkout.payment_id, _paid_session())

        result = booking_service.verify_payment(
            checkout.payment_id, checkout.session_id, GUEST_ID
        )

        assert result.booking_id == first.booking_id
        mock_stripe.retrieve_checkout_session.assert_not_called()


class TestBookingLookups:
    def test_require_booking_checks_guest(self, booking_service, make_booking) -> None:
        make_booking("BK-1", dt.date(2030, 7, 10), dt.date(2030, 7, 15), user_id=GUEST_ID)

        assert booking_service.require_booking("BK-1", GUEST_ID).booking_id == "BK-1"
        with pytest.raises(BookingError) as exc_info:
            booking_service.require_booking("BK-1", OTHER_GUEST_ID)
        assert exc_info.value.code == ErrorCode.UNAUTHORIZED

    def test_require_booking_not_found(self, booking_service) -> None:
        with pytest.raises(BookingError) as exc_info:
            booking_service.require_booking("BK-MISSING")
        assert exc_info.value.code == ErrorCode.BOOKING_NOT_FOUND

    def test_list_bookings_for_user_sorted_by_check_in(
        self, booking_service, make_booking
    ) -> None:
        make_booking("BK-aug", dt.date(2030, 8, 1), dt.date(2030, 8, 3), user_id=GUEST_ID)
        make_booking("BK-jul", dt.date(2030, 7, 1), dt.date(2030, 7, 3), user_id=GUEST_ID)
        make_booking("BK-other", dt.date(2030, 6, 1), dt.date(2030, 6, 3))

        bookings = booking_service.list_bookings_for_user(GUEST_ID)
        assert [b.booking_id for b in bookings] == ["BK-jul", "BK-aug"]


class TestCancelBooking:
    @pytest.fixture
    def confirmed(self, start_checkout, booking_service):
        checkout = start_checkout()
        result = booking_service.finalize_payment(checkout.payment_id, _paid_session())
        return result

    def test_full_refund_two_weeks_ahead(
        self, confirmed, booking_service, payment_service, mock_stripe
    ) -> None:
        cancellation = booking_service.cancel_booking(
            confirmed.booking_id, GUEST_ID, today=dt.date(2030, 6, 20)
        )

        assert cancellation.booking.status == BookingStatus.CANCELLED
        assert cancellation.booking.cancelled_at is not None
        assert cancellation.refund_amount == Decimal("525.00")
        assert cancellation.policy_tier == "full"
        assert cancellation.stripe_refund_id == "re_test_123"
        mock_stripe.create_refund.assert_called_once_with(
            payment_intent_id="pi_test_456",
            amount_cents=52500,
            reason="requested_by_customer",
            idempotency_key=f"cancel_{confirmed.booking_id}",
        )
        payment = payment_service.get_payment(confirmed.payment_id)
        assert payment.status == TransactionStatus.REFUNDED

    def test_half_refund_one_week_ahead(
        self, confirmed, booking_service, mock_stripe
    ) -> None:
        cancellation = booking_service.cancel_booking(
            confirmed.booking_id, GUEST_ID, today=dt.date(2030, 7, 1)
        )

        assert cancellation.refund_amount == Decimal("262.50")
        assert cancellation.refund_percentage == 50
        assert mock_stripe.create_refund.call_args.kwargs["amount_cents"] == 26250

    def test_no_refund_in_last_week_frees_dates(
        self, confirmed, booking_service, availability_service, mock_stripe
    ) -> None:
        cancellation = booking_service.cancel_booking(
            confirmed.booking_id, GUEST_ID, today=dt.date(2030, 7, 8)
        )

        assert cancellation.refund_amount == Decimal("0")
        assert cancellation.stripe_refund_id is None
        mock_stripe.create_refund.assert_not_called()
        assert availability_service.check_availability(
            PROPERTY_ID, dt.date(2030, 7, 10), dt.date(2030, 7, 15)
        ).is_available

    def test_only_guest_can_cancel(self, confirmed, booking_service) -> None:
        with pytest.raises(BookingError) as exc_info:
            booking_service.cancel_booking(confirmed.booking_id, OTHER_GUEST_ID)
        assert exc_info.value.code == ErrorCode.UNAUTHORIZED

    def test_cancelled_booking_cannot_be_cancelled_again(
        self, confirmed, booking_service
    ) -> None:
        booking_service.cancel_booking(
            confirmed.booking_id, GUEST_ID, today=dt.date(2030, 7, 8)
        )

        with pytest.raises(BookingError) as exc_info:
            booking_service.cancel_booking(
                confirmed.booking_id, GUEST_ID, today=dt.date(2030, 7, 8)
            )
        assert exc_info.value.code == ErrorCode.BOOKING_NOT_CANCELLABLE

    def test_refund_failure_keeps_booking(
        self, confirmed, booking_service, mock_stripe
    ) -> None:
        mock_stripe.create_refund.side_effect = StripeServiceError(
            "Failed to create refund", stripe_error_code="charge_already_refunded"
        )

        with pytest.raises(BookingError) as exc_info:
            booking_service.cancel_booking(
                confirmed.booking_id, GUEST_ID, today=dt.date(2030, 6, 1)
            )

        assert exc_info.value.code == ErrorCode.PAYMENT_FAILED
        booking = booking_service.get_booking(confirmed.booking_id)
        assert booking.status == BookingStatus.CONFIRMED

    def test_booking_without_payment_is_cancelled_without_refund(
        self, booking_service, make_booking, mock_stripe
    ) -> None:
        make_booking("BK-manual", dt.date(2030, 7, 10), dt.date(2030, 7, 15), user_id=GUEST_ID)

        cancellation = booking_service.cancel_booking(
            "BK-manual", GUEST_ID, today=dt.date(2030, 6, 1)
        )

        assert cancellation.booking.status == BookingStatus.CANCELLED
        assert cancellation.refund_amount == Decimal("0")
        mock_stripe.create_refund.assert_not_called()


class TestCompletePastBookings:
    def test_completes_confirmed_stays_that_ended(
        self, booking_service, make_booking
    ) -> None:
        make_booking("BK-ended", dt.date(2030, 7, 1), dt.date(2030, 7, 5))
        make_booking("BK-today", dt.date(2030, 7, 5), dt.date(2030, 7, 10))
        make_booking("BK-ongoing", dt.date(2030, 7, 8), dt.date(2030, 7, 12))
        make_booking(
            "BK-cancelled", dt.date(2030, 7, 1), dt.date(2030, 7, 3), BookingStatus.CANCELLED
        )

        completed = booking_service.complete_past_bookings(today=dt.date(2030, 7, 10))

        assert sorted(b.booking_id for b in completed) == ["BK-ended", "BK-today"]
        assert booking_service.get_booking("BK-ended").status == BookingStatus.COMPLETED
        assert booking_service.get_booking("BK-ongoing").status == BookingStatus.CONFIRMED
        assert booking_service.get_booking("BK-cancelled").status == BookingStatus.CANCELLED

    def test_nothing_to_complete(self, booking_service, make_booking) -> None:
        make_booking("BK-future", dt.date(2030, 8, 1), dt.date(2030, 8, 5))
        assert booking_service.complete_past_bookings(today=dt.date(2030, 7, 10)) == []
