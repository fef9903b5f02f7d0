"""Payment endpoints for Stripe Checkout.

Provides REST endpoints for:
- Starting a checkout for a stay (JWT required)
- Verifying a checkout after the Stripe redirect (JWT required)
- Getting payment status (JWT required, owner only)

Protected endpoints require JWT token via Authorization header.
API Gateway validates the JWT and passes user identity via x-user-sub header.
"""

from fastapi import APIRouter, Depends
from starlette.status import HTTP_201_CREATED

from api.dependencies import get_app_url, get_booking_service, get_payment_service
from api.models.common import ERROR_RESPONSES
from api.models.payments import CheckoutRequest, VerifyPaymentRequest
from api.security import CurrentUser, get_current_user
from shared.models import CheckoutResult, FinalizationResult, Payment
from shared.services.booking import BookingService
from shared.services.payment_service import PaymentService

router = APIRouter(tags=["payments"])


@router.post(
    "/payments",
    summary="Start checkout",
    description="""
Price a stay and open a Stripe Checkout session for it.

**Requires JWT authentication.**

**Notes:**
- Amount is computed from the listing (not user-provided)
- Dates already booked are refused with 409 before any charge
- No booking exists until the payment completes; redirect the guest to
  `checkout_url` and call `/payments/verify` from the success page
""",
    response_model=CheckoutResult,
    status_code=HTTP_201_CREATED,
    responses={
        code: ERROR_RESPONSES[code] for code in (400, 401, 402, 404, 409, 422)
    },
)
async def create_checkout(
    body: CheckoutRequest,
    user: CurrentUser = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service),
) -> CheckoutResult:
    """Start a Stripe Checkout for the caller."""
    return payment_service.create_checkout(
        user_id=user.user_id,
        user_email=user.email,
        property_id=body.property_id,
        payment_type=body.payment_type,
        booking_request=body.to_booking_request(),
        redirect_base_url=body.redirect_base_url or get_app_url(),
    )


@router.post(
    "/payments/verify",
    summary="Verify checkout",
    description="""
Confirm the outcome of a Stripe Checkout and finalize the payment.

**Requires JWT authentication.** Only the paying user can verify.

**Notes:**
- Safe to call repeatedly; the webhook may already have finalized the payment
- If the dates were booked by someone else meanwhile, the payment is
  refunded and `refunded` is true
""",
    response_model=FinalizationResult,
    responses={code: ERROR_RESPONSES[code] for code in (401, 402, 403, 404)},
)
async def verify_payment(
    body: VerifyPaymentRequest,
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> FinalizationResult:
    """Finalize the caller's payment after the Stripe redirect."""
    return booking_service.verify_payment(body.payment_id, body.session_id, user.user_id)


@router.get(
    "/payments/{payment_id}",
    summary="Get payment status",
    response_model=Payment,
    responses={code: ERROR_RESPONSES[code] for code in (401, 403, 404)},
)
async def get_payment(
    payment_id: str,
    user: CurrentUser = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service),
) -> Payment:
    """Get one of the caller's payments."""
    return payment_service.require_payment(payment_id, user_id=user.user_id)
