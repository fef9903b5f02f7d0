"""Booking endpoints for guests.

Provides REST endpoints for:
- Listing the caller's bookings
- Retrieving one booking (guest only)
- Cancelling a booking with a policy-based refund

Bookings are created by payment finalization, never directly.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_booking_service
from api.models.bookings import BookingListResponse
from api.models.common import ERROR_RESPONSES
from api.security import CurrentUser, get_current_user
from shared.models import Booking, BookingCancellation
from shared.services.booking import BookingService

router = APIRouter(tags=["bookings"])


@router.get(
    "/bookings",
    summary="List my bookings",
    response_model=BookingListResponse,
    responses={401: ERROR_RESPONSES[401]},
)
async def list_my_bookings(
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    """List the caller's bookings, soonest check-in first."""
    bookings = booking_service.list_bookings_for_user(user.user_id)
    return BookingListResponse(bookings=bookings, total_count=len(bookings))


@router.get(
    "/bookings/{booking_id}",
    summary="Get booking",
    response_model=Booking,
    responses={code: ERROR_RESPONSES[code] for code in (401, 403, 404)},
)
async def get_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> Booking:
    """Get one of the caller's bookings."""
    return booking_service.require_booking(booking_id, user_id=user.user_id)


@router.post(
    "/bookings/{booking_id}/cancel",
    summary="Cancel booking",
    description="""
Cancel a pending or confirmed booking. The booking fee is refunded per the
cancellation policy:
- 14+ days before check-in: 100%
- 7-13 days before check-in: 50%
- Less than 7 days: no refund

The nights become available to other guests immediately.
""",
    response_model=BookingCancellation,
    responses={code: ERROR_RESPONSES[code] for code in (401, 402, 403, 404, 409)},
)
async def cancel_booking(
    booking_id: str,
    user: CurrentUser = Depends(get_current_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingCancellation:
    """Cancel one of the caller's bookings."""
    return booking_service.cancel_booking(booking_id, user.user_id)
