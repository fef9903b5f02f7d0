"""Property endpoints for availability, calendars and price quotes.

Provides public REST endpoints for:
- Checking whether a stay overlaps existing bookings
- Listing booked nights for a calendar window
- Quoting the price breakdown of a stay

All dates are in YYYY-MM-DD format; check-out dates are exclusive.
Amounts are decimal strings in the listing currency.
"""

import datetime as dt

from fastapi import APIRouter, Depends, Query

from api.dependencies import (
    get_availability_service,
    get_pricing_service,
    get_property_service,
)
from api.models.common import ERROR_RESPONSES
from shared.models import AvailabilityResult, BookedDatesResponse, PriceBreakdown
from shared.services.availability import AvailabilityService, validate_date_range
from shared.services.pricing import PricingService
from shared.services.property_service import PropertyService

router = APIRouter(tags=["properties"])


@router.get(
    "/properties/{property_id}/availability",
    summary="Check stay availability",
    description="""
Check whether a stay overlaps any pending or confirmed booking.

**Notes:**
- A stay checking in on the day another checks out is available
- `conflicts` lists the overlapping bookings, earliest first
- This check is advisory; the final check runs when the payment completes
""",
    response_model=AvailabilityResult,
    responses={400: ERROR_RESPONSES[400], 404: ERROR_RESPONSES[404]},
)
async def check_availability(
    property_id: str,
    check_in: dt.date = Query(..., description="Check-in date (YYYY-MM-DD)"),
    check_out: dt.date = Query(..., description="Check-out date (YYYY-MM-DD)"),
    properties: PropertyService = Depends(get_property_service),
    availability: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityResult:
    """Check availability of a property for a stay."""
    properties.require_property(property_id)
    return availability.check_availability(property_id, check_in, check_out)


@router.get(
    "/properties/{property_id}/booked-dates",
    summary="Get booked nights",
    description="""
List the nights between `start` (inclusive) and `end` (exclusive) that are
held by pending or confirmed bookings. Used to grey out calendar days.
""",
    response_model=BookedDatesResponse,
    responses={400: ERROR_RESPONSES[400], 404: ERROR_RESPONSES[404]},
)
async def get_booked_dates(
    property_id: str,
    start: dt.date = Query(..., description="Window start (YYYY-MM-DD)"),
    end: dt.date = Query(..., description="Window end (YYYY-MM-DD), exclusive"),
    properties: PropertyService = Depends(get_property_service),
    availability: AvailabilityService = Depends(get_availability_service),
) -> BookedDatesResponse:
    """Get booked nights of a property inside a window."""
    validate_date_range(start, end)
    properties.require_property(property_id)
    return BookedDatesResponse(
        property_id=property_id,
        start=start,
        end=end,
        booked_dates=availability.get_booked_dates(property_id, start, end),
    )


@router.get(
    "/properties/{property_id}/quote",
    summary="Quote a stay",
    description="""
Price a stay from the listing price.

**Notes:**
- Weekly and monthly prices are converted to a nightly rate (7 and 30.44 days)
- Booking fee is 5% and security deposit 20% of the subtotal
- `total_amount` = `subtotal` + `booking_fee`, never below the currency minimum
""",
    response_model=PriceBreakdown,
    responses={
        400: ERROR_RESPONSES[400],
        404: ERROR_RESPONSES[404],
        422: ERROR_RESPONSES[422],
    },
)
async def get_quote(
    property_id: str,
    check_in: dt.date = Query(..., description="Check-in date (YYYY-MM-DD)"),
    check_out: dt.date = Query(..., description="Check-out date (YYYY-MM-DD)"),
    guests: int = Query(default=1, ge=1, description="Number of guests"),
    properties: PropertyService = Depends(get_property_service),
    pricing: PricingService = Depends(get_pricing_service),
) -> PriceBreakdown:
    """Get the price breakdown of a stay."""
    prop = properties.require_property(property_id)
    return pricing.quote(prop, check_in, check_out, guests)
