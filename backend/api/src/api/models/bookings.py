"""API models for booking endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from shared.models import Booking


class BookingListResponse(BaseModel):
    """The caller's bookings."""

    model_config = ConfigDict(strict=True)

    bookings: list[Booking] = Field(default_factory=list)
    total_count: int = Field(..., ge=0)
