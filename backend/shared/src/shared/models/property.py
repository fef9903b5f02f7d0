"""Property listing model."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import PriceType, PropertyCategory


class Property(BaseModel):
    """A listed property.

    Only the fields the booking flow relies on are modelled here; the
    listing content itself (photos, amenities, descriptions) lives elsewhere.
    """

    model_config = ConfigDict(strict=True)

    property_id: str = Field(..., description="Unique property ID")
    owner_id: str = Field(..., description="User ID of the host")
    title: str = Field(..., description="Listing title")
    price: Decimal = Field(..., ge=0, description="Listing price in currency units")
    price_type: PriceType = Field(..., description="Period the price refers to")
    currency: str = Field(default="EUR", description="ISO currency code")
    category: PropertyCategory = Field(..., description="sale, rent or short-stay")
    max_guests: int | None = Field(
        default=None, ge=1, description="Guest capacity, if the host set one"
    )
    is_active: bool = Field(default=True, description="Whether the listing is live")
    created_at: datetime | None = Field(default=None)

    @property
    def is_bookable(self) -> bool:
        """Sale listings and inactive listings cannot be booked."""
        return self.is_active and self.category != PropertyCategory.SALE
