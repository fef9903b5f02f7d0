"""Price breakdown model."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import PriceType


def to_cents(amount: Decimal) -> int:
    """Convert a 2-decimal currency amount to integer minor units."""
    return int((amount * 100).to_integral_value())


class PriceBreakdown(BaseModel):
    """Price of a stay.

    Invariant: ``total_amount == subtotal + booking_fee`` and
    ``total_amount >= min_charge``.
    """

    model_config = ConfigDict(strict=True)

    check_in: dt.date
    check_out: dt.date
    price_type: PriceType
    nightly_rate: Decimal = Field(..., ge=0, description="Rate per night, 2 decimals")
    nights: int = Field(..., ge=1)
    subtotal: Decimal = Field(..., ge=0)
    booking_fee: Decimal = Field(..., ge=0)
    security_deposit: Decimal = Field(..., ge=0)
    total_amount: Decimal = Field(..., ge=0)
    currency: str = Field(default="EUR")
    min_charge: Decimal = Field(..., ge=0)

    @property
    def total_cents(self) -> int:
        return to_cents(self.total_amount)

    @property
    def security_deposit_cents(self) -> int:
        return to_cents(self.security_deposit)
