"""Pricing service: turns a listing price into a stay price breakdown.

All arithmetic is done on Decimal amounts in currency units and rounded
half-up to cents at each published step.
"""

import datetime as dt
from decimal import ROUND_HALF_UP, Decimal

from shared.models import (
    BookingError,
    ErrorCode,
    PriceBreakdown,
    PriceType,
    Property,
)

from .availability import validate_date_range

CENTS = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    """Round to two decimals, half-up."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


class PricingService:
    """Service for stay price calculations."""

    DAYS_PER_MONTH = Decimal("30.44")  # Average days per month
    DAYS_PER_WEEK = Decimal("7")

    BOOKING_FEE_RATE = Decimal("0.05")
    SECURITY_DEPOSIT_RATE = Decimal("0.20")

    # Smallest amount Stripe will charge per currency
    MIN_CHARGES: dict[str, Decimal] = {
        "EUR": Decimal("0.50"),
        "USD": Decimal("0.50"),
        "GBP": Decimal("0.30"),
    }
    DEFAULT_MIN_CHARGE = Decimal("0.50")

    def min_charge(self, currency: str) -> Decimal:
        return self.MIN_CHARGES.get(currency.upper(), self.DEFAULT_MIN_CHARGE)

    def nightly_rate(self, price: Decimal, price_type: PriceType) -> Decimal:
        """Convert a listing price to an unrounded per-night rate.

        Daily prices are used as-is; weekly and monthly prices are spread over
        7 and 30.44 days. A ``total`` price has no period and is used as-is.
        Only amounts derived from the rate are rounded, so a full week or month
        costs exactly the listing price.
        """
        if price_type == PriceType.MONTHLY:
            return price / self.DAYS_PER_MONTH
        if price_type == PriceType.WEEKLY:
            return price / self.DAYS_PER_WEEK
        return price

    @staticmethod
    def count_nights(check_in: dt.date, check_out: dt.date) -> int:
        """Nights between the dates, never fewer than one."""
        return max(1, (check_out - check_in).days)

    def calculate_price(
        self,
        price: Decimal,
        price_type: PriceType,
        check_in: dt.date,
        check_out: dt.date,
        currency: str = "EUR",
    ) -> PriceBreakdown:
        """Break a stay down into subtotal, booking fee, deposit and total.

        The total is clamped to the currency's minimum charge. When that
        happens the booking fee absorbs the difference, so the total is still
        exactly subtotal plus booking fee.

        Args:
            price: Listing price in currency units
            price_type: Period the listing price refers to
            check_in: Check-in date
            check_out: Check-out date
            currency: ISO currency code

        Returns:
            PriceBreakdown for the stay
        """
        nightly = self.nightly_rate(price, price_type)
        nights = self.count_nights(check_in, check_out)

        subtotal = round_money(nightly * nights)
        booking_fee = round_money(subtotal * self.BOOKING_FEE_RATE)
        security_deposit = round_money(subtotal * self.SECURITY_DEPOSIT_RATE)

        min_charge = self.min_charge(currency)
        total = round_money(subtotal + booking_fee)
        if total < min_charge:
            booking_fee = min_charge - subtotal
            total = min_charge

        return PriceBreakdown(
            check_in=check_in,
            check_out=check_out,
            price_type=price_type,
            nightly_rate=round_money(nightly),
            nights=nights,
            subtotal=subtotal,
            booking_fee=booking_fee,
            security_deposit=security_deposit,
            total_amount=total,
            currency=currency.upper(),
            min_charge=min_charge,
        )

    def quote(
        self,
        prop: Property,
        check_in: dt.date,
        check_out: dt.date,
        guests_count: int = 1,
    ) -> PriceBreakdown:
        """Price a stay at a property after checking it can be booked.

        Raises:
            BookingError: PROPERTY_NOT_BOOKABLE, MAX_GUESTS_EXCEEDED or
                INVALID_DATE_RANGE
        """
        if not prop.is_bookable:
            raise BookingError(
                ErrorCode.PROPERTY_NOT_BOOKABLE,
                details={
                    "property_id": prop.property_id,
                    "category": prop.category.value,
                },
            )
        if prop.max_guests is not None and guests_count > prop.max_guests:
            raise BookingError(
                ErrorCode.MAX_GUESTS_EXCEEDED,
                details={"max_guests": str(prop.max_guests)},
            )
        validate_date_range(check_in, check_out)

        return self.calculate_price(
            prop.price, prop.price_type, check_in, check_out, prop.currency
        )
