"""Refund policy for guest cancellations.

- Full refund (100%): cancel 14+ days before check-in
- Partial refund (50%): cancel 7-13 days before check-in
- No refund (0%): cancel less than 7 days before check-in
"""

import datetime as dt
from decimal import Decimal
from typing import TypedDict

from .pricing import round_money


class RefundCalculation(TypedDict):
    """Result of refund policy calculation."""

    refund_amount: Decimal  # Currency units, 2 decimals
    refund_percentage: int  # 0, 50, or 100
    policy_tier: str  # "full", "partial", or "none"
    days_until_check_in: int
    description: str


class RefundPolicyService:
    """Calculates refund amounts based on cancellation timing."""

    # Policy thresholds (days before check-in)
    FULL_REFUND_DAYS = 14
    PARTIAL_REFUND_DAYS = 7

    FULL_REFUND_PERCENT = 100
    PARTIAL_REFUND_PERCENT = 50
    NO_REFUND_PERCENT = 0

    def calculate_refund_amount(
        self,
        payment_amount: Decimal,
        check_in_date: dt.date,
        cancellation_date: dt.date,
    ) -> RefundCalculation:
        """Calculate refund amount based on cancellation timing.

        Args:
            payment_amount: Amount paid, in currency units
            check_in_date: Booking check-in date
            cancellation_date: Date of cancellation request

        Returns:
            RefundCalculation with refund amount and policy details
        """
        # Negative once check-in has passed
        days_until_check_in = (check_in_date - cancellation_date).days

        if days_until_check_in >= self.FULL_REFUND_DAYS:
            percentage = self.FULL_REFUND_PERCENT
            tier = "full"
            description = (
                f"Full refund (100%): cancelled {days_until_check_in} days before check-in"
            )
        elif days_until_check_in >= self.PARTIAL_REFUND_DAYS:
            percentage = self.PARTIAL_REFUND_PERCENT
            tier = "partial"
            description = (
                f"Partial refund (50%): cancelled {days_until_check_in} days before check-in"
            )
        else:
            percentage = self.NO_REFUND_PERCENT
            tier = "none"
            if days_until_check_in < 0:
                description = "No refund: cancelled after the check-in date"
            else:
                description = (
                    f"No refund (0%): cancelled {days_until_check_in} days before check-in"
                )

        refund_amount = round_money(payment_amount * percentage / 100)

        return RefundCalculation(
            refund_amount=refund_amount,
            refund_percentage=percentage,
            policy_tier=tier,
            days_until_check_in=days_until_check_in,
            description=description,
        )

    def get_policy_description(self) -> str:
        """Human-readable summary of the policy, shown before cancelling."""
        return (
            "Cancellation Policy:\n"
            "• 14+ days before check-in: Full refund (100%)\n"
            "• 7-13 days before check-in: Partial refund (50%)\n"
            "• Less than 7 days before check-in: No refund\n"
            "• After check-in: No refund"
        )
