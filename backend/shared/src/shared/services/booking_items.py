"""Conversion between Booking models and DynamoDB items."""

import datetime as dt
from decimal import Decimal
from typing import Any

from shared.models import Booking, BookingStatus


def booking_to_item(booking: Booking) -> dict[str, Any]:
    """Convert Booking model to DynamoDB item."""
    item: dict[str, Any] = {
        "booking_id": booking.booking_id,
        "property_id": booking.property_id,
        "user_id": booking.user_id,
        "check_in_date": booking.check_in_date.isoformat(),
        "check_out_date": booking.check_out_date.isoformat(),
        "guests_count": booking.guests_count,
        "status": booking.status.value,
        "total_amount": booking.total_amount,
        "currency": booking.currency,
        "created_at": booking.created_at.isoformat(),
    }
    if booking.payment_id:
        item["payment_id"] = booking.payment_id
    if booking.special_requests:
        item["special_requests"] = booking.special_requests
    if booking.contact_phone:
        item["contact_phone"] = booking.contact_phone
    if booking.updated_at:
        item["updated_at"] = booking.updated_at.isoformat()
    if booking.cancelled_at:
        item["cancelled_at"] = booking.cancelled_at.isoformat()
    return item


def item_to_booking(item: dict[str, Any]) -> Booking:
    """Convert DynamoDB item to Booking model."""
    return Booking(
        booking_id=item["booking_id"],
        property_id=item["property_id"],
        user_id=item["user_id"],
        check_in_date=dt.date.fromisoformat(item["check_in_date"]),
        check_out_date=dt.date.fromisoformat(item["check_out_date"]),
        guests_count=int(item.get("guests_count", 1)),
        status=BookingStatus(item["status"]),
        payment_id=item.get("payment_id"),
        total_amount=Decimal(str(item.get("total_amount", "0"))),
        currency=item.get("currency", "EUR"),
        special_requests=item.get("special_requests"),
        contact_phone=item.get("contact_phone"),
        created_at=dt.datetime.fromisoformat(item["created_at"]),
        updated_at=(
            dt.datetime.fromisoformat(item["updated_at"])
            if item.get("updated_at")
            else None
        ),
        cancelled_at=(
            dt.datetime.fromisoformat(item["cancelled_at"])
            if item.get("cancelled_at")
            else None
        ),
    )
