"""Property lookup service."""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from shared.models import (
    BookingError,
    ErrorCode,
    PriceType,
    Property,
    PropertyCategory,
)

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService


class PropertyService:
    """Reads and writes the property fields the booking flow needs."""

    TABLE = "properties"

    def __init__(self, db: "DynamoDBService") -> None:
        self.db = db

    def get_property(self, property_id: str) -> Property | None:
        item = self.db.get_item(self.TABLE, {"property_id": property_id})
        return self._item_to_property(item) if item else None

    def require_property(self, property_id: str) -> Property:
        """Get a property or raise PROPERTY_NOT_FOUND."""
        prop = self.get_property(property_id)
        if prop is None:
            raise BookingError(
                ErrorCode.PROPERTY_NOT_FOUND, details={"property_id": property_id}
            )
        return prop

    def save_property(self, prop: Property) -> bool:
        item: dict[str, Any] = {
            "property_id": prop.property_id,
            "owner_id": prop.owner_id,
            "title": prop.title,
            "price": prop.price,
            "price_type": prop.price_type.value,
            "currency": prop.currency,
            "category": prop.category.value,
            "is_active": prop.is_active,
        }
        if prop.max_guests is not None:
            item["max_guests"] = prop.max_guests
        if prop.created_at:
            item["created_at"] = prop.created_at.isoformat()
        return self.db.put_item(self.TABLE, item)

    def _item_to_property(self, item: dict[str, Any]) -> Property:
        """Convert DynamoDB item to Property model."""
        # is_active may be stored as a string by older writers
        is_active_raw = item.get("is_active", True)
        if isinstance(is_active_raw, str):
            is_active = is_active_raw.lower() == "true"
        else:
            is_active = bool(is_active_raw)

        return Property(
            property_id=item["property_id"],
            owner_id=item["owner_id"],
            title=item.get("title", ""),
            price=Decimal(str(item["price"])),
            price_type=PriceType(item["price_type"]),
            currency=item.get("currency", "EUR"),
            category=PropertyCategory(item["category"]),
            max_guests=int(item["max_guests"]) if item.get("max_guests") else None,
            is_active=is_active,
            created_at=(
                dt.datetime.fromisoformat(item["created_at"])
                if item.get("created_at")
                else None
            ),
        )
