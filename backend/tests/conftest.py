"""Pytest configuration and fixtures for Holibayt booking backend tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto
- Service wiring with a mocked Stripe
- Sample data fixtures (properties, bookings, checkout payments)
"""

import os
from collections.abc import Callable
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Generator
from unittest.mock import MagicMock

import boto3
import pytest
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ["DYNAMODB_TABLE_PREFIX"] = "test-holibayt"

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

TABLE_PREFIX = "test-holibayt"

GUEST_ID = "guest-123-abc"
OTHER_GUEST_ID = "guest-456-def"
PROPERTY_ID = "prop-algiers-01"


# === Singletons ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services before and after each test.

    Tests using mock_aws get fresh service instances inside the mock
    context rather than reusing ones built in a previous test.
    """
    from api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        yield client


def _gsi(name: str, attribute: str) -> dict[str, Any]:
    return {
        "IndexName": name,
        "KeySchema": [{"AttributeName": attribute, "KeyType": "HASH"}],
        "Projection": {"ProjectionType": "ALL"},
    }


@pytest.fixture
def create_tables(dynamodb_client: Any) -> None:
    """Create all required DynamoDB tables for testing."""
    tables = [
        {
            "TableName": f"{TABLE_PREFIX}-properties",
            "KeySchema": [{"AttributeName": "property_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "property_id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{TABLE_PREFIX}-bookings",
            "KeySchema": [{"AttributeName": "booking_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "booking_id", "AttributeType": "S"},
                {"AttributeName": "property_id", "AttributeType": "S"},
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "status", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                _gsi("property-index", "property_id"),
                _gsi("user-index", "user_id"),
                _gsi("status-index", "status"),
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{TABLE_PREFIX}-payments",
            "KeySchema": [{"AttributeName": "payment_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "payment_id", "AttributeType": "S"},
                {"AttributeName": "user_id", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [_gsi("user-index", "user_id")],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": f"{TABLE_PREFIX}-stripe-webhook-events",
            "KeySchema": [{"AttributeName": "event_id", "KeyType": "HASH"}],
            "AttributeDefinitions": [
                {"AttributeName": "event_id", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]

    for table_config in tables:
        dynamodb_client.create_table(**table_config)


@pytest.fixture
def db(create_tables: None) -> Any:
    """DynamoDBService bound to the mocked tables."""
    from shared.services.dynamodb import get_dynamodb_service

    return get_dynamodb_service()


# === Service Fixtures ===


@pytest.fixture
def mock_stripe() -> MagicMock:
    """StripeService double with successful default responses."""
    from shared.services.stripe_service import StripeService

    stripe_service = MagicMock(spec=StripeService)
    stripe_service.create_checkout_session.side_effect = lambda **kwargs: {
        "session_id": f"cs_test_{kwargs['payment_id']}",
        "checkout_url": f"https://checkout.stripe.com/c/pay/cs_test_{kwargs['payment_id']}",
        "expires_at": datetime(2030, 1, 1, 12, 30, tzinfo=timezone.utc),
        "payment_intent_id": None,
    }
    stripe_service.create_refund.return_value = {
        "refund_id": "re_test_123",
        "amount": 52500,
        "status": "succeeded",
    }
    stripe_service.compute_payload_hash.side_effect = StripeService.compute_payload_hash
    return stripe_service


@pytest.fixture
def property_service(db: Any) -> Any:
    from shared.services.property_service import PropertyService

    return PropertyService(db)


@pytest.fixture
def availability_service(db: Any) -> Any:
    from shared.services.availability import AvailabilityService

    return AvailabilityService(db)


@pytest.fixture
def pricing_service() -> Any:
    from shared.services.pricing import PricingService

    return PricingService()


@pytest.fixture
def payment_service(
    db: Any,
    mock_stripe: MagicMock,
    property_service: Any,
    pricing_service: Any,
    availability_service: Any,
) -> Any:
    from shared.services.payment_service import PaymentService

    return PaymentService(
        db=db,
        stripe_service=mock_stripe,
        properties=property_service,
        pricing=pricing_service,
        availability=availability_service,
    )


@pytest.fixture
def booking_service(
    db: Any,
    payment_service: Any,
    availability_service: Any,
    mock_stripe: MagicMock,
) -> Any:
    from shared.services.booking import BookingService

    return BookingService(
        db=db,
        payments=payment_service,
        availability=availability_service,
        stripe_service=mock_stripe,
    )


@pytest.fixture
def webhook_handler(db: Any, booking_service: Any, payment_service: Any) -> Any:
    from shared.services.webhook_handler import WebhookHandler

    return WebhookHandler(db=db, bookings=booking_service, payments=payment_service)


# === Sample Data Fixtures ===


@pytest.fixture
def sample_property(property_service: Any) -> Any:
    """A short-stay listing at 100.00 EUR per night for up to 4 guests."""
    from shared.models import PriceType, Property, PropertyCategory

    prop = Property(
        property_id=PROPERTY_ID,
        owner_id="host-789",
        title="Villa Sidi Fredj",
        price=Decimal("100.00"),
        price_type=PriceType.DAILY,
        currency="EUR",
        category=PropertyCategory.SHORT_STAY,
        max_guests=4,
        created_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    property_service.save_property(prop)
    return prop


@pytest.fixture
def make_booking(db: Any) -> Callable[..., Any]:
    """Factory writing a booking row straight into the bookings table."""
    from shared.models import Booking, BookingStatus
    from shared.services.booking_items import booking_to_item

    def _make(
        booking_id: str,
        check_in: date,
        check_out: date,
        status: BookingStatus = BookingStatus.CONFIRMED,
        user_id: str = OTHER_GUEST_ID,
        property_id: str = PROPERTY_ID,
        payment_id: str | None = None,
    ) -> Booking:
        booking = Booking(
            booking_id=booking_id,
            property_id=property_id,
            user_id=user_id,
            check_in_date=check_in,
            check_out_date=check_out,
            guests_count=2,
            status=status,
            payment_id=payment_id,
            total_amount=Decimal("525.00"),
            currency="EUR",
            created_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
        )
        db.put_item("bookings", booking_to_item(booking))
        return booking

    return _make


@pytest.fixture
def booking_request() -> Any:
    """Five nights, 2030-07-10 to 2030-07-15, for two guests."""
    from shared.models import BookingRequest

    return BookingRequest(
        check_in_date=date(2030, 7, 10),
        check_out_date=date(2030, 7, 15),
        guests_count=2,
        special_requests="Late arrival around 10pm",
    )


@pytest.fixture
def start_checkout(
    payment_service: Any, sample_property: Any
) -> Callable[..., Any]:
    """Factory creating a pending booking-fee payment through create_checkout."""
    from shared.models import BookingRequest, PaymentType

    def _start(
        user_id: str = GUEST_ID,
        check_in: date = date(2030, 7, 10),
        check_out: date = date(2030, 7, 15),
        payment_type: PaymentType = PaymentType.BOOKING_FEE,
    ) -> Any:
        return payment_service.create_checkout(
            user_id=user_id,
            user_email=f"{user_id}@example.com",
            property_id=sample_property.property_id,
            payment_type=payment_type,
            booking_request=BookingRequest(
                check_in_date=check_in, check_out_date=check_out, guests_count=2
            ),
            redirect_base_url="https://holibayt.com",
        )

    return _start


# === API Fixtures ===


@pytest.fixture
def api_client(
    property_service: Any,
    availability_service: Any,
    pricing_service: Any,
    payment_service: Any,
    booking_service: Any,
    webhook_handler: Any,
) -> Generator[Any, None, None]:
    """TestClient with services bound to the mocked tables and Stripe."""
    from fastapi.testclient import TestClient

    from api import dependencies
    from api.main import app

    app.dependency_overrides.update(
        {
            dependencies.get_property_service: lambda: property_service,
            dependencies.get_availability_service: lambda: availability_service,
            dependencies.get_pricing_service: lambda: pricing_service,
            dependencies.get_payment_service: lambda: payment_service,
            dependencies.get_booking_service: lambda: booking_service,
            dependencies.get_webhook_handler: lambda: webhook_handler,
        }
    )
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Identity headers the API Gateway authorizer passes for GUEST_ID."""
    return {"x-user-sub": GUEST_ID, "x-user-email": "guest@example.com"}
