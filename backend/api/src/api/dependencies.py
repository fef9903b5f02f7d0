"""FastAPI dependency injection providers for shared services.

Factory functions use @lru_cache so each service is built once per process
(one Lambda container) and reused across requests.

Usage in routes:
    from api.dependencies import get_availability_service

    @router.get("/properties/{property_id}/availability")
    async def check_availability(
        availability: AvailabilityService = Depends(get_availability_service),
    ):
        ...

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── PropertyService
        ├── AvailabilityService
        ├── PaymentService ── StripeService, PricingService
        ├── BookingService ── PaymentService, StripeService
        └── WebhookHandler ── BookingService, PaymentService

Testing:
    Use reset_services() to clear cached instances between tests.
"""

import os
from functools import lru_cache

from shared.services.availability import AvailabilityService
from shared.services.booking import BookingService
from shared.services.dynamodb import get_dynamodb_service
from shared.services.payment_service import PaymentService
from shared.services.pricing import PricingService
from shared.services.property_service import PropertyService
from shared.services.ssm_service import get_ssm_service
from shared.services.stripe_service import get_stripe_service
from shared.services.webhook_handler import WebhookHandler

DEFAULT_APP_URL = "http://localhost:3000"


def get_app_url() -> str:
    """Frontend origin used for Stripe redirect URLs."""
    return os.environ.get("APP_URL", DEFAULT_APP_URL)


@lru_cache
def get_pricing_service() -> PricingService:
    return PricingService()


@lru_cache
def get_property_service() -> PropertyService:
    return PropertyService(db=get_dynamodb_service())


@lru_cache
def get_availability_service() -> AvailabilityService:
    return AvailabilityService(db=get_dynamodb_service())


@lru_cache
def get_payment_service() -> PaymentService:
    """Get cached PaymentService instance.

    Returns:
        PaymentService wired to DynamoDB, Stripe, pricing and availability.
    """
    return PaymentService(
        db=get_dynamodb_service(),
        stripe_service=get_stripe_service(),
        properties=get_property_service(),
        pricing=get_pricing_service(),
        availability=get_availability_service(),
    )


@lru_cache
def get_booking_service() -> BookingService:
    """Get cached BookingService instance.

    Returns:
        BookingService configured with all required dependencies.
    """
    return BookingService(
        db=get_dynamodb_service(),
        payments=get_payment_service(),
        availability=get_availability_service(),
        stripe_service=get_stripe_service(),
    )


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    return WebhookHandler(
        db=get_dynamodb_service(),
        bookings=get_booking_service(),
        payments=get_payment_service(),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the DynamoDB, Stripe and SSM singletons.

    Example:
        @pytest.fixture(autouse=True)
        def reset_state():
            yield
            reset_services()
    """
    from shared.services.dynamodb import reset_dynamodb_service
    from shared.services.ssm_service import SSMService

    get_pricing_service.cache_clear()
    get_property_service.cache_clear()
    get_availability_service.cache_clear()
    get_payment_service.cache_clear()
    get_booking_service.cache_clear()
    get_webhook_handler.cache_clear()

    get_stripe_service.cache_clear()
    get_ssm_service.cache_clear()
    SSMService._instance = None
    SSMService._cache.clear()

    reset_dynamodb_service()
