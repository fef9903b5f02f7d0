"""Backend services for Holibayt bookings and payments."""

from .availability import AvailabilityService, ranges_overlap, validate_date_range
from .booking import BookingService, booking_id_for_payment
from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .payment_service import PaymentService
from .pricing import PricingService, round_money
from .property_service import PropertyService
from .refund_policy_service import RefundPolicyService
from .ssm_service import SSMService, SSMServiceError, get_ssm_service
from .stripe_service import StripeService, StripeServiceError, get_stripe_service
from .webhook_handler import WebhookHandler

__all__ = [
    "DynamoDBService",
    "get_dynamodb_service",
    "reset_dynamodb_service",
    "AvailabilityService",
    "ranges_overlap",
    "validate_date_range",
    "BookingService",
    "booking_id_for_payment",
    "PaymentService",
    "PricingService",
    "round_money",
    "PropertyService",
    "RefundPolicyService",
    "SSMService",
    "SSMServiceError",
    "get_ssm_service",
    "StripeService",
    "StripeServiceError",
    "get_stripe_service",
    "WebhookHandler",
]
