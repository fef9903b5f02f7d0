"""Stripe payment service for checkout sessions and refunds.

Uses the StripeClient pattern of stripe-python v8+. API keys come from SSM
Parameter Store.
"""

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import stripe
from stripe import StripeClient

from .ssm_service import SSMServiceError, get_ssm_service, parameter_path

logger = logging.getLogger(__name__)

CHECKOUT_SESSION_TTL_SECONDS = 1800


class StripeServiceError(Exception):
    """Raised when a Stripe operation fails."""

    def __init__(self, message: str, stripe_error_code: str | None = None) -> None:
        """Initialize with message and optional Stripe error code.

        Args:
            message: Human-readable error message.
            stripe_error_code: Stripe-specific error code if available.
        """
        super().__init__(message)
        self.stripe_error_code = stripe_error_code


class StripeService:
    """Service for Stripe payment operations.

    Handles:
    - Checkout session creation and retrieval
    - Webhook signature validation
    - Refund processing

    Usage:
        stripe_svc = get_stripe_service()
        session = stripe_svc.create_checkout_session(
            payment_id="PAY-ABC123DEF456",
            amount_cents=52500,
            currency="EUR",
            product_name="Booking Fee - Villa Sidi Fredj",
            description="Booking for Villa Sidi Fredj (5 nights)",
            success_url="https://holibayt.com/payment-success?...",
            cancel_url="https://holibayt.com/payment-cancelled?...",
        )
    """

    def __init__(self, environment: str | None = None) -> None:
        """Initialize Stripe service with credentials from SSM.

        Args:
            environment: Environment name (dev, prod). Defaults to ENVIRONMENT env var.
        """
        self._environment = environment or os.environ.get("ENVIRONMENT", "dev")
        self._ssm = get_ssm_service()
        self._client: StripeClient | None = None
        self._webhook_secret: str | None = None

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization).

        Raises:
            StripeServiceError: If credentials cannot be retrieved.
        """
        if self._client is None:
            try:
                secret_key = self._ssm.get_parameter(
                    parameter_path(self._environment, "stripe", "secret_key")
                )
                self._client = StripeClient(secret_key)
                logger.info("Stripe client initialized for environment: %s", self._environment)
            except SSMServiceError as e:
                raise StripeServiceError(f"Failed to initialize Stripe client: {e}") from e
        return self._client

    def _get_webhook_secret(self) -> str:
        """Get the webhook signing secret.

        Raises:
            StripeServiceError: If secret cannot be retrieved.
        """
        if self._webhook_secret is None:
            try:
                self._webhook_secret = self._ssm.get_parameter(
                    parameter_path(self._environment, "stripe", "webhook_secret")
                )
            except SSMServiceError as e:
                raise StripeServiceError(f"Failed to get webhook secret: {e}") from e
        return self._webhook_secret

    def create_checkout_session(
        self,
        *,
        payment_id: str,
        amount_cents: int,
        currency: str,
        product_name: str,
        description: str,
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Create a Stripe Checkout session for one line item.

        Args:
            payment_id: Payment ID (used as idempotency key and metadata).
            amount_cents: Amount in minor currency units.
            currency: ISO currency code.
            product_name: Line item name.
            description: Line item description.
            success_url: Redirect on success (supports {CHECKOUT_SESSION_ID}).
            cancel_url: Redirect on cancel.
            customer_email: Optional customer email for the Stripe receipt.
            metadata: Additional metadata to include.

        Returns:
            Dict with session_id, checkout_url, expires_at, payment_intent_id

        Raises:
            StripeServiceError: If session creation fails.
        """
        client = self._get_client()

        session_metadata = {"payment_id": payment_id}
        if metadata:
            session_metadata.update(metadata)

        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency.lower(),
                        "unit_amount": amount_cents,
                        "product_data": {
                            "name": product_name,
                            "description": description,
                        },
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": session_metadata,
            "expires_at": int(datetime.now(timezone.utc).timestamp())
            + CHECKOUT_SESSION_TTL_SECONDS,
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            logger.info(
                "Creating Stripe checkout session for payment %s, amount %d %s cents",
                payment_id,
                amount_cents,
                currency,
            )

            session = client.checkout.sessions.create(
                params=params,
                options={"idempotency_key": f"checkout_{payment_id}"},
            )

            logger.info("Checkout session created: %s for payment %s", session.id, payment_id)

            return {
                "session_id": session.id,
                "checkout_url": session.url,
                "expires_at": datetime.fromtimestamp(session.expires_at, tz=timezone.utc),
                "payment_intent_id": session.payment_intent,
            }

        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe checkout session creation failed: %s (code: %s)",
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to create checkout session: {e}",
                stripe_error_code=error_code,
            ) from e

    def retrieve_checkout_session(self, session_id: str) -> dict[str, Any]:
        """Fetch a Checkout session to read its payment outcome.

        Returns:
            Dict with session_id, payment_status, payment_intent_id,
            amount_total and metadata

        Raises:
            StripeServiceError: If the session cannot be retrieved.
        """
        client = self._get_client()
        try:
            session = client.checkout.sessions.retrieve(session_id)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error("Failed to retrieve checkout session %s: %s", session_id, e)
            raise StripeServiceError(
                f"Failed to retrieve checkout session: {e}",
                stripe_error_code=error_code,
            ) from e

        logger.info(
            "Checkout session %s retrieved: payment_status=%s",
            session_id,
            session.payment_status,
        )
        return {
            "session_id": session.id,
            "payment_status": session.payment_status,
            "payment_intent_id": session.payment_intent,
            "amount_total": session.amount_total,
            "metadata": dict(session.metadata or {}),
        }

    def verify_webhook_signature(self, payload: bytes, signature: str) -> dict[str, Any]:
        """Verify a webhook signature and parse the event.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.

        Returns:
            Parsed Stripe event dictionary.

        Raises:
            StripeServiceError: If signature is invalid.
        """
        webhook_secret = self._get_webhook_secret()

        try:
            event = stripe.Webhook.construct_event(payload, signature, webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise StripeServiceError("Invalid webhook signature") from e
        except ValueError as e:
            logger.warning("Webhook payload is not valid JSON: %s", str(e))
            raise StripeServiceError("Invalid webhook payload") from e

        logger.info("Webhook signature verified for event: %s", event["id"])
        # Plain dicts all the way down, independent of StripeObject internals
        parsed: dict[str, Any] = json.loads(payload)
        return parsed

    def create_refund(
        self,
        *,
        payment_intent_id: str,
        amount_cents: int | None = None,
        reason: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, Any]:
        """Create a refund for a payment.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx).
            amount_cents: Refund amount in minor units. If None, full refund.
            reason: Reason for refund (stored in metadata).
            idempotency_key: Key that makes a repeated call a no-op.

        Returns:
            Dict with refund_id, amount (minor units) and status

        Raises:
            StripeServiceError: If refund creation fails.
        """
        client = self._get_client()

        params: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount_cents is not None:
            params["amount"] = amount_cents
        if reason:
            params["metadata"] = {"reason": reason}

        options: dict[str, Any] = {}
        if idempotency_key:
            options["idempotency_key"] = idempotency_key

        try:
            logger.info(
                "Creating refund for PaymentIntent %s, amount %s cents",
                payment_intent_id,
                amount_cents if amount_cents is not None else "full",
            )

            refund = client.refunds.create(params=params, options=options)

            logger.info("Refund created: %s for PaymentIntent %s", refund.id, payment_intent_id)

            return {
                "refund_id": refund.id,
                "amount": refund.amount,
                "status": refund.status,
            }

        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe refund creation failed: %s (code: %s)",
                str(e),
                error_code,
            )
            raise StripeServiceError(
                f"Failed to create refund: {e}",
                stripe_error_code=error_code,
            ) from e

    @staticmethod
    def compute_payload_hash(payload: bytes) -> str:
        """Compute hex SHA-256 of a webhook payload."""
        return hashlib.sha256(payload).hexdigest()


@lru_cache(maxsize=1)
def get_stripe_service() -> StripeService:
    """Get the shared StripeService instance."""
    return StripeService()
