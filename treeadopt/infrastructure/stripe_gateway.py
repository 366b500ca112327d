"""
Infrastructure layer: Stripe payment intents.

The Stripe SDK is blocking, so every call is pushed to the thread pool.
Stripe exceptions are converted to domain payment errors here; callers never
see SDK types.
"""
import logging
from typing import Any, Dict, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from treeadopt.config import settings
from treeadopt.domain.exceptions import PaymentDeclinedError, PaymentProviderError
from treeadopt.domain.models import PaymentIntent


logger = logging.getLogger(__name__)


def _to_domain(payment_intent: Any) -> PaymentIntent:
    return PaymentIntent(
        id=payment_intent.id,
        client_secret=payment_intent.client_secret,
        amount=payment_intent.amount,
        currency=payment_intent.currency,
        status=payment_intent.status,
    )


def _translate(error: stripe.StripeError) -> PaymentProviderError:
    message = getattr(error, "user_message", None) or str(error) or "Failed to create payment intent"
    error_object = getattr(error, "error", None)
    error_type = getattr(error_object, "type", None)
    if isinstance(error, stripe.CardError):
        return PaymentDeclinedError(message, error_type=error_type, code=error.code)
    return PaymentProviderError(message, error_type=error_type, code=error.code)


class StripeGateway:
    """Client for interacting with the Stripe PaymentIntents API."""

    def __init__(self, api_key: Optional[str] = None):
        stripe.api_key = api_key if api_key is not None else settings.stripe_secret_key

    async def create_payment_intent(
        self,
        amount_minor: int,
        currency: str,
        metadata: Dict[str, str],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Create a card payment intent.

        Args:
            amount_minor: Amount in minor currency units (e.g. paise)
            currency: ISO currency code, lower case
            metadata: Metadata attached to the intent
            idempotency_key: Forwarded to Stripe so retries reuse one intent

        Raises:
            PaymentProviderError: If Stripe rejects the request
        """
        params: Dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "payment_method_types": ["card"],
            "metadata": metadata,
        }
        if idempotency_key:
            params["idempotency_key"] = idempotency_key

        try:
            intent = await run_in_threadpool(stripe.PaymentIntent.create, **params)
        except stripe.StripeError as e:
            logger.error(f"Error creating payment intent: {e}")
            raise _translate(e)
        return _to_domain(intent)

    async def confirm_payment_intent(self, payment_intent_id: str, payment_method: str) -> PaymentIntent:
        """
        Confirm an intent with a payment method collected by the browser.

        Raises:
            PaymentDeclinedError: If the card is declined
            PaymentProviderError: For any other Stripe failure
        """
        try:
            intent = await run_in_threadpool(
                stripe.PaymentIntent.confirm,
                payment_intent_id,
                payment_method=payment_method,
            )
        except stripe.StripeError as e:
            logger.warning(f"Confirmation failed for {payment_intent_id}: {e}")
            raise _translate(e)
        return _to_domain(intent)

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        try:
            intent = await run_in_threadpool(stripe.PaymentIntent.retrieve, payment_intent_id)
        except stripe.StripeError as e:
            logger.error(f"Error fetching payment intent {payment_intent_id}: {e}")
            raise _translate(e)
        return _to_domain(intent)


_stripe_gateway: Optional[StripeGateway] = None


def get_stripe_gateway() -> StripeGateway:
    """
    Get or create the singleton Stripe gateway.

    Returns:
        StripeGateway instance
    """
    global _stripe_gateway
    if _stripe_gateway is None:
        _stripe_gateway = StripeGateway()
    return _stripe_gateway
