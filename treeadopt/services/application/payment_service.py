"""
Application service: payment intent creation and confirmation.
"""
import logging
from typing import Any, Optional

from treeadopt.config import settings
from treeadopt.domain.exceptions import PaymentProviderError
from treeadopt.domain.models import PaymentIntent, PaymentOutcome
from treeadopt.infrastructure.stripe_gateway import StripeGateway
from treeadopt.services.domain.money import to_minor_units, validate_amount


logger = logging.getLogger(__name__)

PAYMENT_METADATA = {"integration_check": "accept_a_payment"}

PAYMENT_NOT_COMPLETED_MESSAGE = "Payment was not completed"


class PaymentService:
    """
    Creates payment intents and resolves their confirmation outcome.

    No business logic about adoptions lives here; the adoption service
    decides what to do with each outcome.
    """

    def __init__(self, gateway: StripeGateway, currency: str = settings.payment_currency):
        self.gateway = gateway
        self.currency = currency

    async def create_payment_intent(
        self,
        amount: Any,
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        """
        Create a payment intent for ``amount`` major currency units.

        Args:
            amount: Amount in major units (e.g. rupees)
            idempotency_key: Optional client key; retries with the same key
                resolve to the same intent

        Returns:
            PaymentIntent carrying the client secret

        Raises:
            ValidationError: If the amount is missing or not positive
            PaymentProviderError: If the provider rejects the request
        """
        amount = validate_amount(amount)
        logger.info(f"Creating payment intent for amount: {amount}")

        intent = await self.gateway.create_payment_intent(
            amount_minor=to_minor_units(amount),
            currency=self.currency,
            metadata=PAYMENT_METADATA,
            idempotency_key=idempotency_key,
        )
        logger.info(f"Payment intent created successfully: {intent.id}")
        return intent

    async def confirm_payment(
        self,
        payment_intent_id: str,
        payment_method: Optional[str] = None,
    ) -> PaymentOutcome:
        """
        Resolve the confirmation outcome of a payment intent.

        With a payment method the intent is confirmed here; without one the
        browser already confirmed it and the intent is fetched to read the
        provider's verdict.

        Returns:
            PaymentOutcome: 'succeeded' with the intent, 'provider_error' with
            the provider's message verbatim, or 'failed' for any other status
        """
        try:
            if payment_method:
                intent = await self.gateway.confirm_payment_intent(payment_intent_id, payment_method)
            else:
                intent = await self.gateway.retrieve_payment_intent(payment_intent_id)
        except PaymentProviderError as e:
            return PaymentOutcome(
                status="provider_error",
                message=e.message,
                error_type=e.error_type,
                error_code=e.code,
            )

        if intent.status == "succeeded":
            return PaymentOutcome(status="succeeded", payment_intent=intent)

        logger.warning(f"Payment intent {intent.id} ended with status {intent.status}")
        return PaymentOutcome(
            status="failed",
            message=PAYMENT_NOT_COMPLETED_MESSAGE,
            payment_intent=intent,
        )

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        return await self.gateway.retrieve_payment_intent(payment_intent_id)
