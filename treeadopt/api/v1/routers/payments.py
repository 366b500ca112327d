"""
API router for payment intents.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Header, Request

from treeadopt.api.dependencies import PaymentServiceDep
from treeadopt.api.rate_limit import PAYMENT_RATE_LIMIT, limiter
from treeadopt.api.v1.models.requests import CreatePaymentIntentRequest
from treeadopt.api.v1.models.responses import PaymentIntentResponse


router = APIRouter(tags=["payments"])


@router.post(
    "/create-payment-intent",
    response_model=PaymentIntentResponse,
    summary="Create a payment intent",
    description="""
    Create a card payment intent for an amount given in major currency units.

    The amount is converted to minor units (paise) and charged in INR.
    Send an `Idempotency-Key` header to make retries safe: every request
    with the same key resolves to the same payment intent.
    """,
    responses={
        200: {
            "description": "Payment intent created",
            "content": {
                "application/json": {
                    "example": {
                        "clientSecret": "pi_123_secret_456",
                        "paymentIntentId": "pi_123",
                    }
                }
            }
        },
        400: {
            "description": "Amount missing or not positive",
            "content": {
                "application/json": {"example": {"error": "Invalid amount provided"}}
            }
        },
        429: {
            "description": "Rate limit exceeded",
        },
        500: {
            "description": "Payment provider failure (error, type and code echoed)",
        }
    }
)
@limiter.limit(PAYMENT_RATE_LIMIT)
async def create_payment_intent(
    request: Request,
    payment_service: PaymentServiceDep,
    body: Optional[CreatePaymentIntentRequest] = None,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
) -> PaymentIntentResponse:
    """
    Create a payment intent.

    Args:
        request: Incoming request (used by the rate limiter)
        payment_service: Payment service (injected dependency)
        body: Amount in major units; a missing body is a missing amount
        idempotency_key: Optional client-generated idempotency key

    Returns:
        PaymentIntentResponse with the client secret
    """
    intent = await payment_service.create_payment_intent(
        body.amount if body else None,
        idempotency_key=idempotency_key,
    )
    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
    )
