"""
API router for the adoption checkout.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Header, Path, Request

from treeadopt.api.dependencies import (
    AdoptionServiceDep,
    CurrentSessionDep,
    require_admin,
)
from treeadopt.api.rate_limit import PAYMENT_RATE_LIMIT, limiter
from treeadopt.api.v1.models.requests import (
    CheckoutRequest,
    ConfirmAdoptionRequest,
    ReconcileRequest,
)
from treeadopt.api.v1.models.responses import PlansResponse
from treeadopt.domain.exceptions import ValidationError
from treeadopt.services.application.adoption_service import (
    AdoptionConfirmation,
    CheckoutStarted,
    ReconciliationReport,
    UserImpact,
)
from treeadopt.services.domain.plan_catalog import ADOPTION_PLANS, DEFAULT_PLAN


router = APIRouter(tags=["adoptions"])


@router.get("/plans", response_model=PlansResponse, summary="List adoption plans")
async def list_plans() -> PlansResponse:
    return PlansResponse(plans=list(ADOPTION_PLANS), default_duration=DEFAULT_PLAN.duration)


@router.post(
    "/adoptions/checkout",
    response_model=CheckoutStarted,
    summary="Start checkout for the selected tree",
    description="""
    Validate the adopter's details for the tree selected in this session,
    create a payment intent for the chosen plan and store a pending adoption.

    The returned client secret is used by the browser to confirm the card
    payment; then call `/adoptions/{adoption_id}/confirm`.
    """,
    responses={
        400: {"description": "Missing tree selection or invalid form field"},
        401: {"description": "Not signed in"},
        409: {"description": "Tree no longer available"},
        429: {"description": "Rate limit exceeded"},
    }
)
@limiter.limit(PAYMENT_RATE_LIMIT)
async def begin_checkout(
    request: Request,
    body: CheckoutRequest,
    session: CurrentSessionDep,
    adoption_service: AdoptionServiceDep,
    idempotency_key: Annotated[Optional[str], Header(alias="Idempotency-Key")] = None,
) -> CheckoutStarted:
    if body.gift_option and body.gift_details is None:
        raise ValidationError("Gift recipient name is required")

    return await adoption_service.begin_checkout(
        session,
        contact=body.adopter_contact,
        plan_duration=body.plan_duration,
        gift=body.gift_details if body.gift_option else None,
        idempotency_key=idempotency_key,
    )


@router.post(
    "/adoptions/{adoption_id}/confirm",
    response_model=AdoptionConfirmation,
    summary="Confirm payment and record the adoption",
    responses={
        402: {"description": "Payment declined or not completed"},
        404: {"description": "Adoption not found"},
        409: {"description": "Tree no longer available"},
        500: {"description": "Payment captured but the adoption could not be saved; contact support"},
    }
)
@limiter.limit(PAYMENT_RATE_LIMIT)
async def confirm_adoption(
    request: Request,
    adoption_id: Annotated[str, Path(description="Pending adoption id from checkout")],
    body: ConfirmAdoptionRequest,
    session: CurrentSessionDep,
    adoption_service: AdoptionServiceDep,
) -> AdoptionConfirmation:
    return await adoption_service.complete_checkout(
        session,
        adoption_id,
        payment_method=body.payment_method,
    )


@router.get(
    "/users/me/impact",
    response_model=UserImpact,
    summary="Adoption totals for the signed-in user",
)
async def my_impact(
    session: CurrentSessionDep,
    adoption_service: AdoptionServiceDep,
) -> UserImpact:
    return await adoption_service.user_impact(session.user_id)


@router.post(
    "/admin/reconcile-adoptions",
    response_model=ReconciliationReport,
    summary="Resolve stale pending adoptions",
    dependencies=[Depends(require_admin)],
)
async def reconcile_adoptions(
    body: ReconcileRequest,
    adoption_service: AdoptionServiceDep,
) -> ReconciliationReport:
    return await adoption_service.reconcile_pending(body.older_than_minutes)
