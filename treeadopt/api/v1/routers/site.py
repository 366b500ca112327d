"""
API router for sessions, public client configuration and the site gate.
"""
import secrets
from typing import Annotated, Optional
from fastapi import APIRouter, Header

from treeadopt.api.dependencies import SessionManagerDep
from treeadopt.api.v1.models.requests import GateRequest, SignInRequest
from treeadopt.api.v1.models.responses import (
    GateResponse,
    PublicConfigResponse,
    SessionResponse,
)
from treeadopt.config import settings
from treeadopt.domain.models import UserIdentity


router = APIRouter(tags=["site"])


@router.get("/config", response_model=PublicConfigResponse, summary="Public client configuration")
async def public_config() -> PublicConfigResponse:
    return PublicConfigResponse(
        stripe_publishable_key=settings.stripe_publishable_key,
        nft_contract_address=settings.nft_contract_address,
        aptos_node_url=settings.aptos_node_url,
        currency=settings.payment_currency,
    )


@router.post("/gate", response_model=GateResponse, summary="Check the site password")
async def check_gate(body: GateRequest) -> GateResponse:
    granted = bool(settings.gate_password) and secrets.compare_digest(
        body.password.encode("utf-8"), settings.gate_password.encode("utf-8")
    )
    return GateResponse(granted=granted)


@router.post(
    "/sessions",
    response_model=SessionResponse,
    summary="Start a session",
    description="""
    Start a session for a user signed in with the auth provider. The returned
    token goes in the `X-Session-Token` header of later requests.
    """,
)
async def sign_in(body: SignInRequest, sessions: SessionManagerDep) -> SessionResponse:
    session = sessions.sign_in(UserIdentity(**body.model_dump()))
    return SessionResponse(
        token=session.token,
        user_id=session.user_id,
        expires_at=session.expires_at,
    )


@router.delete("/sessions", status_code=204, summary="End the current session")
async def sign_out(
    sessions: SessionManagerDep,
    x_session_token: Annotated[Optional[str], Header()] = None,
) -> None:
    if x_session_token:
        sessions.sign_out(x_session_token)
