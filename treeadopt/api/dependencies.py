"""
Dependency injection for FastAPI.
"""
import secrets
from typing import Annotated, Optional
from fastapi import Depends, Header

from treeadopt.config import settings
from treeadopt.domain.exceptions import SessionError
from treeadopt.infrastructure.document_store import DocumentStore, get_document_store
from treeadopt.infrastructure.media_storage_client import MediaStorageClient, get_media_client
from treeadopt.infrastructure.stripe_gateway import StripeGateway, get_stripe_gateway
from treeadopt.infrastructure.tree_chat_client import TreeChatClient, get_chat_client
from treeadopt.services.application.adoption_service import AdoptionService
from treeadopt.services.application.community_service import CommunityService
from treeadopt.services.application.payment_service import PaymentService
from treeadopt.services.application.profile_service import ProfileService
from treeadopt.services.application.session_manager import (
    Session,
    SessionManager,
    get_session_manager,
)
from treeadopt.services.application.tree_service import TreeService


StoreDep = Annotated[DocumentStore, Depends(get_document_store)]
SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]


def get_current_session(
    sessions: SessionManagerDep,
    x_session_token: Annotated[Optional[str], Header()] = None,
) -> Session:
    """
    Resolve the caller's session from the ``X-Session-Token`` header.

    Raises:
        SessionError: If the caller is not signed in
    """
    return sessions.get(x_session_token)


def get_payment_service(
    gateway: Annotated[StripeGateway, Depends(get_stripe_gateway)],
) -> PaymentService:
    """
    Dependency factory for PaymentService.

    Args:
        gateway: Stripe gateway (injected)

    Returns:
        PaymentService instance
    """
    return PaymentService(gateway=gateway)


def get_tree_service(store: StoreDep) -> TreeService:
    return TreeService(store=store)


def get_adoption_service(
    store: StoreDep,
    tree_service: Annotated[TreeService, Depends(get_tree_service)],
    payment_service: Annotated[PaymentService, Depends(get_payment_service)],
) -> AdoptionService:
    """
    Dependency factory for AdoptionService.

    Args:
        store: Document store (injected)
        tree_service: Tree service (injected)
        payment_service: Payment service (injected)

    Returns:
        AdoptionService instance
    """
    return AdoptionService(
        store=store,
        tree_service=tree_service,
        payment_service=payment_service,
    )


def get_community_service(store: StoreDep) -> CommunityService:
    return CommunityService(store=store)


def get_profile_service(store: StoreDep) -> ProfileService:
    return ProfileService(store=store)


def require_admin(
    x_admin_token: Annotated[Optional[str], Header()] = None,
) -> None:
    """Reject callers without the configured admin token."""
    if not settings.admin_token or not secrets.compare_digest(x_admin_token or "", settings.admin_token):
        raise SessionError("Admin token required", status_code=403)


# Type aliases for cleaner route signatures
CurrentSessionDep = Annotated[Session, Depends(get_current_session)]
PaymentServiceDep = Annotated[PaymentService, Depends(get_payment_service)]
TreeServiceDep = Annotated[TreeService, Depends(get_tree_service)]
AdoptionServiceDep = Annotated[AdoptionService, Depends(get_adoption_service)]
CommunityServiceDep = Annotated[CommunityService, Depends(get_community_service)]
ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
MediaClientDep = Annotated[MediaStorageClient, Depends(get_media_client)]
ChatClientDep = Annotated[TreeChatClient, Depends(get_chat_client)]
