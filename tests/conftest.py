"""
Shared pytest fixtures for all tests.

This module provides common fixtures including:
- Sample tree documents
- A seeded in-memory document store
- Signed-in sessions
- Mock Stripe gateway
- FastAPI test client with dependencies overridden
"""
import os

os.environ.setdefault("DOCUMENT_STORE_BACKEND", "memory")

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from treeadopt.main import app
from treeadopt.api.rate_limit import limiter
from treeadopt.domain.models import AdopterContact, PaymentIntent, UserIdentity
from treeadopt.infrastructure.document_store import InMemoryDocumentStore, get_document_store
from treeadopt.infrastructure.stripe_gateway import StripeGateway, get_stripe_gateway
from treeadopt.services.application.adoption_service import AdoptionService
from treeadopt.services.application.community_service import CommunityService
from treeadopt.services.application.payment_service import PaymentService
from treeadopt.services.application.profile_service import ProfileService
from treeadopt.services.application.session_manager import SessionManager, get_session_manager
from treeadopt.services.application.tree_service import TreeService


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def sample_trees() -> dict:
    """Tree documents keyed by id; one already adopted."""
    return {
        "neem-1": {
            "common_name": "Neem",
            "scientific_name": "Azadirachta indica",
            "location": "Lodhi Garden, Delhi",
            "status": "available",
            "health_metrics": {"overall_health": "Good", "growth_progress": 70},
            "characteristics": {
                "growth_rate": "fast",
                "environmental_benefits": {"co2_absorption_rate": "48"},
            },
        },
        "peepal-2": {
            "common_name": "Peepal",
            "scientific_name": "Ficus religiosa",
            "status": "available",
        },
        "banyan-3": {
            "common_name": "Banyan",
            "scientific_name": "Ficus benghalensis",
            "status": "adopted",
            "adopted_by": "someone-else",
            "adoption_id": "earlier-adoption",
        },
    }


@pytest.fixture
def store(sample_trees) -> InMemoryDocumentStore:
    """In-memory document store seeded with the sample trees."""
    return InMemoryDocumentStore(seed={"trees": sample_trees})


@pytest.fixture
def adopter_contact() -> AdopterContact:
    return AdopterContact(
        first_name="Asha",
        last_name="Verma",
        email="asha@example.com",
        phone="+91 98100 00000",
        address="12 Lodhi Road, New Delhi",
    )


# ============================================================
# Session Fixtures
# ============================================================

@pytest.fixture
def session_manager() -> SessionManager:
    return SessionManager(ttl_minutes=60)


@pytest.fixture
def user_identity() -> UserIdentity:
    return UserIdentity(user_id="user-1", email="asha@example.com", display_name="Asha Verma")


@pytest.fixture
def session(session_manager, user_identity):
    """A signed-in session for ``user-1``."""
    return session_manager.sign_in(user_identity)


# ============================================================
# Mock Payment Gateway Fixtures
# ============================================================

def make_intent(
    intent_id: str = "pi_123",
    amount: int = 19900,
    status: str = "requires_payment_method",
) -> PaymentIntent:
    return PaymentIntent(
        id=intent_id,
        client_secret=f"{intent_id}_secret_456",
        amount=amount,
        currency="inr",
        status=status,
    )


@pytest.fixture
def intent_factory():
    return make_intent


@pytest.fixture
def mock_gateway():
    """Mock Stripe gateway: intents are created for 199 INR and confirm as succeeded."""
    gateway = AsyncMock(spec=StripeGateway)
    gateway.create_payment_intent.return_value = make_intent()
    gateway.confirm_payment_intent.return_value = make_intent(status="succeeded")
    gateway.retrieve_payment_intent.return_value = make_intent(status="succeeded")
    return gateway


# ============================================================
# Service Fixtures
# ============================================================

@pytest.fixture
def payment_service(mock_gateway) -> PaymentService:
    return PaymentService(gateway=mock_gateway, currency="inr")


@pytest.fixture
def tree_service(store) -> TreeService:
    return TreeService(store=store)


@pytest.fixture
def adoption_service(store, tree_service, payment_service) -> AdoptionService:
    return AdoptionService(
        store=store,
        tree_service=tree_service,
        payment_service=payment_service,
    )


@pytest.fixture
def community_service(store) -> CommunityService:
    return CommunityService(store=store, retry_attempts=3, retry_initial_delay=0)


@pytest.fixture
def profile_service(store) -> ProfileService:
    return ProfileService(store=store)


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture
def test_client(store, session_manager, mock_gateway):
    """Test client wired to the in-memory store, fresh sessions and the mock gateway."""
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_session_manager] = lambda: session_manager
    app.dependency_overrides[get_stripe_gateway] = lambda: mock_gateway
    limiter.reset()

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(session) -> dict:
    return {"X-Session-Token": session.token}
