"""
Integration tests for API endpoints.

Tests the full HTTP request/response cycle with the in-memory document store
and a mocked payment gateway.
"""
import pytest

from treeadopt.config import settings
from treeadopt.domain.exceptions import PaymentDeclinedError, PaymentProviderError


CONTACT = {
    "first_name": "Asha",
    "last_name": "Verma",
    "email": "asha@example.com",
    "phone": "+91 98100 00000",
    "address": "12 Lodhi Road, New Delhi",
}


# ============================================================
# Health Check Tests
# ============================================================

class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, test_client):
        """Root endpoint should return healthy status."""
        response = test_client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "service" in data
        assert "version" in data

    def test_health_endpoint(self, test_client):
        """Health endpoint should return healthy status."""
        response = test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


# ============================================================
# Payment Intent Endpoint Tests
# ============================================================

class TestCreatePaymentIntentEndpoint:
    """Tests for POST /api/create-payment-intent."""

    def test_missing_amount_returns_400(self, test_client, mock_gateway):
        """A body without an amount is rejected before reaching the provider."""
        response = test_client.post("/api/create-payment-intent", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid amount provided"}
        mock_gateway.create_payment_intent.assert_not_called()

    def test_request_without_body_returns_400(self, test_client, mock_gateway):
        response = test_client.post("/api/create-payment-intent")

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid amount provided"}
        mock_gateway.create_payment_intent.assert_not_called()

    @pytest.mark.parametrize("amount", [0, -5, "abc", True])
    def test_invalid_amount_returns_400(self, test_client, amount):
        response = test_client.post("/api/create-payment-intent", json={"amount": amount})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid amount provided"}

    def test_amount_is_charged_in_paise(self, test_client, mock_gateway):
        """199 rupees should become a 19900 paise INR intent."""
        response = test_client.post("/api/create-payment-intent", json={"amount": 199})

        assert response.status_code == 200
        assert response.json() == {
            "clientSecret": "pi_123_secret_456",
            "paymentIntentId": "pi_123",
        }
        mock_gateway.create_payment_intent.assert_awaited_once_with(
            amount_minor=19900,
            currency="inr",
            metadata={"integration_check": "accept_a_payment"},
            idempotency_key=None,
        )

    def test_idempotency_key_is_forwarded(self, test_client, mock_gateway):
        response = test_client.post(
            "/api/create-payment-intent",
            json={"amount": 379},
            headers={"Idempotency-Key": "checkout-abc"},
        )

        assert response.status_code == 200
        kwargs = mock_gateway.create_payment_intent.await_args.kwargs
        assert kwargs["idempotency_key"] == "checkout-abc"
        assert kwargs["amount_minor"] == 37900

    def test_provider_error_is_echoed(self, test_client, mock_gateway):
        """Provider failures return 500 with the provider's message, type and code."""
        mock_gateway.create_payment_intent.side_effect = PaymentProviderError(
            "Invalid API Key provided",
            error_type="invalid_request_error",
            code="api_key_invalid",
        )

        response = test_client.post("/api/create-payment-intent", json={"amount": 199})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Invalid API Key provided",
            "type": "invalid_request_error",
            "code": "api_key_invalid",
        }


# ============================================================
# Plans, Config and Gate Tests
# ============================================================

class TestSiteEndpoints:
    """Tests for plans, public config, gate and sessions."""

    def test_list_plans(self, test_client):
        response = test_client.get("/api/plans")

        assert response.status_code == 200
        data = response.json()
        assert data["default_duration"] == 1
        assert [(p["duration"], p["price"]) for p in data["plans"]] == [(1, 199), (2, 379), (5, 899)]
        assert data["plans"][1]["discount_label"] == "5%"

    def test_public_config_has_no_secrets(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "stripe_publishable_key", "pk_test_123")
        monkeypatch.setattr(settings, "stripe_secret_key", "sk_test_secret")

        response = test_client.get("/api/config")

        assert response.status_code == 200
        data = response.json()
        assert data["stripe_publishable_key"] == "pk_test_123"
        assert data["currency"] == "inr"
        assert "sk_test_secret" not in response.text

    def test_gate_accepts_configured_password(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "gate_password", "saplings")

        assert test_client.post("/api/gate", json={"password": "saplings"}).json() == {"granted": True}
        assert test_client.post("/api/gate", json={"password": "wrong"}).json() == {"granted": False}

    def test_gate_closed_without_password(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "gate_password", "")

        assert test_client.post("/api/gate", json={"password": ""}).json() == {"granted": False}

    def test_sign_in_and_out(self, test_client):
        response = test_client.post("/api/sessions", json={"user_id": "user-9", "email": "u9@example.com"})

        assert response.status_code == 200
        token = response.json()["token"]
        headers = {"X-Session-Token": token}
        assert test_client.get("/api/users/me/impact", headers=headers).status_code == 200

        assert test_client.delete("/api/sessions", headers=headers).status_code == 204
        response = test_client.get("/api/users/me/impact", headers=headers)
        assert response.status_code == 401
        assert response.json() == {"error": "User not authenticated"}


# ============================================================
# Tree Endpoint Tests
# ============================================================

class TestTreeEndpoints:
    """Tests for tree listing and selection."""

    def test_list_trees(self, test_client):
        response = test_client.get("/api/trees")

        assert response.status_code == 200
        assert {t["id"] for t in response.json()} == {"neem-1", "peepal-2", "banyan-3"}

    def test_list_available_trees(self, test_client):
        response = test_client.get("/api/trees", params={"status": "available"})

        assert response.status_code == 200
        assert {t["id"] for t in response.json()} == {"neem-1", "peepal-2"}

    def test_unknown_tree_returns_404(self, test_client):
        response = test_client.get("/api/trees/missing")

        assert response.status_code == 404
        assert response.json() == {"error": "Tree 'missing' not found"}

    def test_select_requires_session(self, test_client):
        response = test_client.post("/api/trees/neem-1/select")

        assert response.status_code == 401


# ============================================================
# Adoption Checkout Tests
# ============================================================

class TestAdoptionCheckout:
    """End-to-end adoption checkout through the HTTP surface."""

    def test_full_checkout(self, test_client, auth_headers, mock_gateway):
        assert test_client.post("/api/trees/neem-1/select", headers=auth_headers).status_code == 200

        response = test_client.post(
            "/api/adoptions/checkout",
            json={"plan_duration": 1, "adopter_contact": CONTACT},
            headers=auth_headers,
        )
        assert response.status_code == 200
        started = response.json()
        assert started["client_secret"] == "pi_123_secret_456"
        assert started["amount"] == 199
        assert started["duration"] == 1

        response = test_client.post(
            f"/api/adoptions/{started['adoption_id']}/confirm",
            json={},
            headers=auth_headers,
        )
        assert response.status_code == 200
        confirmation = response.json()
        assert confirmation["redirect_to"] == "/adoption/success"
        assert confirmation["status"] == "active"
        assert confirmation["tree_name"] == "Neem"
        assert confirmation["impact"] == "52kg CO₂ per year"
        assert confirmation["payment_id"] == "pi_123"

        tree = test_client.get("/api/trees/neem-1").json()
        assert tree["status"] == "adopted"
        assert tree["adopted_by"] == "user-1"

        impact = test_client.get("/api/users/me/impact", headers=auth_headers).json()
        assert impact["trees_adopted"] == 1
        assert impact["total_impact_kg"] == 52
        assert impact["recorded"]["trees_planted"] == 1

    def test_checkout_without_selection(self, test_client, auth_headers):
        response = test_client.post(
            "/api/adoptions/checkout",
            json={"adopter_contact": CONTACT},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "No tree data found"}

    def test_checkout_requires_session(self, test_client):
        response = test_client.post("/api/adoptions/checkout", json={"adopter_contact": CONTACT})

        assert response.status_code == 401
        assert response.json() == {"error": "User not authenticated"}

    def test_checkout_of_adopted_tree_conflicts(self, test_client, auth_headers, mock_gateway):
        test_client.post("/api/trees/banyan-3/select", headers=auth_headers)

        response = test_client.post(
            "/api/adoptions/checkout",
            json={"adopter_contact": CONTACT},
            headers=auth_headers,
        )

        assert response.status_code == 409
        assert response.json() == {"error": "Tree no longer available", "tree_id": "banyan-3"}
        mock_gateway.create_payment_intent.assert_not_called()

    def test_checkout_names_missing_field(self, test_client, auth_headers, mock_gateway):
        test_client.post("/api/trees/neem-1/select", headers=auth_headers)

        response = test_client.post(
            "/api/adoptions/checkout",
            json={"adopter_contact": {**CONTACT, "first_name": "  "}},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "First name is required"}
        mock_gateway.create_payment_intent.assert_not_called()

    def test_gift_option_requires_recipient(self, test_client, auth_headers):
        test_client.post("/api/trees/neem-1/select", headers=auth_headers)

        response = test_client.post(
            "/api/adoptions/checkout",
            json={"adopter_contact": CONTACT, "gift_option": True},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Gift recipient name is required"}

    def test_declined_card_is_reported(self, test_client, auth_headers, mock_gateway):
        test_client.post("/api/trees/neem-1/select", headers=auth_headers)
        started = test_client.post(
            "/api/adoptions/checkout",
            json={"adopter_contact": CONTACT},
            headers=auth_headers,
        ).json()
        mock_gateway.confirm_payment_intent.side_effect = PaymentDeclinedError(
            "Your card was declined.", error_type="card_error", code="card_declined"
        )

        response = test_client.post(
            f"/api/adoptions/{started['adoption_id']}/confirm",
            json={"payment_method": "pm_card_visa"},
            headers=auth_headers,
        )

        assert response.status_code == 402
        assert response.json()["error"] == "Your card was declined."
        assert test_client.get("/api/trees/neem-1").json()["status"] == "available"


# ============================================================
# Admin Tests
# ============================================================

class TestAdminEndpoints:
    """Tests for the reconciliation endpoint."""

    def test_reconcile_requires_admin_token(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "admin_token", "admin-secret")

        response = test_client.post("/api/admin/reconcile-adoptions", json={})

        assert response.status_code == 403
        assert response.json() == {"error": "Admin token required"}

    def test_reconcile_with_admin_token(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "admin_token", "admin-secret")

        response = test_client.post(
            "/api/admin/reconcile-adoptions",
            json={"older_than_minutes": 0},
            headers={"X-Admin-Token": "admin-secret"},
        )

        assert response.status_code == 200
        assert response.json()["examined"] == 0


# ============================================================
# Community Endpoint Tests
# ============================================================

class TestCommunityEndpoints:
    """Tests for the community routes."""

    def test_story_like_and_comment(self, test_client, auth_headers):
        response = test_client.post(
            "/api/community/stories",
            json={"content": "Planted my first neem!"},
            headers=auth_headers,
        )
        assert response.status_code == 201
        story_id = response.json()["id"]

        like = test_client.post(f"/api/community/stories/{story_id}/like", headers=auth_headers)
        assert like.json() == {"active": True}
        unlike = test_client.post(f"/api/community/stories/{story_id}/like", headers=auth_headers)
        assert unlike.json() == {"active": False}

        comment = test_client.post(
            f"/api/community/stories/{story_id}/comments",
            json={"text": "Lovely"},
            headers=auth_headers,
        )
        assert comment.status_code == 201
        assert comment.json()["story_comment_count"] == 1

        page = test_client.get(f"/api/community/stories/{story_id}/comments").json()
        assert page["total_comments"] == 1
        assert page["comments"][0]["text"] == "Lovely"

    def test_community_snapshot(self, test_client, auth_headers):
        test_client.post(
            "/api/community/events",
            json={"title": "Planting drive", "date": "2030-03-01T09:00:00Z", "max_participants": 1},
            headers=auth_headers,
        )

        response = test_client.get("/api/community")

        assert response.status_code == 200
        data = response.json()
        assert data["stories"] == []
        assert data["events"][0]["title"] == "Planting drive"

    def test_full_event_rejects_join(self, test_client, auth_headers, session_manager):
        event_id = test_client.post(
            "/api/community/events",
            json={"title": "Planting drive", "date": "2030-03-01T09:00:00Z", "max_participants": 1},
            headers=auth_headers,
        ).json()["id"]
        assert test_client.post(f"/api/community/events/{event_id}/join", headers=auth_headers).json() == {"active": True}

        other = session_manager.sign_in(session_manager.get(auth_headers["X-Session-Token"]).user.model_copy(
            update={"user_id": "user-2"}
        ))
        response = test_client.post(
            f"/api/community/events/{event_id}/join",
            headers={"X-Session-Token": other.token},
        )

        assert response.status_code == 409
        assert response.json() == {"error": "Event is full"}


# ============================================================
# User Profile Endpoint Tests
# ============================================================

class TestUserEndpoints:
    """Tests for /api/users/me and /api/leaderboard."""

    def test_profile_requires_session(self, test_client):
        assert test_client.get("/api/users/me").status_code == 401
        assert test_client.patch("/api/users/me", json={"bio": "hi"}).status_code == 401

    def test_profile_not_found_before_anything_is_saved(self, test_client, auth_headers):
        response = test_client.get("/api/users/me", headers=auth_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "Profile not found"}

    def test_edit_then_read_profile(self, test_client, auth_headers):
        response = test_client.patch(
            "/api/users/me",
            json={"display_name": "Asha V", "bio": "Tree lover"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["display_name"] == "Asha V"

        profile = test_client.get("/api/users/me", headers=auth_headers).json()
        assert profile["id"] == "user-1"
        assert profile["bio"] == "Tree lover"
        assert profile["trees_planted"] == 0

    def test_counters_cannot_be_patched(self, test_client, auth_headers):
        response = test_client.patch("/api/users/me", json={"trees_planted": 50}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "No profile fields to update"}

    def test_leaderboard_after_checkout(self, test_client, auth_headers):
        test_client.post("/api/trees/neem-1/select", headers=auth_headers)
        started = test_client.post(
            "/api/adoptions/checkout",
            json={"plan_duration": 1, "adopter_contact": CONTACT},
            headers=auth_headers,
        ).json()
        test_client.post(f"/api/adoptions/{started['adoption_id']}/confirm", json={}, headers=auth_headers)

        response = test_client.get("/api/leaderboard", params={"limit": 5})

        assert response.status_code == 200
        assert response.json() == [{
            "rank": 1,
            "user_id": "user-1",
            "display_name": "Asha Verma",
            "trees_planted": 1,
            "total_impact_kg": 52,
        }]

    def test_leaderboard_limit_bounds(self, test_client):
        assert test_client.get("/api/leaderboard", params={"limit": 0}).status_code == 422
        assert test_client.get("/api/leaderboard", params={"limit": 51}).status_code == 422


# ============================================================
# Response Format Tests
# ============================================================

class TestResponseFormats:
    """Tests for API response formats."""

    def test_openapi_schema_available(self, test_client):
        """OpenAPI schema should be available."""
        response = test_client.get("/openapi.json")

        assert response.status_code == 200
        data = response.json()
        assert "/api/create-payment-intent" in data["paths"]
        assert "/api/adoptions/checkout" in data["paths"]
        assert "/api/leaderboard" in data["paths"]

    def test_docs_endpoint_available(self, test_client):
        """Swagger docs should be available."""
        response = test_client.get("/docs")

        assert response.status_code == 200


# ============================================================
# Rate Limiting Tests
# ============================================================

class TestRateLimiting:
    """Tests for rate limiting functionality."""

    def test_rate_limit_documented_in_openapi(self, test_client):
        """Rate limit should be documented in OpenAPI."""
        response = test_client.get("/openapi.json")

        assert response.status_code == 200
        responses = response.json()["paths"]["/api/create-payment-intent"]["post"]["responses"]
        assert "429" in responses
