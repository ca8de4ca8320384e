"""API tests for the subscription controller.

Covers premium checks, the caller's subscription and the plan catalogue.
"""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from plura.exception import BadRequestError, ResourceNotFoundError

TEST_SUBACCOUNT_ID = "33333333-3333-3333-3333-333333333333"
TEST_AGENCY_ID = "22222222-2222-2222-2222-222222222222"


# ---------------------------------------------------------------------------
# /api/check-premium
# ---------------------------------------------------------------------------


class TestCheckSubaccountPremiumEndpoint:
    """Tests for POST and GET /api/check-premium."""

    def test_returns_premium_flag(
        self, anonymous_client: TestClient, mock_premium_service: MagicMock
    ) -> None:
        """The service flag is returned as isPremium."""
        response = anonymous_client.post(
            "/api/check-premium", json={"subaccountId": TEST_SUBACCOUNT_ID}
        )

        assert response.status_code == 200
        assert response.json() == {"isPremium": True}
        mock_premium_service.check_subaccount_premium.assert_awaited_once_with(
            TEST_SUBACCOUNT_ID
        )

    def test_missing_subaccount_returns_400(
        self, anonymous_client: TestClient, mock_premium_service: MagicMock
    ) -> None:
        """BadRequestError from the service maps to 400."""
        mock_premium_service.check_subaccount_premium = AsyncMock(
            side_effect=BadRequestError("Subaccount ID is required", field="subaccountId")
        )

        response = anonymous_client.post("/api/check-premium", json={})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Subaccount ID is required"

    def test_unknown_subaccount_returns_404(
        self, anonymous_client: TestClient, mock_premium_service: MagicMock
    ) -> None:
        """ResourceNotFoundError from the service maps to 404."""
        mock_premium_service.check_subaccount_premium = AsyncMock(
            side_effect=ResourceNotFoundError("SubAccount", TEST_SUBACCOUNT_ID)
        )

        response = anonymous_client.post(
            "/api/check-premium", json={"subaccountId": TEST_SUBACCOUNT_ID}
        )

        assert response.status_code == 404

    def test_unexpected_failure_returns_500(
        self, anonymous_client: TestClient, mock_premium_service: MagicMock
    ) -> None:
        """Unexpected errors become a static 500 detail."""
        mock_premium_service.check_subaccount_premium = AsyncMock(
            side_effect=RuntimeError("db down")
        )

        response = anonymous_client.post(
            "/api/check-premium", json={"subaccountId": TEST_SUBACCOUNT_ID}
        )

        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Failed to check premium status"

    def test_get_returns_anonymous_default(self, anonymous_client: TestClient) -> None:
        """GET answers the free default without a session."""
        response = anonymous_client.get("/api/check-premium")

        assert response.status_code == 200
        assert response.json() == {
            "isPremium": False,
            "plan": "free",
            "canDownload": False,
        }


class TestCheckAgencyPremiumEndpoint:
    """Tests for POST /api/subscription/check-premium."""

    def test_returns_agency_flag(
        self, anonymous_client: TestClient, mock_premium_service: MagicMock
    ) -> None:
        """The agency flag is read from the service."""
        response = anonymous_client.post(
            "/api/subscription/check-premium", json={"agencyId": TEST_AGENCY_ID}
        )

        assert response.status_code == 200
        assert response.json() == {"isPremium": False}
        mock_premium_service.check_premium_subscription.assert_awaited_once_with(
            TEST_AGENCY_ID
        )

    def test_missing_agency_returns_400(
        self, anonymous_client: TestClient, mock_premium_service: MagicMock
    ) -> None:
        """A body without agencyId is rejected before the service is called."""
        response = anonymous_client.post("/api/subscription/check-premium", json={})

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Agency ID is required"
        mock_premium_service.check_premium_subscription.assert_not_awaited()


# ---------------------------------------------------------------------------
# GET /api/user/subscription
# ---------------------------------------------------------------------------


class TestUserSubscriptionEndpoint:
    """Tests for GET /api/user/subscription."""

    def test_returns_plan_and_usage(
        self, client: TestClient, mock_premium_service: MagicMock, tenant_context
    ) -> None:
        """The service result is returned unchanged for the caller's session."""
        response = client.get("/api/user/subscription")

        assert response.status_code == 200
        assert response.json()["plan"] == "free"
        mock_premium_service.get_user_subscription.assert_awaited_once_with(
            tenant_context.session
        )

    def test_requires_session(self, anonymous_client: TestClient) -> None:
        """Anonymous callers get 401."""
        response = anonymous_client.get("/api/user/subscription")

        assert response.status_code == 401


# ---------------------------------------------------------------------------
# GET /api/billing/plans
# ---------------------------------------------------------------------------


class TestPlansEndpoint:
    """Tests for GET /api/billing/plans."""

    def test_lists_every_plan_with_limits_text(self, client: TestClient) -> None:
        """All four plans are listed in catalogue order with their limits text."""
        response = client.get("/api/billing/plans")

        assert response.status_code == 200
        plans = response.json()["plans"]
        assert [plan["id"] for plan in plans] == ["free", "basic", "unlimited", "agency"]
        assert plans[0]["limitsText"] == [
            "3 funnels",
            "10 pages",
            "No AI features",
            "No automations",
        ]

    def test_requires_session(self, anonymous_client: TestClient) -> None:
        """Anonymous callers get 401."""
        response = anonymous_client.get("/api/billing/plans")

        assert response.status_code == 401
