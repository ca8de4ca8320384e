"""API tests for the admin console controller.

Service behaviour (auditing, filtering) is covered by the unit tests; these
tests pin routing, query aliases, permission levels and response keys.
"""

from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from plura.exception import BadRequestError, ResourceNotFoundError

# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class TestAdminAccess:
    """Permission checks shared by every admin route."""

    def test_anonymous_caller_gets_401(self, anonymous_client: TestClient) -> None:
        """No cookie and no session is unauthorized."""
        response = anonymous_client.get("/api/admin/agencies")

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Unauthorized"

    def test_admin_cookie_grants_read_access(
        self, plain_admin_client: TestClient
    ) -> None:
        """An admin-token session reaches read routes."""
        response = plain_admin_client.get("/api/admin/agencies")

        assert response.status_code == 200

    def test_agency_status_change_needs_super_admin(
        self, plain_admin_client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """PATCH /agencies is limited to super admins."""
        response = plain_admin_client.patch(
            "/api/admin/agencies", json={"agencyId": "a", "action": "suspend"}
        )

        assert response.status_code == 403
        mock_admin_service.change_agency_status.assert_not_awaited()

    def test_system_config_write_needs_super_admin(
        self, plain_admin_client: TestClient
    ) -> None:
        """PUT /system-config is limited to super admins."""
        response = plain_admin_client.put(
            "/api/admin/system-config",
            json={"key": "maintenance", "value": "on", "type": "string"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Super admin access required"


# ---------------------------------------------------------------------------
# Agencies and users
# ---------------------------------------------------------------------------


class TestAgencyEndpoints:
    """Tests for /api/admin/agencies."""

    def test_lists_agencies_with_filters(
        self, client: TestClient, mock_admin_service: MagicMock, admin_context
    ) -> None:
        """Query aliases are forwarded and the list is wrapped in 'agencies'."""
        response = client.get("/api/admin/agencies?isActive=true&search=acme")

        assert response.status_code == 200
        assert response.json()["agencies"][0]["name"] == "Acme"
        mock_admin_service.list_agencies.assert_awaited_once_with(
            admin_context.audit_actor(), is_active=True, search="acme"
        )

    def test_suspends_agency(
        self, client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """PATCH returns success with the updated agency."""
        response = client.patch(
            "/api/admin/agencies",
            json={"agencyId": "22222222-2222-2222-2222-222222222222", "action": "suspend"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "agency": {
                "id": "22222222-2222-2222-2222-222222222222",
                "name": "Acme",
                "isActive": False,
            },
        }

    def test_invalid_action_returns_400(
        self, client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """BadRequestError from the service maps to 400."""
        mock_admin_service.change_agency_status = AsyncMock(
            side_effect=BadRequestError("Invalid action")
        )

        response = client.patch(
            "/api/admin/agencies", json={"agencyId": "a", "action": "delete"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid action"


class TestUserEndpoints:
    """Tests for /api/admin/users."""

    def test_update_unknown_user_returns_404(
        self, client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """ResourceNotFoundError maps to 404."""
        mock_admin_service.update_user = AsyncMock(
            side_effect=ResourceNotFoundError("User", "missing")
        )

        response = client.patch(
            "/api/admin/users", json={"userId": "missing", "action": "suspend"}
        )

        assert response.status_code == 404

    def test_update_forwards_plan_and_active_flag(
        self, client: TestClient, mock_admin_service: MagicMock, admin_context
    ) -> None:
        """Direct updates pass plan and isActive through."""
        response = client.patch(
            "/api/admin/users",
            json={"userId": "u1", "plan": "PREMIUM", "isActive": True},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        mock_admin_service.update_user.assert_awaited_once_with(
            admin_context.audit_actor(), "u1", action=None, plan="PREMIUM", is_active=True
        )


# ---------------------------------------------------------------------------
# Subaccounts, individuals and dashboard
# ---------------------------------------------------------------------------


class TestTenantEndpoints:
    """Tests for subaccount and individual management."""

    def test_lists_subaccounts_under_subaccounts_key(self, client: TestClient) -> None:
        """GET /subaccounts wraps results in 'subAccounts'."""
        assert client.get("/api/admin/subaccounts").json() == {"subAccounts": []}

    def test_subaccount_patch_returns_service_result(self, client: TestClient) -> None:
        """PATCH /subaccounts returns {success: true}."""
        response = client.patch(
            "/api/admin/subaccounts", json={"subaccountId": "s1", "action": "activate"}
        )

        assert response.json() == {"success": True}

    def test_update_individual_plan(
        self, client: TestClient, mock_admin_service: MagicMock, admin_context
    ) -> None:
        """PATCH /individuals forwards id, action and plan."""
        response = client.patch(
            "/api/admin/individuals",
            json={"individualId": "ind", "action": "updatePlan", "plan": "BASIC"},
        )

        assert response.json() == {"individual": {"id": "ind", "plan": "BASIC"}}
        mock_admin_service.update_individual.assert_awaited_once_with(
            admin_context.audit_actor(), "ind", "updatePlan", plan="BASIC"
        )

    def test_dashboard_defaults_to_30_days(
        self, client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """Without timeRange the dashboard uses 30d."""
        body = client.get("/api/admin/dashboard").json()

        mock_admin_service.get_dashboard_stats.assert_awaited_once_with("30d")
        assert body["individuals"]["premium"] == 1

    def test_dashboard_forwards_time_range(
        self, client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """timeRange is passed through."""
        client.get("/api/admin/dashboard?timeRange=7d")

        mock_admin_service.get_dashboard_stats.assert_awaited_once_with("7d")


# ---------------------------------------------------------------------------
# Platform configuration
# ---------------------------------------------------------------------------


class TestPlatformEndpoints:
    """Tests for system config, feature flags, audit logs and support."""

    def test_saves_system_config(
        self, client: TestClient, mock_admin_service: MagicMock, admin_context
    ) -> None:
        """PUT /system-config maps the body onto save_system_config."""
        response = client.put(
            "/api/admin/system-config",
            json={"key": "maintenance", "value": "on", "type": "string", "isPublic": True},
        )

        assert response.json() == {"config": {"key": "maintenance", "value": "on"}}
        mock_admin_service.save_system_config.assert_awaited_once_with(
            admin_context.audit_actor(),
            key="maintenance",
            value="on",
            value_type="string",
            description=None,
            is_public=True,
        )

    def test_creates_feature_flag_with_201(self, client: TestClient) -> None:
        """POST /feature-flags returns 201 and the flag."""
        response = client.post(
            "/api/admin/feature-flags", json={"name": "Beta", "key": "beta"}
        )

        assert response.status_code == 201
        assert response.json()["featureFlag"]["key"] == "beta"

    def test_updates_feature_flag_named_in_body(
        self, client: TestClient, mock_admin_service: MagicMock, admin_context
    ) -> None:
        """PATCH /feature-flags reads flagId from the body."""
        body = {"flagId": "flag", "isEnabled": True}

        client.patch("/api/admin/feature-flags", json=body)

        mock_admin_service.update_feature_flag.assert_awaited_once_with(
            admin_context.audit_actor(), "flag", body
        )

    def test_deletes_feature_flag_named_in_query(
        self, client: TestClient, mock_admin_service: MagicMock, admin_context
    ) -> None:
        """DELETE /feature-flags reads ?flagId."""
        response = client.delete("/api/admin/feature-flags?flagId=flag")

        assert response.json() == {"success": True}
        mock_admin_service.delete_feature_flag.assert_awaited_once_with(
            admin_context.audit_actor(), "flag"
        )

    def test_audit_logs_default_limit(
        self, client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """Audit logs default to 100 entries."""
        response = client.get("/api/admin/audit-logs?entity=Agency")

        assert response.json() == {"auditLogs": []}
        kwargs = mock_admin_service.list_audit_logs.await_args.kwargs
        assert kwargs["entity"] == "Agency"
        assert kwargs["limit"] == 100

    def test_support_tickets_forward_filters(
        self, client: TestClient, mock_admin_service: MagicMock, admin_context
    ) -> None:
        """GET /support maps status and assignedTo aliases."""
        client.get("/api/admin/support?status=open&assignedTo=u2")

        mock_admin_service.list_support_tickets.assert_awaited_once_with(
            admin_context.audit_actor(),
            status="open",
            priority=None,
            category=None,
            assigned_to="u2",
        )

    def test_unexpected_failure_returns_500(
        self, client: TestClient, mock_admin_service: MagicMock
    ) -> None:
        """Unexpected errors become a 500 with a fixed message."""
        mock_admin_service.list_feature_flags = AsyncMock(side_effect=RuntimeError("boom"))

        response = client.get("/api/admin/feature-flags")

        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Failed to fetch feature flags"
