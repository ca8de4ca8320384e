"""Shared fixtures for API (controller) tests.

Builds a minimal FastAPI test application with all services injected via
app.state. Authorization dependencies are overridden so tests focus on
controller routing and response shaping, not auth mechanics; the primary
session is also attached to request.state for routes that read it directly.

Key exports:
    - tenant_context / admin_context: pre-built request identities
    - mock_*_service fixtures with AsyncMock methods
    - client: TestClient for a signed-in super admin agency owner
    - anonymous_client: TestClient with no session and no overrides
"""

import sys
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

TEST_USER_ID = "11111111-1111-1111-1111-111111111111"
TEST_AGENCY_ID = "22222222-2222-2222-2222-222222222222"
TEST_SUBACCOUNT_ID = "33333333-3333-3333-3333-333333333333"

SERVICE_NAMES = (
    "auth_service",
    "admin_auth_service",
    "admin_service",
    "premium_service",
    "billing_service",
    "marketplace_service",
    "automation_service",
    "form_service",
    "funnel_service",
    "database_connection_service",
    "support_service",
    "upload_service",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_tenant_context() -> Any:
    from plura.middleware.authorization_middleware import TenantContext
    from plura.repository.session_store_repository import TokenSession

    session = TokenSession(
        jti="01HZY8Z5N2XKQ7R3V4W5T6Y7U8",
        user_id=TEST_USER_ID,
        email="owner@example.com",
        name="Agency Owner",
        role="AGENCY_OWNER",
        agency_id=TEST_AGENCY_ID,
        subaccount_ids=[TEST_SUBACCOUNT_ID],
        is_admin=True,
        is_super_admin=True,
    )
    return TenantContext(
        user_id=TEST_USER_ID,
        agency_id=TEST_AGENCY_ID,
        individual_id=None,
        subaccount_ids=[TEST_SUBACCOUNT_ID],
        session=session,
    )


def _make_admin_context(is_super_admin: bool = True) -> Any:
    from plura.middleware.authorization_middleware import AdminContext

    return AdminContext(
        user_id=TEST_USER_ID,
        email="admin@example.com",
        is_super_admin=is_super_admin,
        ip_address="203.0.113.7",
        user_agent="pytest",
    )


def _make_test_app(
    services: dict[str, MagicMock],
    mock_postgres_client: MagicMock,
    mock_redis_client: MagicMock,
    tenant_context: Optional[Any],
    admin_context: Optional[Any],
    admin_session: Optional[Any] = None,
) -> FastAPI:
    """Build a minimal FastAPI app with mocked state and overridden permissions.

    Args:
        services: Service mocks keyed by their app.state attribute name.
        mock_postgres_client: Mocked PostgreSQLClient.
        mock_redis_client: Mocked RedisClient.
        tenant_context: TenantContext injected for tenant routes, or None to
            leave authentication in place.
        admin_context: AdminContext injected for admin routes, or None.
        admin_session: AdminSession attached as if from the admin-token cookie.

    Returns:
        Configured FastAPI test application.
    """
    import plura.middleware.authorization_middleware as perms
    from plura.controller import (
        admin_auth_controller,
        admin_controller,
        auth_controller,
        automation_controller,
        billing_controller,
        database_controller,
        form_controller,
        funnel_controller,
        health_controller,
        marketplace_controller,
        site_controller,
        subscription_controller,
        support_controller,
        upload_controller,
    )
    from plura.middleware import ErrorHandlerMiddleware, install_exception_handlers

    _app = FastAPI()

    for name, service in services.items():
        setattr(_app.state, name, service)
    _app.state.postgres_client = mock_postgres_client
    _app.state.redis_client = mock_redis_client
    _app.state.environment = "development"
    _app.state.debug = False

    @_app.middleware("http")
    async def _attach_session(request: Request, call_next):
        request.state.session = tenant_context.session if tenant_context else None
        request.state.token_jti = tenant_context.session.jti if tenant_context else None
        request.state.admin_session = admin_session
        return await call_next(request)

    if tenant_context is not None:
        _app.dependency_overrides[perms.require_authenticated] = lambda: tenant_context
    if admin_context is not None:
        _app.dependency_overrides[perms.require_admin] = lambda: admin_context
        if admin_context.is_super_admin:
            _app.dependency_overrides[perms.require_super_admin] = lambda: admin_context

    _app.include_router(health_controller.router)
    _app.include_router(auth_controller.router)
    _app.include_router(admin_auth_controller.router)
    _app.include_router(admin_controller.router)
    _app.include_router(subscription_controller.router)
    _app.include_router(billing_controller.router)
    _app.include_router(marketplace_controller.router)
    _app.include_router(automation_controller.router)
    _app.include_router(form_controller.router)
    _app.include_router(funnel_controller.router)
    _app.include_router(database_controller.router)
    _app.include_router(support_controller.router)
    _app.include_router(upload_controller.router)
    _app.include_router(site_controller.router)
    _app.include_router(funnel_controller.site_router)

    _app.add_middleware(ErrorHandlerMiddleware)
    install_exception_handlers(_app)

    return _app


# ---------------------------------------------------------------------------
# Fixtures: contexts
# ---------------------------------------------------------------------------


@pytest.fixture
def tenant_context() -> Any:
    """Agency owner with admin rights reaching the test subaccount."""
    return _make_tenant_context()


@pytest.fixture
def admin_context() -> Any:
    """Super admin identity for the admin console."""
    return _make_admin_context()


# ---------------------------------------------------------------------------
# Fixtures: services / clients
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_auth_service() -> MagicMock:
    svc = MagicMock()
    svc.login = AsyncMock(return_value={"token": "signed.jwt.token"})
    svc.logout = AsyncMock(return_value=None)
    svc.describe_session = MagicMock(
        return_value={
            "userId": TEST_USER_ID,
            "email": "owner@example.com",
            "name": "Agency Owner",
            "role": "AGENCY_OWNER",
            "plan": "FREE",
            "agencyId": TEST_AGENCY_ID,
            "individualId": None,
            "subaccountIds": [TEST_SUBACCOUNT_ID],
            "isAdmin": True,
            "isSuperAdmin": True,
            "expiresAt": "2026-01-01T00:30:00+00:00",
        }
    )
    return svc


@pytest.fixture
def mock_admin_auth_service() -> MagicMock:
    svc = MagicMock()
    svc.ttl_seconds = 86400
    svc.sign_in = AsyncMock(
        return_value=(
            "admin.jwt.token",
            {"id": TEST_USER_ID, "email": "admin@example.com", "isSuperAdmin": True},
        )
    )
    return svc


@pytest.fixture
def mock_admin_service() -> MagicMock:
    """Mock AdminService with every console operation as an AsyncMock."""
    svc = MagicMock()
    svc.list_agencies = AsyncMock(return_value=[{"id": TEST_AGENCY_ID, "name": "Acme"}])
    svc.change_agency_status = AsyncMock(
        return_value={"id": TEST_AGENCY_ID, "name": "Acme", "isActive": False}
    )
    svc.list_users = AsyncMock(return_value=[])
    svc.update_user = AsyncMock(return_value={"id": TEST_USER_ID, "isActive": False})
    svc.list_subaccounts = AsyncMock(return_value=[])
    svc.change_subaccount_status = AsyncMock(return_value={"success": True})
    svc.list_individuals = AsyncMock(return_value=[])
    svc.update_individual = AsyncMock(return_value={"id": "ind", "plan": "BASIC"})
    svc.get_dashboard_stats = AsyncMock(
        return_value={
            "timeRange": "30d",
            "individuals": {"total": 3, "active": 2, "premium": 1},
            "agencies": {"total": 4, "active": 4, "subaccounts": 9},
            "marketplace": {"totalProducts": 5, "activeProducts": 4, "totalSales": 12},
            "automations": {"totalForms": 6, "submissions": 40, "activeWorkflows": 2},
        }
    )
    svc.list_system_config = AsyncMock(return_value=[])
    svc.save_system_config = AsyncMock(return_value={"key": "maintenance", "value": "on"})
    svc.list_feature_flags = AsyncMock(return_value=[])
    svc.create_feature_flag = AsyncMock(return_value={"id": "flag", "key": "beta"})
    svc.update_feature_flag = AsyncMock(return_value={"id": "flag", "isEnabled": True})
    svc.delete_feature_flag = AsyncMock(return_value={"success": True})
    svc.list_audit_logs = AsyncMock(return_value=[])
    svc.list_support_tickets = AsyncMock(return_value=[])
    svc.update_support_ticket = AsyncMock(return_value={"id": "ticket", "status": "closed"})
    return svc


@pytest.fixture
def mock_premium_service() -> MagicMock:
    svc = MagicMock()
    svc.check_subaccount_premium = AsyncMock(return_value=True)
    svc.check_premium_subscription = AsyncMock(return_value=False)
    svc.get_user_subscription = AsyncMock(
        return_value={
            "plan": "free",
            "aiCreditsUsed": 0,
            "automationCount": 0,
            "funnelCount": 0,
            "pageCount": 0,
            "subscriptionId": None,
            "active": False,
        }
    )
    return svc


@pytest.fixture
def mock_billing_service() -> MagicMock:
    svc = MagicMock()
    svc.create_checkout_session = AsyncMock(
        return_value={"url": "https://checkout.stripe.com/c/pay/cs_test"}
    )
    svc.handle_webhook = AsyncMock(return_value={"received": True})
    return svc


@pytest.fixture
def mock_marketplace_service() -> MagicMock:
    svc = MagicMock()
    svc.list_themes = AsyncMock(return_value=[{"id": "theme", "name": "Minimal"}])
    svc.list_plugins = AsyncMock(return_value=[{"id": "plugin", "name": "Chat"}])
    svc.purchase_theme = AsyncMock(return_value={"id": "purchase", "themeId": "theme"})
    svc.purchase_plugin = AsyncMock(return_value={"id": "purchase", "pluginId": "plugin"})
    svc.list_purchased_themes = AsyncMock(return_value=[])
    svc.list_purchased_plugins = AsyncMock(return_value=[])
    svc.get_theme = AsyncMock(return_value={"id": "theme", "name": "Minimal"})
    svc.search = AsyncMock(return_value={"items": [], "categories": [], "total": 0})
    svc.calculate_payout = AsyncMock(
        return_value={"creatorId": TEST_USER_ID, "period": "2026-03", "totalEarnings": 0.0}
    )
    svc.process_payouts = AsyncMock(
        return_value={"message": "Processed 0 payouts for period 2026-03", "payouts": []}
    )
    return svc


@pytest.fixture
def mock_automation_service() -> MagicMock:
    svc = MagicMock()
    svc.toggle = AsyncMock(
        return_value={"success": True, "automation": {"id": "auto"}, "action": "start"}
    )
    svc.get_status = AsyncMock(return_value={"id": "auto", "isRunning": True})
    return svc


@pytest.fixture
def mock_form_service() -> MagicMock:
    svc = MagicMock()
    svc.list_forms = AsyncMock(return_value=([{"id": "form"}], 1))
    svc.create_form = AsyncMock(return_value={"id": "form", "webhookId": "wh_1"})
    svc.submit = AsyncMock(
        return_value=(
            {
                "success": True,
                "submissionId": "sub_1",
                "message": "Form submitted successfully",
                "automations": [],
            },
            None,
        )
    )
    svc.list_submissions = AsyncMock(return_value=([], 0))
    svc.get_form_fields = AsyncMock(
        return_value={"form": {"id": "form", "name": "Contact"}, "fields": []}
    )
    return svc


@pytest.fixture
def mock_funnel_service() -> MagicMock:
    svc = MagicMock()
    svc.list_pages = AsyncMock(return_value=[{"id": "page", "order": 0}])
    svc.get_settings = AsyncMock(return_value={"metaTitle": ""})
    svc.save_settings = AsyncMock(return_value={"success": True})
    svc.get_preview = AsyncMock(return_value={"funnel": {"id": "f"}, "pages": []})
    svc.render_site_page = AsyncMock(
        return_value={"funnel": {"id": "f"}, "page": {"id": "page", "visits": 1}}
    )
    return svc


@pytest.fixture
def mock_database_connection_service() -> MagicMock:
    svc = MagicMock()
    svc.list_connections = AsyncMock(return_value=[])
    svc.create_connection = AsyncMock(return_value={"id": "db", "hasPassword": True})
    svc.update_connection = AsyncMock(return_value={"id": "db", "name": "Renamed"})
    svc.delete_connection = AsyncMock(return_value={"success": True})
    svc.test_connection = AsyncMock(
        return_value={"success": True, "message": "Connection successful", "tables": []}
    )
    return svc


@pytest.fixture
def mock_support_service() -> MagicMock:
    svc = MagicMock()
    svc.create_ticket = AsyncMock(return_value={"success": True, "ticketId": "ticket"})
    svc.list_my_tickets = AsyncMock(return_value=[])
    return svc


@pytest.fixture
def mock_upload_service() -> MagicMock:
    from plura.service.upload_service import UploadService

    svc = MagicMock()
    svc.resolve_route = MagicMock(side_effect=UploadService.resolve_route)
    svc.store = AsyncMock(
        return_value={
            "uploadedBy": TEST_USER_ID,
            "files": [
                {
                    "key": "avatar/abc-me.png",
                    "name": "me.png",
                    "size": 4,
                    "url": "https://cdn.example.com/avatar/abc-me.png",
                }
            ],
        }
    )
    return svc


@pytest.fixture
def mock_postgres_client() -> MagicMock:
    client = MagicMock()
    client.health_check = AsyncMock(return_value=None)
    return client


@pytest.fixture
def mock_redis_client() -> MagicMock:
    client = MagicMock()
    client.ping = AsyncMock(return_value=True)
    return client


@pytest.fixture
def services(
    mock_auth_service: MagicMock,
    mock_admin_auth_service: MagicMock,
    mock_admin_service: MagicMock,
    mock_premium_service: MagicMock,
    mock_billing_service: MagicMock,
    mock_marketplace_service: MagicMock,
    mock_automation_service: MagicMock,
    mock_form_service: MagicMock,
    mock_funnel_service: MagicMock,
    mock_database_connection_service: MagicMock,
    mock_support_service: MagicMock,
    mock_upload_service: MagicMock,
) -> dict[str, MagicMock]:
    """All service mocks keyed by app.state attribute name."""
    mocks = (
        mock_auth_service,
        mock_admin_auth_service,
        mock_admin_service,
        mock_premium_service,
        mock_billing_service,
        mock_marketplace_service,
        mock_automation_service,
        mock_form_service,
        mock_funnel_service,
        mock_database_connection_service,
        mock_support_service,
        mock_upload_service,
    )
    return dict(zip(SERVICE_NAMES, mocks))


@pytest.fixture
def app(
    services: dict[str, MagicMock],
    mock_postgres_client: MagicMock,
    mock_redis_client: MagicMock,
    tenant_context: Any,
    admin_context: Any,
) -> FastAPI:
    return _make_test_app(
        services, mock_postgres_client, mock_redis_client, tenant_context, admin_context
    )


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """TestClient for a signed-in super admin agency owner."""
    return TestClient(app)


@pytest.fixture
def anonymous_client(
    services: dict[str, MagicMock],
    mock_postgres_client: MagicMock,
    mock_redis_client: MagicMock,
) -> TestClient:
    """TestClient with no session and no dependency overrides."""
    return TestClient(
        _make_test_app(services, mock_postgres_client, mock_redis_client, None, None)
    )


@pytest.fixture
def plain_admin_client(
    services: dict[str, MagicMock],
    mock_postgres_client: MagicMock,
    mock_redis_client: MagicMock,
) -> TestClient:
    """TestClient carrying a non-super admin cookie session and no overrides."""
    from plura.service.admin_auth_service import AdminSession

    admin_session = AdminSession(
        user_id=TEST_USER_ID,
        email="admin@example.com",
        is_admin=True,
        is_super_admin=False,
        expires_at=1893456000,
    )
    return TestClient(
        _make_test_app(
            services,
            mock_postgres_client,
            mock_redis_client,
            None,
            None,
            admin_session=admin_session,
        )
    )
