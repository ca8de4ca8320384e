"""Plura FastAPI application.

This module initializes and configures the Plura agency and funnel
platform API with middleware, routers, and lifecycle management.
"""

# ruff: noqa: E402  load_dotenv() must run before any plura imports that read env

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from plura.middleware import ErrorHandlerMiddleware, install_exception_handlers

env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

from plura.config.app_settings import AppSettings
from plura.constants import (
    DEFAULT_RATE_LIMIT_MAX_REQUESTS,
    DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
)
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
from plura.infrastructure.payments.stripe_client import StripeClient
from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient
from plura.infrastructure.persistence.redis.client import RedisClient
from plura.infrastructure.persistence.s3.client import S3Client
from plura.middleware.admin_session_middleware import AdminSessionMiddleware
from plura.middleware.rate_limiting_middleware import RateLimitMiddleware
from plura.middleware.request_routing_middleware import RequestRoutingMiddleware
from plura.middleware.tenant_context_middleware import TenantContextMiddleware
from plura.repository.agency_repository import AgencyRepository
from plura.repository.audit_log_repository import AuditLogRepository
from plura.repository.automation_form_repository import AutomationFormRepository
from plura.repository.automation_repository import AutomationRepository
from plura.repository.creator_payout_repository import CreatorPayoutRepository
from plura.repository.database_connection_repository import (
    DatabaseConnectionRepository,
)
from plura.repository.feature_flag_repository import FeatureFlagRepository
from plura.repository.form_submission_repository import FormSubmissionRepository
from plura.repository.funnel_repository import FunnelRepository
from plura.repository.individual_repository import IndividualRepository
from plura.repository.marketplace_repository import MarketplaceRepository
from plura.repository.notification_repository import NotificationRepository
from plura.repository.session_store_repository import SessionStoreRepository
from plura.repository.subaccount_repository import SubAccountRepository
from plura.repository.subscription_repository import SubscriptionRepository
from plura.repository.system_config_repository import SystemConfigRepository
from plura.repository.ticket_repository import TicketRepository
from plura.repository.user_repository import UserRepository
from plura.service.admin_auth_service import AdminAuthService
from plura.service.admin_service import AdminService
from plura.service.audit_service import AuditService
from plura.service.auth_service import AuthService
from plura.service.automation_service import AutomationService
from plura.service.billing_service import BillingService
from plura.service.database_connection_service import DatabaseConnectionService
from plura.service.form_actions import FormActionRunner
from plura.service.form_service import FormService
from plura.service.funnel_service import FunnelService
from plura.service.marketplace_service import MarketplaceService
from plura.service.notification_service import NotificationService
from plura.service.premium_service import PremiumService
from plura.service.support_service import SupportService
from plura.service.upload_service import UploadService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app_settings = AppSettings()

SERVICE_NAMES = (
    "auth_service",
    "admin_auth_service",
    "admin_service",
    "audit_service",
    "notification_service",
    "premium_service",
    "marketplace_service",
    "billing_service",
    "automation_service",
    "form_service",
    "funnel_service",
    "database_connection_service",
    "support_service",
    "upload_service",
)


async def initialize_database_clients(
    app_settings: AppSettings,
) -> tuple[PostgreSQLClient, RedisClient, RedisClient]:
    """Initialize and connect all database clients."""
    postgres_client = PostgreSQLClient(app_settings.postgres_url)
    await postgres_client.connect()

    redis_client = RedisClient(
        app_settings.redis_url,
        app_settings.redis_default_db,
    )
    await redis_client.connect()

    ratelimit_redis_client = redis_client.with_database(app_settings.redis_ratelimit_db)
    await ratelimit_redis_client.connect()

    logger.info("Database connections established")
    return postgres_client, redis_client, ratelimit_redis_client


def create_postgresql_repositories(
    postgres_client: PostgreSQLClient,
) -> dict[str, Any]:
    """Create all PostgreSQL repositories."""
    return {
        "user_repo": UserRepository(postgres_client),
        "agency_repo": AgencyRepository(postgres_client),
        "subaccount_repo": SubAccountRepository(postgres_client),
        "individual_repo": IndividualRepository(postgres_client),
        "subscription_repo": SubscriptionRepository(postgres_client),
        "marketplace_repo": MarketplaceRepository(postgres_client),
        "payout_repo": CreatorPayoutRepository(postgres_client),
        "notification_repo": NotificationRepository(postgres_client),
        "audit_repo": AuditLogRepository(postgres_client),
        "automation_repo": AutomationRepository(postgres_client),
        "form_repo": AutomationFormRepository(postgres_client),
        "submission_repo": FormSubmissionRepository(postgres_client),
        "funnel_repo": FunnelRepository(postgres_client),
        "connection_repo": DatabaseConnectionRepository(postgres_client),
        "ticket_repo": TicketRepository(postgres_client),
        "system_config_repo": SystemConfigRepository(postgres_client),
        "feature_flag_repo": FeatureFlagRepository(postgres_client),
    }


def create_s3_client(app_settings: AppSettings) -> S3Client:
    """Create the object storage client used for uploads."""
    client = S3Client(
        endpoint_url=app_settings.s3_endpoint_url,
        access_key_id=app_settings.s3_access_key_id,
        secret_access_key=app_settings.s3_secret_access_key,
        bucket_name=app_settings.s3_bucket_name,
        region=app_settings.s3_region,
        public_base_url=app_settings.upload_public_base_url,
    )
    logger.info(
        f"S3 client configured: endpoint={app_settings.s3_endpoint_url or 'AWS'}, "
        f"bucket={app_settings.s3_bucket_name}"
    )
    return client


def create_stripe_client(app_settings: AppSettings) -> StripeClient:
    return StripeClient(
        secret_key=app_settings.stripe_secret_key,
        webhook_secret=app_settings.stripe_webhook_secret or None,
        api_version=app_settings.stripe_api_version,
        app_name=app_settings.stripe_app_name,
        app_version=app_settings.stripe_app_version,
    )


def create_application_services(
    repositories: dict[str, Any],
    session_store: SessionStoreRepository,
    s3_client: S3Client,
    stripe_client: StripeClient,
    app_settings: AppSettings,
) -> dict[str, Any]:
    """Create all application service instances."""
    audit_service = AuditService(repositories["audit_repo"])

    notification_service = NotificationService(
        notification_repo=repositories["notification_repo"],
        user_repo=repositories["user_repo"],
        subaccount_repo=repositories["subaccount_repo"],
    )

    auth_service = AuthService(
        user_repo=repositories["user_repo"],
        subaccount_repo=repositories["subaccount_repo"],
        session_store=session_store,
        secret_key=app_settings.secret_key,
        algorithm=app_settings.jwt_algorithm,
        token_ttl_seconds=app_settings.access_token_expire_minutes * 60,
    )

    admin_auth_service = AdminAuthService(
        user_repo=repositories["user_repo"],
        secret=app_settings.admin_jwt_secret,
        ttl_hours=app_settings.admin_token_expire_hours,
        bootstrap_email=app_settings.admin_email,
        bootstrap_password=app_settings.admin_password,
    )

    admin_service = AdminService(
        agency_repo=repositories["agency_repo"],
        user_repo=repositories["user_repo"],
        subaccount_repo=repositories["subaccount_repo"],
        individual_repo=repositories["individual_repo"],
        marketplace_repo=repositories["marketplace_repo"],
        form_repo=repositories["form_repo"],
        submission_repo=repositories["submission_repo"],
        automation_repo=repositories["automation_repo"],
        system_config_repo=repositories["system_config_repo"],
        feature_flag_repo=repositories["feature_flag_repo"],
        ticket_repo=repositories["ticket_repo"],
        audit_service=audit_service,
    )

    premium_service = PremiumService(
        subscription_repo=repositories["subscription_repo"],
        subaccount_repo=repositories["subaccount_repo"],
        premium_price_ids=app_settings.premium_price_ids,
        premium_addon_price_ids=app_settings.premium_addon_price_ids,
    )

    marketplace_service = MarketplaceService(
        marketplace_repo=repositories["marketplace_repo"],
        user_repo=repositories["user_repo"],
        subaccount_repo=repositories["subaccount_repo"],
        payout_repo=repositories["payout_repo"],
        audit_service=audit_service,
    )

    billing_service = BillingService(
        stripe_client=stripe_client,
        subscription_repo=repositories["subscription_repo"],
        agency_repo=repositories["agency_repo"],
        individual_repo=repositories["individual_repo"],
        marketplace_service=marketplace_service,
        public_url=app_settings.public_url,
    )

    automation_service = AutomationService(
        automation_repo=repositories["automation_repo"],
        submission_repo=repositories["submission_repo"],
        subaccount_repo=repositories["subaccount_repo"],
    )

    form_service = FormService(
        form_repo=repositories["form_repo"],
        submission_repo=repositories["submission_repo"],
        subaccount_repo=repositories["subaccount_repo"],
        action_runner=FormActionRunner(repositories["submission_repo"]),
        public_url=app_settings.public_url,
    )

    funnel_service = FunnelService(
        funnel_repo=repositories["funnel_repo"],
        subaccount_repo=repositories["subaccount_repo"],
    )

    database_connection_service = DatabaseConnectionService(
        connection_repo=repositories["connection_repo"],
        subaccount_repo=repositories["subaccount_repo"],
    )

    support_service = SupportService(
        ticket_repo=repositories["ticket_repo"],
        subaccount_repo=repositories["subaccount_repo"],
        notification_service=notification_service,
    )

    return {
        "auth_service": auth_service,
        "admin_auth_service": admin_auth_service,
        "admin_service": admin_service,
        "audit_service": audit_service,
        "notification_service": notification_service,
        "premium_service": premium_service,
        "marketplace_service": marketplace_service,
        "billing_service": billing_service,
        "automation_service": automation_service,
        "form_service": form_service,
        "funnel_service": funnel_service,
        "database_connection_service": database_connection_service,
        "support_service": support_service,
        "upload_service": UploadService(s3_client),
    }


async def disconnect_database_clients(
    postgres_client: PostgreSQLClient,
    redis_client: RedisClient,
    ratelimit_redis_client: RedisClient,
) -> None:
    """Disconnect all database clients."""
    await postgres_client.disconnect()
    await ratelimit_redis_client.disconnect()
    await redis_client.disconnect()
    logger.info("Database connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("=== Plura Startup ===")

    app.state.app_settings = app_settings
    if app_settings.is_production():
        for problem in app_settings.validate_production_config():
            logger.warning(f"Production config: {problem}")

    (
        postgres_client,
        redis_client,
        ratelimit_redis_client,
    ) = await initialize_database_clients(app_settings)
    app.state.postgres_client = postgres_client
    app.state.redis_client = redis_client
    app.state.ratelimit_redis_client = ratelimit_redis_client

    repositories = create_postgresql_repositories(postgres_client)
    app.state.repositories = repositories

    session_store = SessionStoreRepository(
        redis=redis_client.get_client(),
        default_ttl_seconds=app_settings.access_token_expire_minutes * 60,
    )
    app.state.session_store = session_store

    services = create_application_services(
        repositories,
        session_store,
        create_s3_client(app_settings),
        create_stripe_client(app_settings),
        app_settings,
    )
    for name in SERVICE_NAMES:
        setattr(app.state, name, services[name])

    logger.info("=== Plura Ready ===")

    yield

    logger.info("=== Plura Shutdown ===")

    await disconnect_database_clients(
        postgres_client, redis_client, ratelimit_redis_client
    )

    logger.info("=== Plura Stopped ===")


def create_openapi_schema() -> dict:
    """Generate custom OpenAPI schema with security schemes."""
    if app.openapi_schema:
        return app.openapi_schema

    from fastapi.openapi.utils import get_openapi

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
        servers=app.servers,
        tags=app.openapi_tags,
    )

    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "JWT token obtained from /api/auth/login. Format: `Bearer <token>`",
        },
        "AdminCookieAuth": {
            "type": "apiKey",
            "in": "cookie",
            "name": "admin-token",
            "description": "Admin console cookie set by /api/admin/auth/sign-in",
        },
    }

    openapi_schema["security"] = [
        {"BearerAuth": []},
        {"AdminCookieAuth": []},
    ]

    openapi_schema["x-rate-limit"] = {
        "default": "100 requests per minute per caller",
        "configurable": True,
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema


async def get_redis_client_for_rate_limiting():
    """Get Redis client for rate limiting middleware."""
    if not hasattr(app.state, "ratelimit_redis_client"):
        return None
    return app.state.ratelimit_redis_client.get_client()


def configure_cors_middleware(application: FastAPI, allowed_origins: list[str]) -> None:
    """Configure CORS middleware with specified origins."""
    application.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def configure_rate_limiting_middleware(application: FastAPI) -> None:
    """Configure rate limiting middleware."""
    application.add_middleware(
        RateLimitMiddleware,
        redis_client=get_redis_client_for_rate_limiting,
        window_seconds=DEFAULT_RATE_LIMIT_WINDOW_SECONDS,
        max_requests=DEFAULT_RATE_LIMIT_MAX_REQUESTS,
        enabled=True,
    )


def configure_request_routing_middleware(
    application: FastAPI, app_settings: AppSettings
) -> None:
    """Configure subdomain rewriting and page gating.

    Runs inside the session middlewares, so the session they attach is
    already available.
    """
    application.add_middleware(
        RequestRoutingMiddleware,
        domain=app_settings.public_domain,
    )


def configure_session_middlewares(
    application: FastAPI, app_settings: AppSettings
) -> None:
    """Configure admin cookie and primary session resolution.

    The session_store and admin_auth_service are resolved lazily from
    app.state during each request to avoid a circular dependency at
    startup time.
    """
    application.add_middleware(AdminSessionMiddleware)
    application.add_middleware(
        TenantContextMiddleware,
        jwt_secret=app_settings.secret_key,
        jwt_algorithm=app_settings.jwt_algorithm,
    )


def configure_error_handlers_middleware(
    app: FastAPI, app_settings: AppSettings
) -> None:
    """Set up error handlers for FastAPI application."""
    app.state.debug = app_settings.debug
    app.state.environment = app_settings.environment

    app.add_middleware(ErrorHandlerMiddleware)
    install_exception_handlers(app)

    logger.info(
        "Error handling middleware configured",
        extra={"debug": app.state.debug, "environment": app.state.environment},
    )


def register_api_routers(application: FastAPI) -> None:
    """Register all API route controllers.

    The published-site routes match any path, so they go last.
    """
    application.include_router(health_controller.router)
    application.include_router(auth_controller.router)
    application.include_router(admin_auth_controller.router)
    application.include_router(admin_controller.router)
    application.include_router(subscription_controller.router)
    application.include_router(billing_controller.router)
    application.include_router(marketplace_controller.router)
    application.include_router(automation_controller.router)
    application.include_router(form_controller.router)
    application.include_router(funnel_controller.router)
    application.include_router(database_controller.router)
    application.include_router(support_controller.router)
    application.include_router(upload_controller.router)
    application.include_router(site_controller.router)
    application.include_router(funnel_controller.site_router)


app = FastAPI(
    title="Plura",
    description="""
# Agency and Funnel Platform API

Backend for agencies, their subaccounts and individual workspaces.

## Features

* **Tenancy**: Agencies, subaccounts and individual workspaces
* **Billing**: Stripe subscriptions, theme purchases and premium checks
* **Marketplace**: Themes and plugins with commission tracking
* **Automations**: Public form webhooks that trigger automation actions
* **Funnels**: Published funnel pages served on tenant subdomains
* **Admin Console**: Audited platform administration

## Authentication

### Session Token
```
Authorization: Bearer <jwt_token>
```

### Admin Console
The `admin-token` cookie set by `POST /api/admin/auth/sign-in`.

## Rate Limiting

API endpoints are rate-limited per caller. Default: 100 requests/minute.
""",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "health",
            "description": "Health check endpoint for PostgreSQL and Redis connectivity.",
        },
        {
            "name": "auth",
            "description": "Sign-in, sign-out and identity of the current session.",
        },
        {
            "name": "admin",
            "description": "Audited administrative endpoints. Require the admin-token cookie or an admin session.",
        },
        {
            "name": "subscriptions",
            "description": "Plan catalogue and premium status checks.",
        },
        {
            "name": "billing",
            "description": "Stripe checkout sessions and webhook processing.",
        },
        {
            "name": "marketplace",
            "description": "Theme and plugin catalogue and purchases.",
        },
        {
            "name": "forms",
            "description": "Automation forms, public submissions and submission history.",
        },
        {
            "name": "funnels",
            "description": "Funnel pages, settings and public preview.",
        },
    ],
    servers=[
        {
            "url": "http://localhost:8000",
            "description": "Local development server",
        },
    ],
    openapi_url="/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.openapi = create_openapi_schema

cors_origins = app_settings.cors_origins if app_settings.cors_origins else ["*"]
configure_cors_middleware(app, cors_origins)
configure_rate_limiting_middleware(app)
configure_request_routing_middleware(app, app_settings)
configure_session_middlewares(app, app_settings)
configure_error_handlers_middleware(app, app_settings)

register_api_routers(app)

logger.info("Plura application configured")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "plura.main:app",
        host=app_settings.api_host,
        port=app_settings.api_port,
        reload=app_settings.debug,
    )
