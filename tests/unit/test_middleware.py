"""Unit tests for middleware components.

Covers the routing decision table, the subdomain rewrite, session resolution
from the Bearer JWT and the admin cookie, the access-control dependencies,
and the Redis sliding-window rate limiter.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient
from redis.exceptions import RedisError

from plura.middleware.admin_session_middleware import AdminSessionMiddleware
from plura.middleware.authorization_middleware import (
    client_ip,
    require_admin,
    require_super_admin,
)
from plura.middleware.rate_limiting_middleware import RateLimitMiddleware
from plura.middleware.request_routing_middleware import (
    PASS,
    REDIRECT,
    REWRITE,
    UNAUTHORIZED,
    RequestRoutingMiddleware,
    RoutingDecision,
    decide_route,
    extract_subdomain,
    is_public_route,
)
from plura.middleware.tenant_context_middleware import TenantContextMiddleware
from tests.conftest import TEST_USER_ID, make_token_session

DOMAIN = "plura.test"
JWT_SECRET = "test-jwt-secret-with-at-least-32-bytes"


def _request(headers=None, state=None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": raw_headers,
            "query_string": b"",
            "state": dict(state or {}),
        }
    )


# ---------------------------------------------------------------------------
# Request routing
# ---------------------------------------------------------------------------


class TestExtractSubdomain:
    def test_tenant_host(self) -> None:
        assert extract_subdomain("bakery.plura.test", DOMAIN) == "bakery"

    def test_case_insensitive(self) -> None:
        assert extract_subdomain("Bakery.PLURA.test", DOMAIN) == "bakery"

    def test_bare_domain(self) -> None:
        assert extract_subdomain("plura.test", DOMAIN) is None

    def test_lookalike_host(self) -> None:
        assert extract_subdomain("evilplura.test", DOMAIN) is None

    def test_empty_host(self) -> None:
        assert extract_subdomain("", DOMAIN) is None


class TestIsPublicRoute:
    @pytest.mark.parametrize(
        "path",
        ["/", "/site", "/site/bakery", "/api/forms/wh_1/submit", "/api/marketplace/themes"],
    )
    def test_public(self, path: str) -> None:
        assert is_public_route(path) is True

    @pytest.mark.parametrize("path", ["/api/funnels", "/api/forms", "/dashboard"])
    def test_private(self, path: str) -> None:
        assert is_public_route(path) is False


class TestDecideRoute:
    """Tests for the routing decision table."""

    def test_admin_paths_pass_without_session(self) -> None:
        assert decide_route(DOMAIN, "/api/admin/stats", DOMAIN, False) == RoutingDecision(PASS)

    def test_ignored_routes_pass(self) -> None:
        decision = decide_route("bakery.plura.test", "/api/stripe/webhook", DOMAIN, False)
        assert decision == RoutingDecision(PASS)

    def test_subdomain_is_rewritten(self) -> None:
        decision = decide_route("bakery.plura.test", "/offers", DOMAIN, False)
        assert decision == RoutingDecision(REWRITE, "/bakery/offers")

    def test_legacy_sign_in_redirects(self) -> None:
        decision = decide_route(DOMAIN, "/sign-up", DOMAIN, False)
        assert decision == RoutingDecision(REDIRECT, "/agency/sign-in")

    def test_root_is_rewritten_to_site(self) -> None:
        assert decide_route(DOMAIN, "/", DOMAIN, False) == RoutingDecision(REWRITE, "/site")

    def test_agency_pages_pass(self) -> None:
        assert decide_route(DOMAIN, "/agency/123", DOMAIN, False).action == PASS

    def test_individual_auth_pages_pass(self) -> None:
        path = "/individual/abc/(auth)/sign-in"
        assert decide_route(DOMAIN, path, DOMAIN, False).action == PASS

    def test_private_api_needs_session(self) -> None:
        assert decide_route(DOMAIN, "/api/funnels", DOMAIN, False).action == UNAUTHORIZED
        assert decide_route(DOMAIN, "/api/funnels", DOMAIN, True).action == PASS

    def test_private_page_redirects_to_sign_in(self) -> None:
        decision = decide_route(DOMAIN, "/dashboard", DOMAIN, False)
        assert decision == RoutingDecision(REDIRECT, "/agency/sign-in")

    def test_public_form_submit(self) -> None:
        assert decide_route(DOMAIN, "/api/forms/wh_1/submit", DOMAIN, False).action == PASS


class TestRequestRoutingMiddleware:
    """The middleware applies the decision to the ASGI scope."""

    @pytest.fixture
    def seen_paths(self) -> list:
        return []

    @pytest.fixture
    def routed_app(self, seen_paths: list):
        async def app(scope, receive, send):
            seen_paths.append(scope["path"])
            await send(
                {
                    "type": "http.response.start",
                    "status": 200,
                    "headers": [(b"content-type", b"text/plain")],
                }
            )
            await send({"type": "http.response.body", "body": b"ok"})

        return RequestRoutingMiddleware(app, domain=DOMAIN)

    def test_rewrites_tenant_subdomain(self, routed_app, seen_paths: list) -> None:
        client = TestClient(routed_app, base_url="http://bakery.plura.test")

        response = client.get("/offers/spring")

        assert response.status_code == 200
        assert seen_paths == ["/bakery/offers/spring"]

    def test_redirects_legacy_sign_in(self, routed_app, seen_paths: list) -> None:
        client = TestClient(routed_app, base_url="http://plura.test")

        response = client.get("/sign-in", follow_redirects=False)

        assert response.status_code == 307
        assert response.headers["location"] == "/agency/sign-in"
        assert seen_paths == []

    def test_rejects_anonymous_api_call(self, routed_app, seen_paths: list) -> None:
        client = TestClient(routed_app, base_url="http://plura.test")

        response = client.get("/api/funnels")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"
        assert seen_paths == []


# ---------------------------------------------------------------------------
# Session resolution
# ---------------------------------------------------------------------------


def _session_echo_app() -> FastAPI:
    app = FastAPI()

    @app.get("/whoami")
    async def whoami(request: Request):
        session = request.state.session
        admin_session = getattr(request.state, "admin_session", None)
        return {
            "user": session.user_id if session else None,
            "jti": request.state.token_jti,
            "admin": admin_session.user_id if admin_session else None,
        }

    return app


class TestTenantContextMiddleware:
    """Bearer JWT -> jti -> Redis session."""

    @pytest.fixture
    def session_store(self) -> SimpleNamespace:
        return SimpleNamespace(get_session=AsyncMock(return_value=make_token_session()))

    @pytest.fixture
    def client(self, session_store: SimpleNamespace) -> TestClient:
        app = _session_echo_app()
        app.add_middleware(TenantContextMiddleware, jwt_secret=JWT_SECRET)
        app.state.session_store = session_store
        return TestClient(app)

    def test_valid_token_loads_session(self, client: TestClient, session_store) -> None:
        token = jwt.encode({"jti": "01HZY8Z5N2XKQ7R3V4W5T6Y7U8"}, JWT_SECRET, algorithm="HS256")

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["user"] == TEST_USER_ID
        assert response.json()["jti"] == "01HZY8Z5N2XKQ7R3V4W5T6Y7U8"
        session_store.get_session.assert_awaited_once_with("01HZY8Z5N2XKQ7R3V4W5T6Y7U8")

    def test_wrong_signature_is_anonymous(self, client: TestClient, session_store) -> None:
        token = jwt.encode(
            {"jti": "x"}, "another-secret-with-at-least-32-bytes", algorithm="HS256"
        )

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json()["user"] is None
        session_store.get_session.assert_not_awaited()

    def test_revoked_session_is_anonymous(self, client: TestClient, session_store) -> None:
        session_store.get_session.return_value = None
        token = jwt.encode({"jti": "gone"}, JWT_SECRET, algorithm="HS256")

        response = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})

        assert response.json() == {"user": None, "jti": None, "admin": None}

    def test_no_header(self, client: TestClient) -> None:
        assert client.get("/whoami").json()["user"] is None


class TestAdminSessionMiddleware:
    """admin-token cookie -> AdminSession."""

    @pytest.fixture
    def admin_auth_service(self) -> MagicMock:
        service = MagicMock()
        service.verify_admin_token.return_value = SimpleNamespace(user_id="admin-1")
        return service

    @pytest.fixture
    def client(self, admin_auth_service: MagicMock) -> TestClient:
        app = _session_echo_app()
        app.add_middleware(AdminSessionMiddleware)
        app.add_middleware(TenantContextMiddleware, jwt_secret=JWT_SECRET)
        app.state.admin_auth_service = admin_auth_service
        return TestClient(app)

    def test_cookie_is_verified(self, client: TestClient, admin_auth_service) -> None:
        response = client.get("/whoami", headers={"cookie": "admin-token=signed"})

        assert response.json()["admin"] == "admin-1"
        admin_auth_service.verify_admin_token.assert_called_once_with("signed")

    def test_invalid_cookie(self, client: TestClient, admin_auth_service) -> None:
        admin_auth_service.verify_admin_token.return_value = None

        response = client.get("/whoami", headers={"cookie": "admin-token=forged"})

        assert response.json()["admin"] is None

    def test_no_cookie(self, client: TestClient, admin_auth_service) -> None:
        assert client.get("/whoami").json()["admin"] is None
        admin_auth_service.verify_admin_token.assert_not_called()


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------


class TestClientIp:
    def test_first_forwarded_entry(self) -> None:
        request = _request({"x-forwarded-for": "198.51.100.4, 10.0.0.1"})
        assert client_ip(request) == "198.51.100.4"

    def test_real_ip_fallback(self) -> None:
        assert client_ip(_request({"x-real-ip": "203.0.113.9"})) == "203.0.113.9"

    def test_unknown(self) -> None:
        assert client_ip(_request()) == "unknown"


class TestRequireAdmin:
    """Tests for require_admin and require_super_admin."""

    async def test_admin_cookie_wins(self) -> None:
        admin_session = SimpleNamespace(
            user_id="admin-1", email="admin@example.com", is_super_admin=False
        )
        request = _request({"user-agent": "pytest"}, {"admin_session": admin_session})

        context = await require_admin(request)

        assert context.user_id == "admin-1"
        assert context.audit_actor().user_agent == "pytest"

    async def test_admin_flagged_session(self) -> None:
        request = _request(state={"session": make_token_session(is_admin=True)})

        context = await require_admin(request)

        assert context.user_id == TEST_USER_ID
        assert context.is_super_admin is False

    async def test_anonymous(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await require_admin(_request())
        assert exc_info.value.status_code == 401

    async def test_non_admin_session(self) -> None:
        request = _request(state={"session": make_token_session()})

        with pytest.raises(HTTPException) as exc_info:
            await require_admin(request)
        assert exc_info.value.status_code == 403

    async def test_super_admin_required(self) -> None:
        request = _request(state={"session": make_token_session(is_admin=True)})

        with pytest.raises(HTTPException) as exc_info:
            await require_super_admin(request)
        assert exc_info.value.detail == "Super admin access required"


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


def _redis(count: int = 0) -> SimpleNamespace:
    return SimpleNamespace(
        zremrangebyscore=AsyncMock(),
        zcard=AsyncMock(return_value=count),
        zadd=AsyncMock(),
        expire=AsyncMock(),
    )


def _rate_limited_client(redis_client, **kwargs) -> TestClient:
    app = FastAPI()

    @app.get("/api/funnels")
    async def funnels():
        return {"funnels": []}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.add_middleware(RateLimitMiddleware, redis_client=redis_client, **kwargs)
    return TestClient(app)


class TestRateLimitMiddleware:
    """Tests for the Redis sliding-window limiter."""

    def test_key_layout(self) -> None:
        key = RateLimitMiddleware._build_rate_limit_key("ip:1.2.3.4", "/api/funnels")
        assert key == "ratelimit:ip:1.2.3.4::api:funnels"

    def test_caller_is_user_when_signed_in(self) -> None:
        request = _request(state={"session": make_token_session()})
        assert RateLimitMiddleware._caller_id(request) == f"user:{TEST_USER_ID}"

    def test_caller_is_forwarded_ip(self) -> None:
        request = _request({"x-forwarded-for": "198.51.100.4, 10.0.0.1"})
        assert RateLimitMiddleware._caller_id(request) == "ip:198.51.100.4"

    def test_under_limit_is_tracked(self) -> None:
        redis = _redis(count=1)

        response = _rate_limited_client(redis, max_requests=2).get("/api/funnels")

        assert response.status_code == 200
        redis.zadd.assert_awaited_once()
        redis.expire.assert_awaited_once()

    def test_over_limit(self) -> None:
        redis = _redis(count=2)

        response = _rate_limited_client(redis, max_requests=2, window_seconds=60).get(
            "/api/funnels"
        )

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
        redis.zadd.assert_not_awaited()

    def test_exempt_path(self) -> None:
        redis = _redis(count=100)

        response = _rate_limited_client(redis, max_requests=1).get("/health")

        assert response.status_code == 200
        redis.zcard.assert_not_awaited()

    def test_redis_outage_lets_requests_through(self) -> None:
        redis = _redis()
        redis.zcard.side_effect = RedisError("connection refused")

        response = _rate_limited_client(redis).get("/api/funnels")

        assert response.status_code == 200

    def test_lazy_factory_without_redis(self) -> None:
        async def no_redis():
            return None

        response = _rate_limited_client(no_redis).get("/api/funnels")

        assert response.status_code == 200
