"""Unit tests for the primary login service and password helpers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import jwt
import pytest

from plura.exception import AuthenticationError
from plura.service.auth_service import (
    AuthService,
    build_session_jwt,
    hash_password,
    verify_password,
)
from tests.conftest import (
    TEST_AGENCY_ID,
    TEST_SUBACCOUNT_ID,
    TEST_USER_ID,
    make_token_session,
)

SECRET = "unit-test-secret"


def _user(password: str = "s3cret", is_active: bool = True, admin_user=None):
    return SimpleNamespace(
        id=UUID(TEST_USER_ID),
        email="owner@example.com",
        name="Agency Owner",
        role="AGENCY_OWNER",
        plan="FREE",
        password_hash=hash_password(password),
        is_active=is_active,
        agency_id=UUID(TEST_AGENCY_ID),
        individual=None,
        admin_user=admin_user,
    )


@pytest.fixture
def user_repo() -> MagicMock:
    repo = MagicMock()
    repo.get_by_email = AsyncMock(return_value=_user())
    repo.update = AsyncMock()
    return repo


@pytest.fixture
def session_store() -> MagicMock:
    store = MagicMock()
    store.create_session = AsyncMock(return_value=make_token_session())
    store.delete_session = AsyncMock()
    return store


@pytest.fixture
def service(user_repo: MagicMock, session_store: MagicMock) -> AuthService:
    subaccount_repo = MagicMock()
    subaccount_repo.list_ids_for_owner = AsyncMock(return_value=[TEST_SUBACCOUNT_ID])
    return AuthService(
        user_repo=user_repo,
        subaccount_repo=subaccount_repo,
        session_store=session_store,
        secret_key=SECRET,
    )


class TestPasswordHelpers:
    """Tests for hash_password and verify_password."""

    def test_round_trip(self) -> None:
        stored = hash_password("s3cret")

        assert stored != "s3cret"
        assert verify_password("s3cret", stored) is True
        assert verify_password("wrong", stored) is False

    @pytest.mark.parametrize("stored", [None, "", "not-a-hash"])
    def test_missing_or_malformed_hash(self, stored) -> None:
        assert verify_password("s3cret", stored) is False


class TestBuildSessionJwt:
    """Tests for build_session_jwt."""

    def test_carries_subject_and_jti(self) -> None:
        token = build_session_jwt(TEST_USER_ID, "01JTI", SECRET, "HS256", 60)

        payload = jwt.decode(token, SECRET, algorithms=["HS256"])
        assert payload["sub"] == TEST_USER_ID
        assert payload["jti"] == "01JTI"
        assert payload["exp"] - payload["iat"] == 60


class TestLogin:
    """Tests for AuthService.login."""

    async def test_issues_token_for_stored_session(
        self, service: AuthService, session_store: MagicMock
    ) -> None:
        """The JWT jti is the Redis session key."""
        result = await service.login("owner@example.com", "s3cret")

        payload = jwt.decode(result["token"], SECRET, algorithms=["HS256"])
        assert payload["jti"] == "01HZY8Z5N2XKQ7R3V4W5T6Y7U8"
        kwargs = session_store.create_session.await_args.kwargs
        assert kwargs["agency_id"] == TEST_AGENCY_ID
        assert kwargs["subaccount_ids"] == [TEST_SUBACCOUNT_ID]
        assert kwargs["is_admin"] is False

    async def test_admin_membership_is_carried(
        self, service: AuthService, user_repo: MagicMock, session_store: MagicMock
    ) -> None:
        user_repo.get_by_email.return_value = _user(
            admin_user=SimpleNamespace(is_super_admin=True)
        )

        await service.login("owner@example.com", "s3cret")

        kwargs = session_store.create_session.await_args.kwargs
        assert kwargs["is_admin"] is True
        assert kwargs["is_super_admin"] is True

    async def test_wrong_password(self, service: AuthService, session_store: MagicMock) -> None:
        with pytest.raises(AuthenticationError, match="Invalid credentials"):
            await service.login("owner@example.com", "nope")

        session_store.create_session.assert_not_awaited()

    async def test_unknown_email(self, service: AuthService, user_repo: MagicMock) -> None:
        user_repo.get_by_email.return_value = None

        with pytest.raises(AuthenticationError):
            await service.login("ghost@example.com", "s3cret")

    async def test_suspended_account(self, service: AuthService, user_repo: MagicMock) -> None:
        user_repo.get_by_email.return_value = _user(is_active=False)

        with pytest.raises(AuthenticationError, match="suspended"):
            await service.login("owner@example.com", "s3cret")


class TestLogoutAndDescribe:
    """Tests for logout and describe_session."""

    async def test_logout_deletes_session(
        self, service: AuthService, session_store: MagicMock
    ) -> None:
        await service.logout("01JTI")

        session_store.delete_session.assert_awaited_once_with("01JTI")

    def test_describe_session(self) -> None:
        described = AuthService.describe_session(make_token_session())

        assert described["userId"] == TEST_USER_ID
        assert described["subaccountIds"] == [TEST_SUBACCOUNT_ID]
        assert described["isAdmin"] is False
