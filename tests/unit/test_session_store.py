"""Unit tests for SessionStoreRepository (Redis-backed primary sessions)."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from plura.repository.session_store_repository import SessionStoreRepository, TokenSession
from tests.conftest import TEST_AGENCY_ID, TEST_SUBACCOUNT_ID, TEST_USER_ID


@pytest.fixture
def redis() -> MagicMock:
    client = MagicMock()
    client.setex = AsyncMock()
    client.sadd = AsyncMock()
    client.srem = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.delete = AsyncMock()
    client.smembers = AsyncMock(return_value=set())
    return client


@pytest.fixture
def store(redis: MagicMock) -> SessionStoreRepository:
    return SessionStoreRepository(redis=redis, default_ttl_seconds=1800)


class TestCreateSession:
    async def test_persists_payload_with_ttl(
        self, store: SessionStoreRepository, redis: MagicMock
    ) -> None:
        session = await store.create_session(
            user_id=TEST_USER_ID,
            email="owner@example.com",
            agency_id=TEST_AGENCY_ID,
            subaccount_ids=[TEST_SUBACCOUNT_ID],
        )

        key, ttl, raw = redis.setex.await_args.args
        assert key == f"session:{session.jti}"
        assert ttl == 1800
        assert json.loads(raw)["agency_id"] == TEST_AGENCY_ID
        redis.sadd.assert_awaited_once_with(f"user_sessions:{TEST_USER_ID}", session.jti)

    async def test_jti_is_a_ulid(self, store: SessionStoreRepository) -> None:
        session = await store.create_session(user_id=TEST_USER_ID, email="a@example.com")

        assert len(session.jti) == 26

    async def test_custom_ttl(self, store: SessionStoreRepository, redis: MagicMock) -> None:
        await store.create_session(user_id=TEST_USER_ID, email="a@example.com", ttl_seconds=60)

        assert redis.setex.await_args.args[1] == 60


class TestGetSession:
    async def test_missing(self, store: SessionStoreRepository) -> None:
        assert await store.get_session("01HZY8Z5N2XKQ7R3V4W5T6Y7U8") is None

    async def test_older_payloads_get_defaults(
        self, store: SessionStoreRepository, redis: MagicMock
    ) -> None:
        redis.get.return_value = json.dumps({"jti": "j1", "user_id": TEST_USER_ID})

        session = await store.get_session("j1")

        assert session.plan == "FREE"
        assert session.subaccount_ids == []
        assert session.is_admin is False


class TestRevocation:
    async def test_delete_session_drops_index_entry(
        self, store: SessionStoreRepository, redis: MagicMock
    ) -> None:
        redis.get.return_value = json.dumps({"jti": "j1", "user_id": TEST_USER_ID})

        await store.delete_session("j1")

        redis.srem.assert_awaited_once_with(f"user_sessions:{TEST_USER_ID}", "j1")
        redis.delete.assert_awaited_once_with("session:j1")

    async def test_delete_all_user_sessions(
        self, store: SessionStoreRepository, redis: MagicMock
    ) -> None:
        redis.smembers.return_value = {"j1"}

        await store.delete_all_user_sessions(TEST_USER_ID)

        redis.delete.assert_any_await("session:j1")
        redis.delete.assert_any_await(f"user_sessions:{TEST_USER_ID}")


class TestTokenSession:
    def test_subaccount_access(self) -> None:
        session = TokenSession(
            jti="j",
            user_id=TEST_USER_ID,
            email="a@example.com",
            subaccount_ids=[TEST_SUBACCOUNT_ID],
        )

        assert session.can_access_subaccount(TEST_SUBACCOUNT_ID) is True
        assert session.can_access_subaccount(TEST_AGENCY_ID) is False

    def test_owns_individual(self) -> None:
        session = TokenSession(jti="j", user_id=TEST_USER_ID, email="a@example.com")

        assert session.owns_individual("anything") is False
