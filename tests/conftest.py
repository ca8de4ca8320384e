"""Root-level pytest configuration and shared fixtures.

Adds the src/ directory to sys.path so plura can be imported without installation.
Provides common mock factories and pytest fixtures used across all test suites.

Key exports:
    - make_token_session: a primary session for a tenant user
    - Mock ORM factories (make_mock_subaccount, make_mock_subscription, ...)
    - Mock repository factories (make_subaccount_repo, make_subscription_repo, ...)
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

TEST_USER_ID = "11111111-1111-1111-1111-111111111111"
TEST_AGENCY_ID = "22222222-2222-2222-2222-222222222222"
TEST_SUBACCOUNT_ID = "33333333-3333-3333-3333-333333333333"
TEST_INDIVIDUAL_ID = "44444444-4444-4444-4444-444444444444"
OTHER_AGENCY_ID = "55555555-5555-5555-5555-555555555555"


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


def make_token_session(
    user_id: str = TEST_USER_ID,
    agency_id: Optional[str] = TEST_AGENCY_ID,
    individual_id: Optional[str] = None,
    subaccount_ids: Optional[List[str]] = None,
    plan: str = "FREE",
    is_admin: bool = False,
    is_super_admin: bool = False,
) -> Any:
    """Build a TokenSession for an agency member.

    Args:
        user_id: Session user.
        agency_id: Agency membership, None for an individual creator.
        individual_id: Owned individual workspace.
        subaccount_ids: Reachable subaccounts (defaults to the test subaccount).
        plan: User plan.
        is_admin: Admin console membership.
        is_super_admin: Super-admin flag.

    Returns:
        TokenSession with a fixed jti.
    """
    from plura.repository.session_store_repository import TokenSession

    return TokenSession(
        jti="01HZY8Z5N2XKQ7R3V4W5T6Y7U8",
        user_id=user_id,
        email="owner@example.com",
        name="Agency Owner",
        role="AGENCY_OWNER",
        plan=plan,
        agency_id=agency_id,
        individual_id=individual_id,
        subaccount_ids=list(
            subaccount_ids if subaccount_ids is not None else [TEST_SUBACCOUNT_ID]
        ),
        is_admin=is_admin,
        is_super_admin=is_super_admin,
        created_at="2026-01-01T00:00:00+00:00",
        expires_at="2026-01-01T00:30:00+00:00",
    )


# ---------------------------------------------------------------------------
# Mock ORM factories
# ---------------------------------------------------------------------------


def make_mock_subaccount(
    subaccount_id: str = TEST_SUBACCOUNT_ID,
    agency_id: Optional[str] = TEST_AGENCY_ID,
    individual_id: Optional[str] = None,
    name: str = "Downtown Bakery",
) -> MagicMock:
    """Build a mock SubAccount ORM object."""
    subaccount = MagicMock()
    subaccount.id = UUID(subaccount_id)
    subaccount.agency_id = UUID(agency_id) if agency_id else None
    subaccount.individual_id = UUID(individual_id) if individual_id else None
    subaccount.name = name
    subaccount.is_active = True
    subaccount.created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return subaccount


def make_mock_subscription(
    active: bool = True,
    price_id: str = "price_1OYxkqFj9oKEERu1KfJGWxgN",
    plan: str = "BASIC",
) -> MagicMock:
    """Build a mock Subscription ORM object."""
    subscription = MagicMock()
    subscription.id = UUID("66666666-6666-6666-6666-666666666666")
    subscription.active = active
    subscription.price_id = price_id
    subscription.plan = plan
    return subscription


def make_mock_add_on(
    name: str = "Priority Support",
    price_id: str = "price_unlisted",
    active: bool = True,
) -> MagicMock:
    """Build a mock AddOn ORM object."""
    add_on = MagicMock()
    add_on.name = name
    add_on.price_id = price_id
    add_on.active = active
    return add_on


# ---------------------------------------------------------------------------
# Mock repository factories
# ---------------------------------------------------------------------------


def make_subaccount_repo(subaccount: Optional[MagicMock] = None) -> MagicMock:
    """Build a mock SubAccountRepository.

    Args:
        subaccount: Value returned by get_by_id (defaults to the test subaccount).

    Returns:
        MagicMock with get_by_id and count_usage as AsyncMocks.
    """
    repo = MagicMock()
    repo.get_by_id = AsyncMock(
        return_value=subaccount if subaccount is not None else make_mock_subaccount()
    )
    repo.count_usage = AsyncMock(return_value=(2, 7, 1))
    return repo


def make_subscription_repo(
    agency_subscription: Optional[MagicMock] = None,
    individual_subscription: Optional[MagicMock] = None,
    add_ons: Optional[List[MagicMock]] = None,
) -> MagicMock:
    """Build a mock SubscriptionRepository."""
    repo = MagicMock()
    repo.get_for_agency = AsyncMock(return_value=agency_subscription)
    repo.get_for_individual = AsyncMock(return_value=individual_subscription)
    repo.list_active_add_ons = AsyncMock(return_value=add_ons or [])
    return repo


def make_audit_service() -> MagicMock:
    """Build a mock AuditService whose record() is awaited by admin services."""
    service = MagicMock()
    service.record = AsyncMock(return_value=None)
    return service


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def token_session() -> Any:
    """Agency owner session reaching the test subaccount."""
    return make_token_session()


@pytest.fixture
def subaccount_repo() -> MagicMock:
    return make_subaccount_repo()


@pytest.fixture
def audit_service() -> MagicMock:
    return make_audit_service()
