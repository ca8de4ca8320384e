"""Unit tests for SupportService."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from plura.exception import BadRequestError
from plura.service.support_service import SupportService
from tests.conftest import (
    TEST_AGENCY_ID,
    TEST_INDIVIDUAL_ID,
    TEST_SUBACCOUNT_ID,
    TEST_USER_ID,
    make_mock_subaccount,
    make_token_session,
)

TICKET_ID = UUID("eeeeeeee-eeee-eeee-eeee-eeeeeeeeeeee")


@pytest.fixture
def ticket_repo() -> MagicMock:
    repo = MagicMock()
    repo.create = AsyncMock(return_value=SimpleNamespace(id=TICKET_ID))
    repo.list_for_customer = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def notification_service() -> MagicMock:
    svc = MagicMock()
    svc.save_activity_log = AsyncMock()
    return svc


@pytest.fixture
def service(
    ticket_repo: MagicMock, subaccount_repo: MagicMock, notification_service: MagicMock
) -> SupportService:
    return SupportService(
        ticket_repo=ticket_repo,
        subaccount_repo=subaccount_repo,
        notification_service=notification_service,
    )


class TestCreateTicket:
    """Tests for SupportService.create_ticket."""

    async def test_defaults_and_no_subaccount(
        self,
        service: SupportService,
        ticket_repo: MagicMock,
        notification_service: MagicMock,
        token_session,
    ) -> None:
        """Priority and category fall back to medium and general."""
        result = await service.create_ticket(token_session, "Billing", "Card declined")

        assert result == {"success": True, "ticketId": str(TICKET_ID)}
        ticket_repo.create.assert_awaited_once_with(
            name="Billing",
            description="Card declined",
            priority="medium",
            category="general",
            status="open",
            customer_id=TEST_USER_ID,
            subaccount_id=None,
            agency_id=None,
        )
        notification_service.save_activity_log.assert_not_awaited()

    async def test_subaccount_ticket_notifies_agency(
        self,
        service: SupportService,
        ticket_repo: MagicMock,
        notification_service: MagicMock,
        token_session,
    ) -> None:
        await service.create_ticket(
            token_session, "Domain", "DNS", priority="high", subaccount_id=TEST_SUBACCOUNT_ID
        )

        assert ticket_repo.create.await_args.kwargs["agency_id"] == UUID(TEST_AGENCY_ID)
        notification_service.save_activity_log.assert_awaited_once_with(
            user_id=TEST_USER_ID,
            description="New support ticket: Domain",
            subaccount_id=TEST_SUBACCOUNT_ID,
        )

    async def test_individual_subaccount_skips_feed(
        self,
        service: SupportService,
        subaccount_repo: MagicMock,
        notification_service: MagicMock,
    ) -> None:
        """Subaccounts without an agency have no activity feed."""
        session = make_token_session(agency_id=None, individual_id=TEST_INDIVIDUAL_ID)
        subaccount_repo.get_by_id = AsyncMock(
            return_value=make_mock_subaccount(agency_id=None, individual_id=TEST_INDIVIDUAL_ID)
        )

        await service.create_ticket(session, "Help", "Stuck", subaccount_id=TEST_SUBACCOUNT_ID)

        notification_service.save_activity_log.assert_not_awaited()

    @pytest.mark.parametrize("subject,description", [("", "x"), ("x", None)])
    async def test_subject_and_description_required(
        self, service: SupportService, token_session, subject, description
    ) -> None:
        with pytest.raises(BadRequestError):
            await service.create_ticket(token_session, subject, description)


class TestListMyTickets:
    """Tests for SupportService.list_my_tickets."""

    async def test_filters_by_caller(
        self, service: SupportService, ticket_repo: MagicMock, token_session
    ) -> None:
        assert await service.list_my_tickets(token_session, "open") == []
        ticket_repo.list_for_customer.assert_awaited_once_with(TEST_USER_ID, "open")
