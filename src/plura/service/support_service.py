"""Customer support tickets."""

import logging
from typing import Any, Dict, List, Optional

from plura.constants import (
    DEFAULT_TICKET_CATEGORY,
    DEFAULT_TICKET_PRIORITY,
    DEFAULT_TICKET_STATUS,
)
from plura.exception import BadRequestError
from plura.infrastructure.persistence.postgresql.models import Ticket
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository
from plura.repository.ticket_repository import TicketRepository
from plura.service.access import load_accessible_subaccount
from plura.service.notification_service import NotificationService

logger = logging.getLogger(__name__)


def ticket_to_dict(ticket: Ticket) -> Dict[str, Any]:
    return {
        "id": str(ticket.id),
        "subject": ticket.name,
        "description": ticket.description,
        "status": ticket.status,
        "priority": ticket.priority,
        "category": ticket.category,
        "customerId": str(ticket.customer_id) if ticket.customer_id else None,
        "assignedUserId": str(ticket.assigned_user_id) if ticket.assigned_user_id else None,
        "resolution": ticket.resolution,
        "subAccountId": str(ticket.subaccount_id) if ticket.subaccount_id else None,
        "agencyId": str(ticket.agency_id) if ticket.agency_id else None,
        "createdAt": ticket.created_at.isoformat() if ticket.created_at else None,
        "updatedAt": ticket.updated_at.isoformat() if ticket.updated_at else None,
    }


class SupportService:
    """Ticket intake for signed-in users.

    Attributes:
        ticket_repo: Ticket repository
        subaccount_repo: Subaccount repository, for tenant checks
        notification_service: Writes the agency activity line for new tickets
    """

    def __init__(
        self,
        ticket_repo: TicketRepository,
        subaccount_repo: SubAccountRepository,
        notification_service: NotificationService,
    ):
        self.ticket_repo = ticket_repo
        self.subaccount_repo = subaccount_repo
        self.notification_service = notification_service

    async def create_ticket(
        self,
        session: TokenSession,
        subject: Optional[str],
        description: Optional[str],
        priority: Optional[str] = None,
        category: Optional[str] = None,
        subaccount_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Open a ticket for the caller.

        Args:
            session: Caller session
            subject: Ticket subject
            description: Problem description
            priority: Defaults to "medium"
            category: Defaults to "general"
            subaccount_id: Subaccount the ticket is about, if any

        Returns:
            {"success": True, "ticketId": ...}
        """
        if not subject or not description:
            raise BadRequestError("Subject and description are required")

        agency_id = None
        if subaccount_id:
            subaccount = await load_accessible_subaccount(
                self.subaccount_repo, session, subaccount_id
            )
            agency_id = subaccount.agency_id

        ticket = await self.ticket_repo.create(
            name=subject,
            description=description,
            priority=priority or DEFAULT_TICKET_PRIORITY,
            category=category or DEFAULT_TICKET_CATEGORY,
            status=DEFAULT_TICKET_STATUS,
            customer_id=session.user_id,
            subaccount_id=subaccount_id,
            agency_id=agency_id,
        )

        # individual-owned subaccounts have no agency feed
        if subaccount_id and agency_id:
            await self.notification_service.save_activity_log(
                user_id=session.user_id,
                description=f"New support ticket: {subject}",
                subaccount_id=subaccount_id,
            )

        logger.info(f"Support ticket {ticket.id} opened by {session.user_id}")
        return {"success": True, "ticketId": str(ticket.id)}

    async def list_my_tickets(
        self, session: TokenSession, status: Optional[str] = "all"
    ) -> List[Dict[str, Any]]:
        tickets = await self.ticket_repo.list_for_customer(session.user_id, status)
        return [ticket_to_dict(t) for t in tickets]
