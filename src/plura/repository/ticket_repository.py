from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import Ticket, utc_now

_UPDATABLE_FIELDS = ("status", "priority", "assigned_user_id", "resolution")


class TicketRepository:
    """Repository for support tickets.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self,
        name: str,
        description: Optional[str],
        priority: str,
        category: str,
        status: str,
        customer_id: str | UUID,
        subaccount_id: Optional[str | UUID] = None,
        agency_id: Optional[str | UUID] = None,
    ) -> Ticket:
        async with self.client.session() as session:
            ticket = Ticket(
                name=name,
                description=description,
                priority=priority,
                category=category,
                status=status,
                customer_id=UUID(str(customer_id)),
                subaccount_id=UUID(str(subaccount_id)) if subaccount_id else None,
                agency_id=UUID(str(agency_id)) if agency_id else None,
            )
            session.add(ticket)
            await session.flush()
            return ticket

    async def list_for_customer(
        self, customer_id: str | UUID, status: Optional[str] = None
    ) -> List[Ticket]:
        """List tickets opened by a user, newest first."""
        query = select(Ticket).where(Ticket.customer_id == UUID(str(customer_id)))
        if status and status != "all":
            query = query.where(Ticket.status == status)
        async with self.client.session() as session:
            result = await session.execute(query.order_by(Ticket.created_at.desc()))
            return list(result.scalars().all())

    async def list_filtered(
        self,
        status: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        assigned_to: Optional[str] = None,
    ) -> List[Ticket]:
        query = select(Ticket)
        if status:
            query = query.where(Ticket.status == status)
        if priority:
            query = query.where(Ticket.priority == priority)
        if category:
            query = query.where(Ticket.category == category)
        if assigned_to:
            query = query.where(Ticket.assigned_user_id == UUID(str(assigned_to)))
        async with self.client.session() as session:
            result = await session.execute(query.order_by(Ticket.created_at.desc()))
            return list(result.scalars().all())

    async def get_by_id(self, ticket_id: str | UUID) -> Optional[Ticket]:
        if isinstance(ticket_id, str):
            ticket_id = UUID(ticket_id)
        async with self.client.session() as session:
            result = await session.execute(select(Ticket).where(Ticket.id == ticket_id))
            return result.scalar_one_or_none()

    async def update(
        self, ticket_id: str | UUID, changes: Dict[str, Any]
    ) -> Optional[Ticket]:
        if isinstance(ticket_id, str):
            ticket_id = UUID(ticket_id)
        async with self.client.session() as session:
            result = await session.execute(select(Ticket).where(Ticket.id == ticket_id))
            ticket = result.scalar_one_or_none()
            if ticket:
                for field_name, value in changes.items():
                    if field_name in _UPDATABLE_FIELDS:
                        setattr(ticket, field_name, value)
                ticket.updated_at = utc_now()
                await session.flush()
            return ticket
