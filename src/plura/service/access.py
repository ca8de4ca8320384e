"""Tenant scoping helpers shared by the services.

A caller reaches a subaccount through the agency it belongs to or through
the individual workspace it owns. Every tenant-owned read or write goes
through these helpers before touching the row.
"""

from typing import Optional
from uuid import UUID

from plura.exception import (
    BadRequestError,
    ResourceNotFoundError,
    TenantIsolationError,
)
from plura.infrastructure.persistence.postgresql.models import SubAccount
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository


def parse_uuid(value: Optional[str], field: str) -> UUID:
    """Parse a client-supplied id, rejecting malformed values with 400."""
    if not value:
        raise BadRequestError(f"{field} is required", field=field)
    try:
        return UUID(str(value))
    except ValueError:
        raise BadRequestError(f"{field} is not a valid id", field=field)


def owns_subaccount(session: TokenSession, subaccount: SubAccount) -> bool:
    if session.agency_id and subaccount.agency_id:
        if str(subaccount.agency_id) == session.agency_id:
            return True
    if session.individual_id and subaccount.individual_id:
        if str(subaccount.individual_id) == session.individual_id:
            return True
    return False


async def load_accessible_subaccount(
    subaccount_repo: SubAccountRepository,
    session: TokenSession,
    subaccount_id: Optional[str],
    field: str = "subaccountId",
) -> SubAccount:
    """Fetch a subaccount the caller may act on.

    Raises:
        BadRequestError: Missing or malformed id
        ResourceNotFoundError: No such subaccount
        TenantIsolationError: Subaccount belongs to another tenant
    """
    parsed = parse_uuid(subaccount_id, field)
    subaccount = await subaccount_repo.get_by_id(parsed)
    if subaccount is None:
        raise ResourceNotFoundError("SubAccount", str(parsed))
    if not owns_subaccount(session, subaccount):
        raise TenantIsolationError()
    return subaccount


def ensure_individual_access(session: TokenSession, individual_id: str) -> None:
    if not session.owns_individual(individual_id):
        raise TenantIsolationError()
