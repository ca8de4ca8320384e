"""External database connection records owned by a subaccount or individual."""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from plura.constants import DATABASE_TEST_TIMEOUT_SECONDS, SUPPORTED_DATABASE_PROVIDERS
from plura.exception import BadRequestError, ResourceNotFoundError
from plura.infrastructure.persistence.postgresql.external import (
    build_url,
    list_public_tables,
)
from plura.infrastructure.persistence.postgresql.models import DatabaseConnection
from plura.repository.database_connection_repository import (
    DatabaseConnectionRepository,
)
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository
from plura.service.access import (
    ensure_individual_access,
    load_accessible_subaccount,
    owns_subaccount,
    parse_uuid,
)

logger = logging.getLogger(__name__)

# request key -> column
_FIELD_MAP = {
    "name": "name",
    "provider": "provider",
    "connectionString": "connection_string",
    "host": "host",
    "port": "port",
    "database": "database",
    "username": "username",
    "password": "password",
    "isDefault": "is_default",
    "isActive": "is_active",
}


def _connection_to_dict(connection: DatabaseConnection) -> Dict[str, Any]:
    return {
        "id": str(connection.id),
        "name": connection.name,
        "provider": connection.provider,
        "connectionString": connection.connection_string,
        "host": connection.host,
        "port": connection.port,
        "database": connection.database,
        "username": connection.username,
        "hasPassword": bool(connection.password),
        "isDefault": connection.is_default,
        "isActive": connection.is_active,
        "tables": connection.tables or [],
        "subAccountId": str(connection.subaccount_id) if connection.subaccount_id else None,
        "individualId": str(connection.individual_id) if connection.individual_id else None,
        "createdAt": connection.created_at.isoformat() if connection.created_at else None,
        "updatedAt": connection.updated_at.isoformat() if connection.updated_at else None,
    }


def _parse_port(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequestError("Port must be a number", field="port")


def _extract_values(body: Dict[str, Any]) -> Dict[str, Any]:
    values = {column: body[key] for key, column in _FIELD_MAP.items() if key in body}
    if "port" in values:
        values["port"] = _parse_port(values["port"])
    return values


class DatabaseConnectionService:
    """CRUD for database connection records with owner checks.

    Attributes:
        connection_repo: Database connection repository
        subaccount_repo: Subaccount repository, for tenant checks
    """

    def __init__(
        self,
        connection_repo: DatabaseConnectionRepository,
        subaccount_repo: SubAccountRepository,
    ):
        self.connection_repo = connection_repo
        self.subaccount_repo = subaccount_repo

    async def _check_owner(
        self,
        session: TokenSession,
        subaccount_id: Optional[str],
        individual_id: Optional[str],
    ) -> None:
        if not subaccount_id and not individual_id:
            raise BadRequestError("SubAccount ID or Individual ID is required")
        if subaccount_id:
            await load_accessible_subaccount(
                self.subaccount_repo, session, subaccount_id, field="subAccountId"
            )
        else:
            ensure_individual_access(session, individual_id)

    async def _load_owned(
        self,
        session: TokenSession,
        connection_id: Optional[str],
        field: str = "id",
    ) -> DatabaseConnection:
        parsed = parse_uuid(connection_id, field)
        connection = await self.connection_repo.get_by_id(parsed)
        if connection is None:
            raise ResourceNotFoundError("Database", str(parsed))
        if connection.subaccount_id:
            subaccount = await self.subaccount_repo.get_by_id(connection.subaccount_id)
            allowed = subaccount is not None and owns_subaccount(session, subaccount)
        else:
            allowed = session.owns_individual(str(connection.individual_id))
        if not allowed:
            raise ResourceNotFoundError("Database", str(parsed))
        return connection

    async def list_connections(
        self,
        session: TokenSession,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        await self._check_owner(session, subaccount_id, individual_id)
        connections = await self.connection_repo.list_for_owner(subaccount_id, individual_id)
        return [_connection_to_dict(c) for c in connections]

    async def create_connection(
        self, session: TokenSession, body: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Register a connection; it starts inactive until tested.

        Raises:
            BadRequestError: Missing name, provider or owner
        """
        if not body.get("name") or not body.get("provider"):
            raise BadRequestError("Name and provider are required")
        subaccount_id = body.get("subAccountId")
        individual_id = body.get("individualId")
        await self._check_owner(session, subaccount_id, individual_id)

        values = _extract_values(body)
        values["is_default"] = bool(values.get("is_default", False))
        connection = await self.connection_repo.create(
            values,
            subaccount_id=subaccount_id if subaccount_id else None,
            individual_id=None if subaccount_id else individual_id,
        )
        logger.info(f"Database connection created: {connection.id}")
        return _connection_to_dict(connection)

    async def update_connection(
        self, session: TokenSession, body: Dict[str, Any]
    ) -> Dict[str, Any]:
        connection = await self._load_owned(session, body.get("id"))
        updated = await self.connection_repo.update(connection.id, _extract_values(body))
        if updated is None:
            raise ResourceNotFoundError("Database", str(connection.id))
        return _connection_to_dict(updated)

    async def delete_connection(
        self, session: TokenSession, connection_id: Optional[str]
    ) -> Dict[str, bool]:
        connection = await self._load_owned(session, connection_id)
        await self.connection_repo.delete(connection.id)
        logger.info(f"Database connection deleted: {connection.id}")
        return {"success": True}

    async def test_connection(
        self, session: TokenSession, database_id: Optional[str]
    ) -> Dict[str, Any]:
        """Connect to a registered database and record the outcome.

        A reachable database is marked active and its public tables are
        stored; an unreachable one is marked inactive. Either way the
        outcome is returned rather than raised.

        Raises:
            BadRequestError: Missing id, or a provider that cannot be tested
            ResourceNotFoundError: Unknown or foreign connection
        """
        connection = await self._load_owned(session, database_id, field="databaseId")
        if connection.provider not in SUPPORTED_DATABASE_PROVIDERS:
            raise BadRequestError("Unsupported database provider", field="provider")

        try:
            url = build_url(
                connection.connection_string,
                host=connection.host,
                port=connection.port,
                database=connection.database,
                username=connection.username,
                password=connection.password,
            )
            tables = await list_public_tables(url, DATABASE_TEST_TIMEOUT_SECONDS)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"Database connection test failed: {connection.id}: {e}")
            await self.connection_repo.update(connection.id, {"is_active": False})
            return {
                "success": False,
                "message": f"Connection failed: {str(e) or type(e).__name__}",
                "tables": [],
            }

        await self.connection_repo.update(
            connection.id, {"is_active": True, "tables": tables}
        )
        logger.info(f"Database connection tested: {connection.id} tables={len(tables)}")
        return {"success": True, "message": "Connection successful", "tables": tables}
