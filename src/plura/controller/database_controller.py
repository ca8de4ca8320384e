"""External database connection records."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from plura.exception import PluraException
from plura.middleware.authorization_middleware import (
    TenantContext,
    require_authenticated,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/database", tags=["database"])


def _internal_error(detail: str, e: Exception) -> HTTPException:
    logger.error(f"{detail}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )


@router.get("")
async def list_connections(
    request: Request,
    subaccount_id: Optional[str] = Query(None, alias="subAccountId"),
    individual_id: Optional[str] = Query(None, alias="individualId"),
    context: TenantContext = Depends(require_authenticated),
):
    """Connections of one subaccount or individual workspace.

    Raises:
        BadRequestError: 400 if neither owner id is given
    """
    service = request.app.state.database_connection_service
    try:
        databases = await service.list_connections(
            context.session, subaccount_id=subaccount_id, individual_id=individual_id
        )
        return {"databases": databases}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch database connections", e)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_connection(
    body: Dict[str, Any],
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    service = request.app.state.database_connection_service
    try:
        database = await service.create_connection(context.session, body)
        return {"database": database}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to create database connection", e)


@router.put("")
async def update_connection(
    body: Dict[str, Any],
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    service = request.app.state.database_connection_service
    try:
        database = await service.update_connection(context.session, body)
        return {"database": database}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to update database connection", e)


@router.delete("")
async def delete_connection(
    request: Request,
    connection_id: Optional[str] = Query(None, alias="id"),
    context: TenantContext = Depends(require_authenticated),
):
    service = request.app.state.database_connection_service
    try:
        return await service.delete_connection(context.session, connection_id)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to delete database connection", e)


@router.post("/test")
async def test_connection(
    body: Dict[str, Any],
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Connect to a registered database and list its tables.

    A failed connection is reported in the body with success false.

    Raises:
        BadRequestError: 400 if databaseId is missing or the provider is unsupported
        ResourceNotFoundError: 404 if the connection is not the caller's
    """
    service = request.app.state.database_connection_service
    try:
        return await service.test_connection(context.session, body.get("databaseId"))
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to test database connection", e)
