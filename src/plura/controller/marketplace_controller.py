"""Marketplace catalogue, search, purchases and creator payouts.

Listings and search are public; purchases, purchase history and payouts
need a session, and processing payouts needs an admin.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, ConfigDict, Field

from plura.exception import PluraException
from plura.middleware.authorization_middleware import (
    AdminContext,
    TenantContext,
    require_admin,
    require_authenticated,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/marketplace", tags=["marketplace"])


class PurchaseRequest(BaseModel):
    """Purchase body; the product id key depends on the route."""

    model_config = ConfigDict(populate_by_name=True)

    theme_id: Optional[str] = Field(None, alias="themeId")
    plugin_id: Optional[str] = Field(None, alias="pluginId")
    price: Any = None
    agency_id: Optional[str] = Field(None, alias="agencyId")
    subaccount_id: Optional[str] = Field(None, alias="subAccountId")
    individual_id: Optional[str] = Field(None, alias="individualId")


class ProcessPayoutsRequest(BaseModel):
    period: Optional[str] = None


def _internal_error(detail: str, e: Exception) -> HTTPException:
    logger.error(f"{detail}: {e}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )


# -----------------------------------------------------------------------------
# Catalogue
# -----------------------------------------------------------------------------


@router.get("/themes")
async def list_themes(
    request: Request,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
):
    """Active themes; category 'all' disables the category filter."""
    marketplace_service = request.app.state.marketplace_service
    try:
        return await marketplace_service.list_themes(category, featured)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch themes", e)


@router.get("/plugins")
async def list_plugins(
    request: Request,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
):
    marketplace_service = request.app.state.marketplace_service
    try:
        return await marketplace_service.list_plugins(category, featured)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch plugins", e)


@router.get("/themes/{theme_id}")
async def get_theme(theme_id: str, request: Request):
    marketplace_service = request.app.state.marketplace_service
    try:
        return await marketplace_service.get_theme(theme_id)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch theme", e)


@router.get("/search")
async def search(
    request: Request,
    q: Optional[str] = None,
    category: Optional[str] = None,
    product_type: Optional[str] = Query(None, alias="type"),
    price: Optional[str] = None,
    sort: Optional[str] = None,
):
    """Search themes and plugins by text, category, kind and price range.

    Raises:
        BadRequestError: 400 for an unknown type or sort, or a bad price range
    """
    marketplace_service = request.app.state.marketplace_service
    try:
        return await marketplace_service.search(
            q=q, category=category, product_type=product_type, price=price, sort=sort
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to search marketplace", e)


# -----------------------------------------------------------------------------
# Purchases
# -----------------------------------------------------------------------------


@router.post("/purchase/theme")
async def purchase_theme(
    body: PurchaseRequest,
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Record a theme purchase with the buyer's commission rate.

    Raises:
        BadRequestError: 400 if themeId or price is missing or an id is malformed
        TenantIsolationError: 403 if an owner id belongs to another tenant
        ResourceNotFoundError: 404 if the theme does not exist
        ResourceAlreadyExistsError: 409 if the owner already holds the theme
    """
    marketplace_service = request.app.state.marketplace_service
    try:
        purchase = await marketplace_service.purchase_theme(
            context.session,
            body.theme_id,
            body.price,
            agency_id=body.agency_id,
            subaccount_id=body.subaccount_id,
            individual_id=body.individual_id,
        )
        return purchase
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to purchase theme", e)


@router.post("/purchase/plugin")
async def purchase_plugin(
    body: PurchaseRequest,
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    marketplace_service = request.app.state.marketplace_service
    try:
        purchase = await marketplace_service.purchase_plugin(
            context.session,
            body.plugin_id,
            body.price,
            agency_id=body.agency_id,
            subaccount_id=body.subaccount_id,
            individual_id=body.individual_id,
        )
        return purchase
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to purchase plugin", e)


@router.get("/purchased-themes")
async def list_purchased_themes(
    request: Request,
    agency_id: Optional[str] = Query(None, alias="agencyId"),
    subaccount_id: Optional[str] = Query(None, alias="subAccountId"),
    context: TenantContext = Depends(require_authenticated),
):
    marketplace_service = request.app.state.marketplace_service
    try:
        purchases = await marketplace_service.list_purchased_themes(
            context.user_id, agency_id, subaccount_id
        )
        return purchases
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch purchased themes", e)


@router.get("/purchased-plugins")
async def list_purchased_plugins(
    request: Request,
    agency_id: Optional[str] = Query(None, alias="agencyId"),
    subaccount_id: Optional[str] = Query(None, alias="subAccountId"),
    context: TenantContext = Depends(require_authenticated),
):
    marketplace_service = request.app.state.marketplace_service
    try:
        purchases = await marketplace_service.list_purchased_plugins(
            context.user_id, agency_id, subaccount_id
        )
        return purchases
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to fetch purchased plugins", e)


# -----------------------------------------------------------------------------
# Creator payouts
# -----------------------------------------------------------------------------


@router.get("/payouts/calculate")
async def calculate_payout(
    request: Request,
    creator_id: Optional[str] = Query(None, alias="creatorId"),
    period: Optional[str] = None,
    context: TenantContext = Depends(require_authenticated),
):
    """Monthly earnings summary for one creator.

    Raises:
        BadRequestError: 400 if creatorId or period (YYYY-MM) is missing
        AuthorizationError: 403 unless the caller is the creator or an admin
    """
    marketplace_service = request.app.state.marketplace_service
    try:
        return await marketplace_service.calculate_payout(
            context.session, creator_id, period
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to calculate payout", e)


@router.post("/payouts/process")
async def process_payouts(
    body: ProcessPayoutsRequest,
    request: Request,
    admin: AdminContext = Depends(require_admin),
):
    marketplace_service = request.app.state.marketplace_service
    try:
        return await marketplace_service.process_payouts(
            admin.audit_actor(), body.period
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        raise _internal_error("Failed to process payouts", e)
