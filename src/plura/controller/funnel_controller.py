"""Funnel pages, settings, public preview and published subdomain pages."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from plura.exception import PluraException
from plura.middleware.authorization_middleware import (
    TenantContext,
    require_authenticated,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["funnels"])

# Registered last so the catch-all paths never shadow API routes.
site_router = APIRouter(tags=["sites"])


@router.get("/funnels/{funnel_id}/pages")
async def list_funnel_pages(
    funnel_id: str,
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    funnel_service = request.app.state.funnel_service
    try:
        return await funnel_service.list_pages(context.session, funnel_id)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to list pages of funnel {funnel_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch funnel pages",
        )


@router.get("/funnel-settings/{funnel_id}")
async def get_funnel_settings(
    funnel_id: str,
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Stored settings merged over the defaults."""
    funnel_service = request.app.state.funnel_service
    try:
        return await funnel_service.get_settings(context.session, funnel_id)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to load settings of funnel {funnel_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch funnel settings",
        )


@router.post("/funnel-settings/{funnel_id}")
async def save_funnel_settings(
    funnel_id: str,
    body: Dict[str, Any],
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    funnel_service = request.app.state.funnel_service
    try:
        return await funnel_service.save_settings(context.session, funnel_id, body)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to save settings of funnel {funnel_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save funnel settings",
        )


@router.get("/funnel/preview/{funnel_id}")
async def preview_funnel(funnel_id: str, request: Request):
    """Public preview of a published funnel."""
    funnel_service = request.app.state.funnel_service
    try:
        return await funnel_service.get_preview(funnel_id)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to preview funnel {funnel_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load funnel preview",
        )


async def _render(request: Request, domain: str, page_path: str = ""):
    funnel_service = request.app.state.funnel_service
    try:
        return await funnel_service.render_site_page(domain, page_path)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to render {domain}/{page_path}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load page",
        )


@site_router.get("/{domain}")
async def render_site_root(domain: str, request: Request):
    """First page of the funnel published under this subdomain."""
    return await _render(request, domain)


@site_router.get("/{domain}/{page_path:path}")
async def render_site_page(domain: str, page_path: str, request: Request):
    return await _render(request, domain, page_path)
