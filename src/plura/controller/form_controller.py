"""Automation forms: listing, creation, public submission and submission history."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from plura.constants import (
    DEFAULT_FORMS_PAGE_SIZE,
    DEFAULT_SUBMISSIONS_PAGE_SIZE,
    UNKNOWN_CLIENT_VALUE,
)
from plura.controller.schemas.responses import offset_pagination
from plura.exception import BadRequestError, PluraException
from plura.middleware.authorization_middleware import (
    TenantContext,
    require_authenticated,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["forms"])

VALIDATION_FAILED_CODE = "VALIDATION_FAILED"


def submission_ip(request: Request) -> str:
    """Client address: x-forwarded-for, then x-real-ip, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT_VALUE


@router.get("/automation-forms")
async def list_forms(
    request: Request,
    search: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    subaccount_id: Optional[str] = Query(None, alias="subaccountId"),
    individual_id: Optional[str] = Query(None, alias="individualId"),
    limit: int = Query(DEFAULT_FORMS_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    context: TenantContext = Depends(require_authenticated),
):
    form_service = request.app.state.form_service
    try:
        forms, total = await form_service.list_forms(
            context.session,
            search=search,
            status=status_filter,
            subaccount_id=subaccount_id,
            individual_id=individual_id,
            limit=limit,
            offset=offset,
        )
        return {"forms": forms, "pagination": offset_pagination(total, limit, offset)}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to list automation forms: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch automation forms",
        )


@router.post("/automation-forms", status_code=status.HTTP_201_CREATED)
async def create_form(
    body: Dict[str, Any],
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Create a form with its fields and a fresh public webhook URL."""
    form_service = request.app.state.form_service
    try:
        form = await form_service.create_form(context.session, body)
        return {"form": form}
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to create automation form: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create automation form",
        )


@router.get("/automation-forms/{form_id}/fields")
async def get_form_fields(
    form_id: str,
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Fields of a published form, for rendering it outside the builder."""
    form_service = request.app.state.form_service
    try:
        return await form_service.get_form_fields(form_id)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to fetch form fields: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch form fields",
        )


@router.post("/forms/{webhook_id}/submit", status_code=status.HTTP_201_CREATED)
async def submit_form(webhook_id: str, request: Request):
    """Public form webhook.

    Stores the submission, runs the form's active automations and either
    redirects to the form's success URL or returns the run summary.
    """
    form_service = request.app.state.form_service
    try:
        form_data = await request.json()
    except ValueError:
        raise BadRequestError("Request body must be a JSON object")
    if not isinstance(form_data, dict):
        raise BadRequestError("Request body must be a JSON object")

    try:
        body, success_url = await form_service.submit(
            webhook_id,
            form_data,
            ip_address=submission_ip(request),
            user_agent=request.headers.get("user-agent"),
        )
    except BadRequestError as e:
        if e.code != VALIDATION_FAILED_CODE:
            raise
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Validation failed", "message": e.message},
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Form submission failed for {webhook_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process form submission",
        )

    if success_url:
        return RedirectResponse(success_url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    return body


@router.get("/form-submissions")
async def list_submissions(
    request: Request,
    subaccount_id: Optional[str] = Query(None, alias="subaccountId"),
    individual_id: Optional[str] = Query(None, alias="individualId"),
    form_id: Optional[str] = Query(None, alias="formId"),
    time_range: str = Query("7d", alias="timeRange"),
    limit: int = Query(DEFAULT_SUBMISSIONS_PAGE_SIZE, ge=1, le=200),
    offset: int = Query(0, ge=0),
    context: TenantContext = Depends(require_authenticated),
):
    form_service = request.app.state.form_service
    try:
        submissions, total = await form_service.list_submissions(
            context.session,
            subaccount_id=subaccount_id,
            individual_id=individual_id,
            form_id=form_id,
            time_range=time_range,
            limit=limit,
            offset=offset,
        )
        return {
            "submissions": submissions,
            "pagination": offset_pagination(total, limit, offset),
        }
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Failed to list form submissions: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch form submissions",
        )
