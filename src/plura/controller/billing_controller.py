"""Stripe checkout and webhook endpoints."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from plura.exception import BadRequestError, PaymentProviderError, PluraException
from plura.middleware.authorization_middleware import (
    TenantContext,
    require_authenticated,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["billing"])


@router.post("/create-checkout-session")
async def create_checkout_session(
    body: Dict[str, Any],
    request: Request,
    context: TenantContext = Depends(require_authenticated),
):
    """Start a hosted checkout for a plan upgrade (priceId/planId) or a theme (themeId).

    Returns:
        {"url": <hosted checkout url>}
    """
    billing_service = request.app.state.billing_service
    try:
        return await billing_service.create_checkout_session(context.session, body)
    except BadRequestError:
        raise
    except PaymentProviderError as e:
        logger.error(f"Stripe checkout failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session",
        )
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Checkout session error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create checkout session",
        )


@router.post("/webhook")
async def stripe_webhook(request: Request):
    """Apply a signed Stripe event.

    The raw body is needed for signature verification, so it is read
    directly rather than parsed into a model.
    """
    billing_service = request.app.state.billing_service
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        return await billing_service.handle_webhook(payload, signature)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Stripe webhook failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook handler failed",
        )
