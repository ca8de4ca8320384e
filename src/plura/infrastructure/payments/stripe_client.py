"""Thin async wrapper around the Stripe SDK.

The SDK is synchronous, so calls run in a worker thread to keep the event
loop free. Only the pieces the API needs are exposed: hosted checkout
sessions and webhook verification.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from plura.exception.api_exceptions import PaymentProviderError, WebhookSignatureError

logger = logging.getLogger(__name__)


class StripeClient:
    """Configured Stripe SDK access.

    Attributes:
        webhook_secret: Signing secret used to verify webhook payloads
    """

    def __init__(
        self,
        secret_key: str,
        webhook_secret: Optional[str] = None,
        api_version: str = "2023-10-16",
        app_name: str = "Plura App",
        app_version: str = "0.1.0",
    ):
        stripe.api_key = secret_key
        stripe.api_version = api_version
        stripe.set_app_info(app_name, version=app_version)
        self.webhook_secret = webhook_secret
        self.configured = bool(secret_key)

    async def create_checkout_session(
        self,
        *,
        mode: str,
        line_items: List[Dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
        allow_promotion_codes: bool = False,
        billing_address_collection: Optional[str] = None,
    ) -> Any:
        """Create a hosted checkout session.

        Returns:
            Stripe Session object; its ``url`` is where the buyer is sent

        Raises:
            PaymentProviderError: If Stripe is not configured or rejects the call
        """
        if not self.configured:
            raise PaymentProviderError("Stripe is not configured")

        params: Dict[str, Any] = {
            "mode": mode,
            "payment_method_types": ["card"],
            "line_items": line_items,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        if allow_promotion_codes:
            params["allow_promotion_codes"] = True
        if billing_address_collection:
            params["billing_address_collection"] = billing_address_collection

        try:
            return await asyncio.to_thread(stripe.checkout.Session.create, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session creation failed: {e}")
            raise PaymentProviderError("Failed to create checkout session") from e

    def construct_event(
        self, payload: bytes, signature: Optional[str]
    ) -> Dict[str, Any]:
        """Verify a webhook payload and return it as plain JSON.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            Event payload as a dict

        Raises:
            WebhookSignatureError: If the secret is missing or the signature
                does not match
        """
        if not self.webhook_secret or not signature:
            raise WebhookSignatureError("Missing webhook signature or secret")
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Stripe webhook verification failed: {e}")
            raise WebhookSignatureError() from e
        return json.loads(payload)
