"""Payments provider integration."""

from .stripe_client import StripeClient

__all__ = ["StripeClient"]
