"""API controllers.

This package provides the endpoint controllers for auth, subscriptions,
billing, marketplace, automations, forms, funnels, database connections,
support, uploads, the admin console and health checks.
"""

from plura.controller import (
    admin_auth_controller,
    admin_controller,
    auth_controller,
    automation_controller,
    billing_controller,
    database_controller,
    form_controller,
    funnel_controller,
    health_controller,
    marketplace_controller,
    site_controller,
    subscription_controller,
    support_controller,
    upload_controller,
)

__all__ = [
    "admin_auth_controller",
    "admin_controller",
    "auth_controller",
    "automation_controller",
    "billing_controller",
    "database_controller",
    "form_controller",
    "funnel_controller",
    "health_controller",
    "marketplace_controller",
    "site_controller",
    "subscription_controller",
    "support_controller",
    "upload_controller",
]
