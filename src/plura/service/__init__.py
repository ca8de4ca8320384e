"""Service layer for Plura business logic.

Exports the services wired into app.state by main.py.
"""

from plura.service.admin_auth_service import AdminAuthService
from plura.service.admin_service import AdminService
from plura.service.audit_service import AuditService
from plura.service.auth_service import AuthService
from plura.service.automation_service import AutomationService
from plura.service.billing_service import BillingService
from plura.service.database_connection_service import DatabaseConnectionService
from plura.service.form_service import FormService
from plura.service.funnel_service import FunnelService
from plura.service.marketplace_service import MarketplaceService
from plura.service.notification_service import NotificationService
from plura.service.premium_service import PremiumService
from plura.service.support_service import SupportService
from plura.service.upload_service import UploadService

__all__ = [
    "AdminAuthService",
    "AdminService",
    "AuditService",
    "AuthService",
    "AutomationService",
    "BillingService",
    "DatabaseConnectionService",
    "FormService",
    "FunnelService",
    "MarketplaceService",
    "NotificationService",
    "PremiumService",
    "SupportService",
    "UploadService",
]
