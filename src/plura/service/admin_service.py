"""Admin console service.

AdminService composes TenantAdminMixin and PlatformAdminMixin, wiring all
repositories in a single __init__. Every mutating call is written to the
audit log through AuditService.
"""

import logging

from plura.repository.agency_repository import AgencyRepository
from plura.repository.automation_form_repository import AutomationFormRepository
from plura.repository.automation_repository import AutomationRepository
from plura.repository.feature_flag_repository import FeatureFlagRepository
from plura.repository.form_submission_repository import FormSubmissionRepository
from plura.repository.individual_repository import IndividualRepository
from plura.repository.marketplace_repository import MarketplaceRepository
from plura.repository.subaccount_repository import SubAccountRepository
from plura.repository.system_config_repository import SystemConfigRepository
from plura.repository.ticket_repository import TicketRepository
from plura.repository.user_repository import UserRepository
from plura.service.admin_platform_service import PlatformAdminMixin
from plura.service.admin_tenant_service import TenantAdminMixin
from plura.service.audit_service import AuditService

logger = logging.getLogger(__name__)


class AdminService(TenantAdminMixin, PlatformAdminMixin):
    """Service behind the /api/admin routes.

    Attributes:
        agency_repo: Agency repository
        user_repo: User repository
        subaccount_repo: Subaccount repository
        individual_repo: Individual repository
        marketplace_repo: Marketplace repository (dashboard counts)
        form_repo: Automation form repository (dashboard counts)
        submission_repo: Form submission repository (dashboard counts)
        automation_repo: Automation repository (dashboard counts)
        system_config_repo: System config repository
        feature_flag_repo: Feature flag repository
        ticket_repo: Support ticket repository
        audit_service: Audit trail writer
    """

    def __init__(
        self,
        agency_repo: AgencyRepository,
        user_repo: UserRepository,
        subaccount_repo: SubAccountRepository,
        individual_repo: IndividualRepository,
        marketplace_repo: MarketplaceRepository,
        form_repo: AutomationFormRepository,
        submission_repo: FormSubmissionRepository,
        automation_repo: AutomationRepository,
        system_config_repo: SystemConfigRepository,
        feature_flag_repo: FeatureFlagRepository,
        ticket_repo: TicketRepository,
        audit_service: AuditService,
    ):
        self.agency_repo = agency_repo
        self.user_repo = user_repo
        self.subaccount_repo = subaccount_repo
        self.individual_repo = individual_repo
        self.marketplace_repo = marketplace_repo
        self.form_repo = form_repo
        self.submission_repo = submission_repo
        self.automation_repo = automation_repo
        self.system_config_repo = system_config_repo
        self.feature_flag_repo = feature_flag_repo
        self.ticket_repo = ticket_repo
        self.audit_service = audit_service

    def get_agency_repo(self) -> AgencyRepository:
        return self.agency_repo

    def get_user_repo(self) -> UserRepository:
        return self.user_repo

    def get_subaccount_repo(self) -> SubAccountRepository:
        return self.subaccount_repo

    def get_individual_repo(self) -> IndividualRepository:
        return self.individual_repo

    def get_marketplace_repo(self) -> MarketplaceRepository:
        return self.marketplace_repo

    def get_form_repo(self) -> AutomationFormRepository:
        return self.form_repo

    def get_submission_repo(self) -> FormSubmissionRepository:
        return self.submission_repo

    def get_automation_repo(self) -> AutomationRepository:
        return self.automation_repo

    def get_system_config_repo(self) -> SystemConfigRepository:
        return self.system_config_repo

    def get_feature_flag_repo(self) -> FeatureFlagRepository:
        return self.feature_flag_repo

    def get_ticket_repo(self) -> TicketRepository:
        return self.ticket_repo

    def get_audit_service(self) -> AuditService:
        return self.audit_service
