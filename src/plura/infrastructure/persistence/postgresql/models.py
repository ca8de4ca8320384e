"""SQLAlchemy async models for the Plura PostgreSQL database.

Defines every table of the multi-tenant platform:
- Tenancy: agencies, individuals, subaccounts, users and admin users
- Billing: subscriptions and add-ons
- Automations: automations, instances, actions, automation forms and their
  fields, submissions and executions, contacts
- Funnels and funnel pages
- Marketplace themes and plugins with purchase records and creator payouts
- Support tickets, database connection records, notifications
- Admin console: system config, feature flags and audit logs

All timestamps use UTC and all primary keys are UUIDs. Tenant-owned rows
carry agency_id, subaccount_id or individual_id so every query can be
filtered by tenant.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import declarative_base, relationship

from plura.constants import (
    FORM_STATUS_DRAFT,
    PAYOUT_STATUS_PENDING,
    PURCHASE_STATUS_ACTIVE,
)

BaseModel = declarative_base()


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def _created_at() -> Column:
    return Column(DateTime(timezone=True), default=utc_now, nullable=False)


def _updated_at() -> Column:
    return Column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------


class Agency(BaseModel):
    """Top-level tenant that owns subaccounts."""

    __tablename__ = "agencies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    agency_logo = Column(Text, nullable=True)
    company_email = Column(String(255), nullable=False)
    company_phone = Column(String(50), nullable=True)
    white_label = Column(Boolean, default=True, nullable=False)
    address = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    zip_code = Column(String(50), nullable=True)
    state = Column(String(255), nullable=True)
    country = Column(String(255), nullable=True)
    goal = Column(Integer, default=5, nullable=False)
    customer_id = Column(String(255), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    users = relationship("User", back_populates="agency")
    subaccounts = relationship(
        "SubAccount", back_populates="agency", cascade="all, delete-orphan"
    )
    subscription = relationship(
        "Subscription",
        back_populates="agency",
        uselist=False,
        cascade="all, delete-orphan",
    )
    add_ons = relationship(
        "AddOn", back_populates="agency", cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="agency", cascade="all, delete-orphan"
    )


class User(BaseModel):
    """Platform user, either an agency member or an individual creator."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    avatar_url = Column(Text, nullable=True)
    password_hash = Column(String(512), nullable=True)
    role = Column(String(50), nullable=False, default="SUBACCOUNT_USER")
    plan = Column(String(50), nullable=False, default="FREE")
    agency_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=True,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    agency = relationship("Agency", back_populates="users")
    admin_user = relationship(
        "AdminUser", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    individual = relationship(
        "Individual", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (Index("idx_users_agency_id", "agency_id"),)


class AdminUser(BaseModel):
    """Admin console membership for a user."""

    __tablename__ = "admin_users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    permissions = Column(JSONB, nullable=False, default=list)
    is_super_admin = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    user = relationship("User", back_populates="admin_user")


class Individual(BaseModel):
    """Solo creator workspace that owns subaccounts without an agency."""

    __tablename__ = "individuals"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    plan = Column(String(50), nullable=False, default="FREE")
    customer_id = Column(String(255), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    user = relationship("User", back_populates="individual")
    subaccounts = relationship(
        "SubAccount", back_populates="individual", cascade="all, delete-orphan"
    )
    subscription = relationship(
        "Subscription",
        back_populates="individual",
        uselist=False,
        cascade="all, delete-orphan",
    )


class SubAccount(BaseModel):
    """Tenant-scoped workspace owned by an agency or an individual."""

    __tablename__ = "subaccounts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    agency_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=True,
    )
    individual_id = Column(
        UUID(as_uuid=True),
        ForeignKey("individuals.id", ondelete="CASCADE"),
        nullable=True,
    )
    name = Column(String(255), nullable=False)
    subaccount_logo = Column(Text, nullable=True)
    company_email = Column(String(255), nullable=False)
    company_phone = Column(String(50), nullable=True)
    address = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    zip_code = Column(String(50), nullable=True)
    state = Column(String(255), nullable=True)
    country = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    agency = relationship("Agency", back_populates="subaccounts")
    individual = relationship("Individual", back_populates="subaccounts")
    automations = relationship(
        "Automation", back_populates="subaccount", cascade="all, delete-orphan"
    )
    funnels = relationship(
        "Funnel", back_populates="subaccount", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_subaccounts_agency_id", "agency_id"),
        Index("idx_subaccounts_individual_id", "individual_id"),
    )


# ---------------------------------------------------------------------------
# Billing
# ---------------------------------------------------------------------------


class Subscription(BaseModel):
    """Stripe subscription mirrored for an agency or individual."""

    __tablename__ = "subscriptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    agency_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    individual_id = Column(
        UUID(as_uuid=True),
        ForeignKey("individuals.id", ondelete="CASCADE"),
        nullable=True,
        unique=True,
    )
    plan = Column(String(50), nullable=True)
    price = Column(String(50), nullable=True)
    price_id = Column(String(255), nullable=True)
    customer_id = Column(String(255), nullable=False)
    subscription_id = Column(String(255), nullable=False, unique=True)
    status = Column(String(50), nullable=False, default="active")
    active = Column(Boolean, default=False, nullable=False)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    agency = relationship("Agency", back_populates="subscription")
    individual = relationship("Individual", back_populates="subscription")

    __table_args__ = (Index("idx_subscriptions_customer_id", "customer_id"),)


class AddOn(BaseModel):
    """Paid add-on attached to an agency."""

    __tablename__ = "add_ons"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    agency_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=True,
    )
    name = Column(String(255), nullable=False)
    price_id = Column(String(255), nullable=False, unique=True)
    active = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    agency = relationship("Agency", back_populates="add_ons")


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


class Notification(BaseModel):
    """Activity feed entry for an agency and optionally a subaccount."""

    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    notification = Column(Text, nullable=False)
    agency_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=False,
    )
    subaccount_id = Column(
        UUID(as_uuid=True),
        ForeignKey("subaccounts.id", ondelete="CASCADE"),
        nullable=True,
    )
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at = _created_at()
    updated_at = _updated_at()

    agency = relationship("Agency", back_populates="notifications")


class AuditLog(BaseModel):
    """Record of an action performed through the admin console."""

    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    admin_user_id = Column(String(255), nullable=False)
    action = Column(String(255), nullable=False)
    entity = Column(String(100), nullable=False)
    entity_id = Column(String(255), nullable=True)
    old_values = Column(JSONB, nullable=True)
    new_values = Column(JSONB, nullable=True)
    ip_address = Column(String(100), nullable=True)
    user_agent = Column(Text, nullable=True)
    created_at = _created_at()

    __table_args__ = (
        Index("idx_audit_logs_entity", "entity"),
        Index("idx_audit_logs_admin_user_id", "admin_user_id"),
        Index("idx_audit_logs_created_at", "created_at"),
    )


# ---------------------------------------------------------------------------
# Admin console
# ---------------------------------------------------------------------------


class SystemConfig(BaseModel):
    """Platform-wide configuration entry editable by super admins."""

    __tablename__ = "system_configs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    key = Column(String(255), nullable=False, unique=True)
    value = Column(Text, nullable=False)
    type = Column(String(50), nullable=False, default="string")
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    last_modified_by = Column(String(255), nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()


class FeatureFlag(BaseModel):
    """Toggle for a platform feature with an optional rollout strategy."""

    __tablename__ = "feature_flags"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    key = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_enabled = Column(Boolean, default=False, nullable=False)
    rollout_type = Column(String(50), nullable=False, default="all")
    rollout_data = Column(JSONB, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()


# ---------------------------------------------------------------------------
# Automations
# ---------------------------------------------------------------------------


class Automation(BaseModel):
    """Workflow owned by a subaccount."""

    __tablename__ = "automations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    subaccount_id = Column(
        UUID(as_uuid=True),
        ForeignKey("subaccounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    trigger_type = Column(String(100), nullable=True)
    published = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    subaccount = relationship("SubAccount", back_populates="automations")
    instances = relationship(
        "AutomationInstance", back_populates="automation", cascade="all, delete-orphan"
    )
    actions = relationship(
        "AutomationAction",
        back_populates="automation",
        cascade="all, delete-orphan",
        order_by="AutomationAction.order",
    )

    __table_args__ = (Index("idx_automations_subaccount_id", "subaccount_id"),)


class AutomationInstance(BaseModel):
    """Running state of an automation."""

    __tablename__ = "automation_instances"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    automation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    active = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()
    updated_at = _updated_at()

    automation = relationship("Automation", back_populates="instances")


class AutomationAction(BaseModel):
    """Single ordered step of an automation."""

    __tablename__ = "automation_actions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    automation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    order = Column(Integer, nullable=False, default=0)
    config = Column(JSONB, nullable=True, default=dict)
    created_at = _created_at()
    updated_at = _updated_at()

    automation = relationship("Automation", back_populates="actions")


class AutomationForm(BaseModel):
    """Public form whose submissions trigger automations."""

    __tablename__ = "automation_forms"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default=FORM_STATUS_DRAFT)
    email_subject = Column(String(255), nullable=True)
    email_body = Column(Text, nullable=True)
    success_url = Column(Text, nullable=True)
    error_url = Column(Text, nullable=True)
    webhook_url = Column(Text, nullable=False, unique=True)
    config = Column(JSONB, nullable=True, default=dict)
    created_by = Column(String(255), nullable=False)
    subaccount_id = Column(
        UUID(as_uuid=True),
        ForeignKey("subaccounts.id", ondelete="CASCADE"),
        nullable=True,
    )
    individual_id = Column(
        UUID(as_uuid=True),
        ForeignKey("individuals.id", ondelete="CASCADE"),
        nullable=True,
    )
    created_at = _created_at()
    updated_at = _updated_at()

    fields = relationship(
        "FormField",
        back_populates="form",
        cascade="all, delete-orphan",
        order_by="FormField.order",
    )
    automations = relationship(
        "FormAutomation", back_populates="form", cascade="all, delete-orphan"
    )
    submissions = relationship(
        "FormSubmission", back_populates="form", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_automation_forms_subaccount_id", "subaccount_id"),
        Index("idx_automation_forms_individual_id", "individual_id"),
    )


class FormField(BaseModel):
    """Input declared on an automation form."""

    __tablename__ = "form_fields"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    form_id = Column(
        UUID(as_uuid=True),
        ForeignKey("automation_forms.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(255), nullable=False)
    label = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, default="text")
    required = Column(Boolean, default=False, nullable=False)
    placeholder = Column(String(255), nullable=True)
    default_value = Column(Text, nullable=True)
    options = Column(JSONB, nullable=True)
    validation = Column(JSONB, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    created_at = _created_at()

    form = relationship("AutomationForm", back_populates="fields")


class FormAutomation(BaseModel):
    """Link between a form and an automation it triggers."""

    __tablename__ = "form_automations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    form_id = Column(
        UUID(as_uuid=True),
        ForeignKey("automation_forms.id", ondelete="CASCADE"),
        nullable=False,
    )
    automation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = _created_at()

    form = relationship("AutomationForm", back_populates="automations")
    automation = relationship("Automation")

    __table_args__ = (
        UniqueConstraint("form_id", "automation_id", name="uq_form_automation"),
    )


class FormSubmission(BaseModel):
    """Data posted to a published form."""

    __tablename__ = "form_submissions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    form_id = Column(
        UUID(as_uuid=True),
        ForeignKey("automation_forms.id", ondelete="CASCADE"),
        nullable=False,
    )
    data = Column(JSONB, nullable=False, default=dict)
    ip_address = Column(String(100), nullable=True)
    user_agent = Column(Text, nullable=True)
    source = Column(String(50), nullable=True)
    processed = Column(Boolean, default=False, nullable=False)
    created_at = _created_at()

    form = relationship("AutomationForm", back_populates="submissions")
    executions = relationship(
        "FormExecution", back_populates="submission", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_form_submissions_form_id", "form_id"),
        Index("idx_form_submissions_created_at", "created_at"),
    )


class FormExecution(BaseModel):
    """Outcome of one automation action run for a submission."""

    __tablename__ = "form_executions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    submission_id = Column(
        UUID(as_uuid=True),
        ForeignKey("form_submissions.id", ondelete="CASCADE"),
        nullable=False,
    )
    automation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("automations.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = Column(String(50), nullable=False)
    result = Column(JSONB, nullable=True)
    error_message = Column(Text, nullable=True)
    executed_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    submission = relationship("FormSubmission", back_populates="executions")

    __table_args__ = (Index("idx_form_executions_automation_id", "automation_id"),)


class Contact(BaseModel):
    """Lead captured by a form automation."""

    __tablename__ = "contacts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    subaccount_id = Column(
        UUID(as_uuid=True),
        ForeignKey("subaccounts.id", ondelete="CASCADE"),
        nullable=True,
    )
    individual_id = Column(
        UUID(as_uuid=True),
        ForeignKey("individuals.id", ondelete="CASCADE"),
        nullable=True,
    )
    created_at = _created_at()
    updated_at = _updated_at()


# ---------------------------------------------------------------------------
# Funnels
# ---------------------------------------------------------------------------


class Funnel(BaseModel):
    """Sequence of marketing pages built by a subaccount."""

    __tablename__ = "funnels"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    published = Column(Boolean, default=False, nullable=False)
    subdomain_name = Column(String(255), nullable=True, unique=True)
    favicon = Column(Text, nullable=True)
    subaccount_id = Column(
        UUID(as_uuid=True),
        ForeignKey("subaccounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    live_products = Column(Text, nullable=True, default="[]")
    settings = Column(JSONB, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    subaccount = relationship("SubAccount", back_populates="funnels")
    pages = relationship(
        "FunnelPage",
        back_populates="funnel",
        cascade="all, delete-orphan",
        order_by="FunnelPage.order",
    )


class FunnelPage(BaseModel):
    """Single page of a funnel; content holds the serialized editor tree."""

    __tablename__ = "funnel_pages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    funnel_id = Column(
        UUID(as_uuid=True),
        ForeignKey("funnels.id", ondelete="CASCADE"),
        nullable=False,
    )
    name = Column(String(255), nullable=False)
    path_name = Column(String(255), nullable=False, default="")
    order = Column(Integer, nullable=False, default=0)
    content = Column(Text, nullable=True)
    visits = Column(Integer, nullable=False, default=0)
    preview_image = Column(Text, nullable=True)
    created_at = _created_at()
    updated_at = _updated_at()

    funnel = relationship("Funnel", back_populates="pages")

    __table_args__ = (Index("idx_funnel_pages_funnel_id", "funnel_id"),)


# ---------------------------------------------------------------------------
# Marketplace
# ---------------------------------------------------------------------------


class MarketplaceTheme(BaseModel):
    """Theme listed in the marketplace."""

    __tablename__ = "marketplace_themes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    category = Column(String(100), nullable=False)
    image = Column(Text, nullable=True)
    rating = Column(Float, nullable=False, default=0.0)
    downloads = Column(Integer, nullable=False, default=0)
    featured = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    author_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = _created_at()
    updated_at = _updated_at()


class MarketplacePlugin(BaseModel):
    """Plugin listed in the marketplace."""

    __tablename__ = "marketplace_plugins"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    category = Column(String(100), nullable=False)
    image = Column(Text, nullable=True)
    rating = Column(Float, nullable=False, default=0.0)
    downloads = Column(Integer, nullable=False, default=0)
    featured = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    author_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = _created_at()
    updated_at = _updated_at()


class PurchasedTheme(BaseModel):
    """Theme bought by a user, with the platform commission split."""

    __tablename__ = "purchased_themes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    theme_id = Column(
        UUID(as_uuid=True),
        ForeignKey("marketplace_themes.id", ondelete="CASCADE"),
        nullable=False,
    )
    price = Column(Float, nullable=False)
    commission_rate = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=False)
    creator_earnings = Column(Float, nullable=False)
    agency_id = Column(UUID(as_uuid=True), nullable=True)
    subaccount_id = Column(UUID(as_uuid=True), nullable=True)
    individual_id = Column(UUID(as_uuid=True), nullable=True)
    status = Column(String(50), nullable=False, default=PURCHASE_STATUS_ACTIVE)
    purchase_date = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    theme = relationship("MarketplaceTheme", lazy="joined")

    __table_args__ = (Index("idx_purchased_themes_user_id", "user_id"),)


class PurchasedPlugin(BaseModel):
    """Plugin bought by a user, with the platform commission split."""

    __tablename__ = "purchased_plugins"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    plugin_id = Column(
        UUID(as_uuid=True),
        ForeignKey("marketplace_plugins.id", ondelete="CASCADE"),
        nullable=False,
    )
    price = Column(Float, nullable=False)
    commission_rate = Column(Float, nullable=False)
    platform_fee = Column(Float, nullable=False)
    creator_earnings = Column(Float, nullable=False)
    agency_id = Column(UUID(as_uuid=True), nullable=True)
    subaccount_id = Column(UUID(as_uuid=True), nullable=True)
    individual_id = Column(UUID(as_uuid=True), nullable=True)
    status = Column(String(50), nullable=False, default=PURCHASE_STATUS_ACTIVE)
    purchase_date = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    plugin = relationship("MarketplacePlugin", lazy="joined")

    __table_args__ = (Index("idx_purchased_plugins_user_id", "user_id"),)


class CreatorPayout(BaseModel):
    """Monthly payout owed to a marketplace creator.

    period is a calendar month in YYYY-MM form; one row per creator and month.
    """

    __tablename__ = "creator_payouts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    creator_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    period = Column(String(7), nullable=False)
    total_earnings = Column(Float, nullable=False)
    platform_fees = Column(Float, nullable=False)
    payout_amount = Column(Float, nullable=False)
    status = Column(String(50), nullable=False, default=PAYOUT_STATUS_PENDING)
    created_at = _created_at()
    updated_at = _updated_at()

    __table_args__ = (
        UniqueConstraint("creator_id", "period", name="uq_creator_payouts_period"),
    )


# ---------------------------------------------------------------------------
# Tenant tooling
# ---------------------------------------------------------------------------


class DatabaseConnection(BaseModel):
    """External database a subaccount or individual has registered."""

    __tablename__ = "database_connections"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    provider = Column(String(50), nullable=False)
    connection_string = Column(Text, nullable=True)
    host = Column(String(255), nullable=True)
    port = Column(Integer, nullable=True)
    database = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    password = Column(Text, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False)
    tables = Column(JSONB, nullable=True)
    subaccount_id = Column(
        UUID(as_uuid=True),
        ForeignKey("subaccounts.id", ondelete="CASCADE"),
        nullable=True,
    )
    individual_id = Column(
        UUID(as_uuid=True),
        ForeignKey("individuals.id", ondelete="CASCADE"),
        nullable=True,
    )
    created_at = _created_at()
    updated_at = _updated_at()


class Ticket(BaseModel):
    """Support ticket raised by a user."""

    __tablename__ = "tickets"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    value = Column(Float, nullable=True)
    order = Column(Integer, nullable=False, default=0)
    lane = Column(String(100), nullable=True)
    status = Column(String(50), nullable=False, default="open")
    priority = Column(String(50), nullable=False, default="medium")
    category = Column(String(50), nullable=False, default="general")
    customer_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    resolution = Column(Text, nullable=True)
    subaccount_id = Column(
        UUID(as_uuid=True),
        ForeignKey("subaccounts.id", ondelete="CASCADE"),
        nullable=True,
    )
    agency_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agencies.id", ondelete="CASCADE"),
        nullable=True,
    )
    created_at = _created_at()
    updated_at = _updated_at()

    __table_args__ = (
        Index("idx_tickets_customer_id", "customer_id"),
        Index("idx_tickets_status", "status"),
    )
