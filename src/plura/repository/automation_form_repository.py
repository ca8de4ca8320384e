from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    Automation,
    AutomationForm,
    FormAutomation,
    FormField,
    FormSubmission,
)


def _apply_form_filters(
    query,
    created_by: Optional[str],
    subaccount_id: Optional[str],
    individual_id: Optional[str],
    search: Optional[str],
    status: Optional[str],
):
    if created_by:
        query = query.where(AutomationForm.created_by == created_by)
    if subaccount_id:
        query = query.where(AutomationForm.subaccount_id == UUID(str(subaccount_id)))
    if individual_id:
        query = query.where(AutomationForm.individual_id == UUID(str(individual_id)))
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                AutomationForm.name.ilike(pattern),
                AutomationForm.description.ilike(pattern),
            )
        )
    if status:
        query = query.where(AutomationForm.status == status)
    return query


class AutomationFormRepository:
    """Repository for automation forms and their field definitions.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def list_filtered(
        self,
        created_by: Optional[str] = None,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Tuple[AutomationForm, int, int]], int]:
        """List one page of forms with submission and automation counts.

        Args:
            created_by: Creator user id filter
            subaccount_id: Owning subaccount filter
            individual_id: Owning individual filter
            search: Case-insensitive match on name or description
            status: Exact status filter (already upper-cased)
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of ([(form, submission_count, automation_count)], total)
        """
        submission_count = (
            select(func.count(FormSubmission.id))
            .where(FormSubmission.form_id == AutomationForm.id)
            .correlate(AutomationForm)
            .scalar_subquery()
        )
        automation_count = (
            select(func.count(FormAutomation.id))
            .where(FormAutomation.form_id == AutomationForm.id)
            .correlate(AutomationForm)
            .scalar_subquery()
        )
        page_query = _apply_form_filters(
            select(AutomationForm, submission_count, automation_count),
            created_by,
            subaccount_id,
            individual_id,
            search,
            status,
        )
        count_query = _apply_form_filters(
            select(func.count(AutomationForm.id)),
            created_by,
            subaccount_id,
            individual_id,
            search,
            status,
        )
        async with self.client.session() as session:
            result = await session.execute(
                page_query.order_by(AutomationForm.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
            rows = [(form, subs, autos) for form, subs, autos in result.all()]
            total = (await session.execute(count_query)).scalar_one()
            return rows, total

    async def create_with_fields(
        self,
        name: str,
        webhook_url: str,
        created_by: str,
        fields: List[Dict[str, Any]],
        description: Optional[str] = None,
        status: str = "DRAFT",
        email_subject: Optional[str] = None,
        email_body: Optional[str] = None,
        success_url: Optional[str] = None,
        error_url: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
    ) -> AutomationForm:
        """Create a form and its fields in one transaction.

        Field order is the position in the fields list.

        Returns:
            Created AutomationForm with fields loaded
        """
        async with self.client.session() as session:
            form = AutomationForm(
                name=name,
                description=description,
                status=status,
                email_subject=email_subject,
                email_body=email_body,
                success_url=success_url,
                error_url=error_url,
                webhook_url=webhook_url,
                config=config,
                created_by=created_by,
                subaccount_id=UUID(str(subaccount_id)) if subaccount_id else None,
                individual_id=UUID(str(individual_id)) if individual_id else None,
            )
            form.fields = [
                FormField(
                    name=field["name"],
                    label=field["label"],
                    type=field.get("type") or "text",
                    required=bool(field.get("required", False)),
                    placeholder=field.get("placeholder"),
                    default_value=field.get("default_value"),
                    options=field.get("options"),
                    validation=field.get("validation"),
                    order=index,
                )
                for index, field in enumerate(fields)
            ]
            session.add(form)
            await session.flush()
            return form

    async def get_published_by_webhook_id(
        self, webhook_id: str
    ) -> Optional[AutomationForm]:
        """Find the published form whose webhook URL ends with the id.

        Fields, form automations, their automations and ordered actions are
        loaded so the submission can be processed without further queries.
        """
        async with self.client.session() as session:
            result = await session.execute(
                select(AutomationForm)
                .options(
                    selectinload(AutomationForm.fields),
                    selectinload(AutomationForm.automations)
                    .selectinload(FormAutomation.automation)
                    .selectinload(Automation.actions),
                )
                .where(
                    AutomationForm.webhook_url.endswith(
                        f"{webhook_id}/submit", autoescape=True
                    ),
                    AutomationForm.status == "PUBLISHED",
                )
                .limit(1)
            )
            return result.scalars().first()

    async def get_published_by_id(self, form_id: UUID) -> Optional[AutomationForm]:
        async with self.client.session() as session:
            result = await session.execute(
                select(AutomationForm)
                .options(selectinload(AutomationForm.fields))
                .where(
                    AutomationForm.id == form_id,
                    AutomationForm.status == "PUBLISHED",
                )
            )
            return result.scalar_one_or_none()

    async def list_ids(
        self,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
        form_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> List[UUID]:
        query = _apply_form_filters(
            select(AutomationForm.id),
            created_by,
            subaccount_id,
            individual_id,
            None,
            None,
        )
        if form_id:
            query = query.where(AutomationForm.id == UUID(str(form_id)))
        async with self.client.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def count(self) -> int:
        async with self.client.session() as session:
            result = await session.execute(select(func.count(AutomationForm.id)))
            return result.scalar_one()
