from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select

if TYPE_CHECKING:
    from plura.infrastructure.persistence.postgresql.client import PostgreSQLClient

from plura.infrastructure.persistence.postgresql.models import (
    AutomationForm,
    Contact,
    FormExecution,
    FormSubmission,
)


class FormSubmissionRepository:
    """Repository for form submissions, their executions and created contacts.

    Attributes:
        client: PostgreSQL client for database access
    """

    def __init__(self, client: PostgreSQLClient):
        self.client = client

    async def create(
        self,
        form_id: str | UUID,
        data: Dict[str, Any],
        ip_address: str,
        user_agent: str,
        source: str,
    ) -> FormSubmission:
        async with self.client.session() as session:
            submission = FormSubmission(
                form_id=UUID(str(form_id)),
                data=data,
                ip_address=ip_address,
                user_agent=user_agent,
                source=source,
            )
            session.add(submission)
            await session.flush()
            return submission

    async def mark_processed(self, submission_id: str | UUID) -> None:
        if isinstance(submission_id, str):
            submission_id = UUID(submission_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(FormSubmission).where(FormSubmission.id == submission_id)
            )
            submission = result.scalar_one_or_none()
            if submission:
                submission.processed = True
                await session.flush()

    async def record_execution(
        self,
        submission_id: str | UUID,
        automation_id: str | UUID,
        status: str,
        result: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> FormExecution:
        """Store the outcome of one automation action run."""
        async with self.client.session() as session:
            execution = FormExecution(
                submission_id=UUID(str(submission_id)),
                automation_id=UUID(str(automation_id)),
                status=status,
                result=result,
                error_message=error_message,
            )
            session.add(execution)
            await session.flush()
            return execution

    async def create_contact(
        self,
        name: str,
        email: str,
        subaccount_id: Optional[str | UUID] = None,
        individual_id: Optional[str | UUID] = None,
    ) -> Contact:
        async with self.client.session() as session:
            contact = Contact(
                name=name,
                email=email,
                subaccount_id=UUID(str(subaccount_id)) if subaccount_id else None,
                individual_id=UUID(str(individual_id)) if individual_id else None,
            )
            session.add(contact)
            await session.flush()
            return contact

    async def list_for_forms(
        self,
        form_ids: List[UUID],
        since: datetime,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Tuple[FormSubmission, str]], int]:
        """List submissions of the given forms created since a point in time.

        Returns:
            Tuple of ([(submission, form_name)], total), newest first
        """
        if not form_ids:
            return [], 0
        conditions = (
            FormSubmission.form_id.in_(form_ids),
            FormSubmission.created_at >= since,
        )
        async with self.client.session() as session:
            result = await session.execute(
                select(FormSubmission, AutomationForm.name)
                .join(AutomationForm, AutomationForm.id == FormSubmission.form_id)
                .where(*conditions)
                .order_by(FormSubmission.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
            rows = [(submission, form_name) for submission, form_name in result.all()]
            total = (
                await session.execute(
                    select(func.count(FormSubmission.id)).where(*conditions)
                )
            ).scalar_one()
            return rows, total

    async def count_since(self, since: datetime) -> int:
        async with self.client.session() as session:
            result = await session.execute(
                select(func.count(FormSubmission.id)).where(
                    FormSubmission.created_at >= since
                )
            )
            return result.scalar_one()

    async def execution_stats(
        self, automation_id: str | UUID
    ) -> Tuple[int, Optional[datetime]]:
        """Return (execution count, last execution time) for an automation."""
        if isinstance(automation_id, str):
            automation_id = UUID(automation_id)
        async with self.client.session() as session:
            result = await session.execute(
                select(
                    func.count(FormExecution.id), func.max(FormExecution.executed_at)
                ).where(FormExecution.automation_id == automation_id)
            )
            count, last = result.one()
            return count, last
