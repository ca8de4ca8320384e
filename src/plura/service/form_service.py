"""Automation forms: listing, creation, public submission and analytics.

A published form exposes a public webhook URL. Each submission is stored,
then every active automation linked to the form runs its actions in order
and each action's outcome is recorded as a FormExecution.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from plura.constants import (
    DEFAULT_FORMS_PAGE_SIZE,
    DEFAULT_SUBMISSIONS_PAGE_SIZE,
    EXECUTION_STATUS_FAILED,
    EXECUTION_STATUS_SUCCESS,
    FORM_STATUS_DRAFT,
    FORM_SUBMISSION_SOURCE,
    TIME_RANGE_DAYS,
    UNKNOWN_CLIENT_VALUE,
)
from plura.exception import BadRequestError, ResourceNotFoundError
from plura.infrastructure.persistence.postgresql.models import (
    AutomationForm,
    FormField,
    FormSubmission,
)
from plura.repository.automation_form_repository import AutomationFormRepository
from plura.repository.form_submission_repository import FormSubmissionRepository
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository
from plura.service.access import (
    ensure_individual_access,
    load_accessible_subaccount,
    parse_uuid,
)
from plura.service.form_actions import FormActionRunner

logger = logging.getLogger(__name__)

DEFAULT_TIME_RANGE = "7d"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _field_to_dict(field: FormField) -> Dict[str, Any]:
    return {
        "id": str(field.id),
        "name": field.name,
        "label": field.label,
        "type": field.type,
        "required": field.required,
        "placeholder": field.placeholder,
        "defaultValue": field.default_value,
        "options": field.options,
        "validation": field.validation,
        "order": field.order,
    }


def _form_to_dict(form: AutomationForm) -> Dict[str, Any]:
    return {
        "id": str(form.id),
        "name": form.name,
        "description": form.description,
        "status": form.status,
        "emailSubject": form.email_subject,
        "emailBody": form.email_body,
        "successUrl": form.success_url,
        "errorUrl": form.error_url,
        "webhookUrl": form.webhook_url,
        "config": form.config,
        "createdBy": form.created_by,
        "subAccountId": str(form.subaccount_id) if form.subaccount_id else None,
        "individualId": str(form.individual_id) if form.individual_id else None,
        "createdAt": _iso(form.created_at),
        "updatedAt": _iso(form.updated_at),
    }


def _submission_to_dict(submission: FormSubmission, form_name: str) -> Dict[str, Any]:
    return {
        "id": str(submission.id),
        "formId": str(submission.form_id),
        "data": submission.data,
        "ipAddress": submission.ip_address,
        "userAgent": submission.user_agent,
        "source": submission.source,
        "processed": submission.processed,
        "createdAt": _iso(submission.created_at),
        "form": {"name": form_name},
    }


def canonical_webhook_id(webhook_id: Optional[str]) -> Optional[str]:
    """Normalise a webhook id to the UUID text used in webhook URLs.

    Returns:
        Lowercase hyphenated UUID, or None when the id is not a UUID
    """
    if not webhook_id:
        return None
    try:
        return str(UUID(webhook_id))
    except ValueError:
        return None


def window_start(time_range: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Start of a 7d/30d/90d window; unknown ranges fall back to 7 days."""
    now = now or datetime.now(timezone.utc)
    days = TIME_RANGE_DAYS.get(time_range or "", TIME_RANGE_DAYS[DEFAULT_TIME_RANGE])
    return now - timedelta(days=days)


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def validate_required_fields(form: AutomationForm, form_data: Dict[str, Any]) -> None:
    """Reject a submission that leaves a required field empty.

    Raises:
        BadRequestError: With code VALIDATION_FAILED naming the first missing field
    """
    for field in form.fields:
        if field.required and _is_blank(form_data.get(field.name)):
            raise BadRequestError(
                f"Field '{field.label or field.name}' is required",
                field=field.name,
                code="VALIDATION_FAILED",
            )


class FormService:
    """Automation form operations.

    Attributes:
        form_repo: Form repository
        submission_repo: Submission and execution repository
        subaccount_repo: Subaccount repository, for tenant checks
        action_runner: Executes automation actions
        public_url: Base URL used to build webhook URLs
    """

    def __init__(
        self,
        form_repo: AutomationFormRepository,
        submission_repo: FormSubmissionRepository,
        subaccount_repo: SubAccountRepository,
        action_runner: FormActionRunner,
        public_url: str,
    ):
        self.form_repo = form_repo
        self.submission_repo = submission_repo
        self.subaccount_repo = subaccount_repo
        self.action_runner = action_runner
        self.public_url = public_url.rstrip("/")

    async def _scope(
        self,
        session: TokenSession,
        subaccount_id: Optional[str],
        individual_id: Optional[str],
    ) -> Optional[str]:
        """Check owner access and return the creator filter to apply.

        Without an explicit owner the listing is limited to forms the caller
        created.
        """
        if subaccount_id:
            await load_accessible_subaccount(self.subaccount_repo, session, subaccount_id)
        if individual_id:
            ensure_individual_access(session, individual_id)
        if subaccount_id or individual_id:
            return None
        return session.user_id

    async def list_forms(
        self,
        session: TokenSession,
        search: Optional[str] = None,
        status: Optional[str] = None,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
        limit: int = DEFAULT_FORMS_PAGE_SIZE,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List one page of forms.

        Returns:
            Tuple of (forms with _count, total matching forms)
        """
        created_by = await self._scope(session, subaccount_id, individual_id)
        status_filter = status.upper() if status and status != "all" else None
        rows, total = await self.form_repo.list_filtered(
            created_by=created_by,
            subaccount_id=subaccount_id,
            individual_id=individual_id,
            search=search,
            status=status_filter,
            limit=limit,
            offset=offset,
        )
        forms = []
        for form, submission_count, automation_count in rows:
            data = _form_to_dict(form)
            data["_count"] = {
                "submissions": submission_count,
                "automations": automation_count,
            }
            forms.append(data)
        return forms, total

    async def create_form(self, session: TokenSession, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create a form and its fields.

        Raises:
            BadRequestError: Missing name or malformed field definitions
        """
        name = body.get("name")
        if not name:
            raise BadRequestError("Form name is required", field="name")

        subaccount_id = body.get("subAccountId")
        individual_id = body.get("individualId")
        if subaccount_id:
            await load_accessible_subaccount(
                self.subaccount_repo, session, subaccount_id, field="subAccountId"
            )
        if individual_id:
            ensure_individual_access(session, individual_id)

        fields = []
        for index, raw in enumerate(body.get("fields") or []):
            if not raw.get("name") or not raw.get("label"):
                raise BadRequestError(
                    f"Field {index} needs a name and a label", field="fields"
                )
            fields.append(
                {
                    "name": raw["name"],
                    "label": raw["label"],
                    "type": raw.get("type"),
                    "required": raw.get("required", False),
                    "placeholder": raw.get("placeholder"),
                    "default_value": raw.get("defaultValue"),
                    "options": raw.get("options"),
                    "validation": raw.get("validation"),
                }
            )

        webhook_url = f"{self.public_url}/api/forms/{uuid4()}/submit"
        form = await self.form_repo.create_with_fields(
            name=name,
            webhook_url=webhook_url,
            created_by=session.user_id,
            fields=fields,
            description=body.get("description"),
            status=body.get("status") or FORM_STATUS_DRAFT,
            email_subject=body.get("emailSubject"),
            email_body=body.get("emailBody"),
            success_url=body.get("successUrl"),
            error_url=body.get("errorUrl"),
            config=body.get("config"),
            subaccount_id=subaccount_id,
            individual_id=individual_id,
        )
        logger.info(f"Automation form created: {form.id} by {session.user_id}")
        data = _form_to_dict(form)
        data["fields"] = [_field_to_dict(f) for f in form.fields]
        return data

    async def get_form_fields(self, form_id: Optional[str]) -> Dict[str, Any]:
        """Published form summary with its fields in display order.

        Raises:
            BadRequestError: Missing or malformed form id
            ResourceNotFoundError: No published form with the id
        """
        parsed = parse_uuid(form_id, "formId")
        form = await self.form_repo.get_published_by_id(parsed)
        if form is None:
            raise ResourceNotFoundError("Form", str(parsed))
        return {
            "form": {
                "id": str(form.id),
                "name": form.name,
                "description": form.description,
                "webhookUrl": form.webhook_url,
            },
            "fields": [
                _field_to_dict(f) for f in sorted(form.fields, key=lambda f: f.order or 0)
            ],
        }

    async def submit(
        self,
        webhook_id: str,
        form_data: Dict[str, Any],
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """Store a public submission and run the form's automations.

        A failing action is recorded as a failed execution and does not stop
        the remaining actions.

        Returns:
            Tuple of (response body, success_url or None)

        Raises:
            ResourceNotFoundError: No published form for the webhook id
            BadRequestError: A required field is missing (code VALIDATION_FAILED)
        """
        canonical_id = canonical_webhook_id(webhook_id)
        if canonical_id is None:
            raise ResourceNotFoundError("Form", webhook_id)
        form = await self.form_repo.get_published_by_webhook_id(canonical_id)
        if form is None:
            raise ResourceNotFoundError("Form", webhook_id)

        validate_required_fields(form, form_data)

        submission = await self.submission_repo.create(
            form_id=form.id,
            data=form_data,
            ip_address=ip_address or UNKNOWN_CLIENT_VALUE,
            user_agent=user_agent or UNKNOWN_CLIENT_VALUE,
            source=FORM_SUBMISSION_SOURCE,
        )

        results: List[Dict[str, Any]] = []
        for link in form.automations:
            if not link.is_active or link.automation is None:
                continue
            automation = link.automation
            for action in automation.actions:
                if not self.action_runner.supports(action.type):
                    logger.debug(f"Skipping unknown action type {action.type}")
                    continue
                try:
                    outcome = await self.action_runner.run(action, form_data, form)
                except Exception as e:
                    logger.error(
                        f"Action {action.type} failed for submission {submission.id}: {e}",
                        exc_info=True,
                    )
                    await self.submission_repo.record_execution(
                        submission.id,
                        automation.id,
                        EXECUTION_STATUS_FAILED,
                        error_message=str(e) or type(e).__name__,
                    )
                    continue

                await self.submission_repo.record_execution(
                    submission.id,
                    automation.id,
                    EXECUTION_STATUS_SUCCESS
                    if outcome.get("success")
                    else EXECUTION_STATUS_FAILED,
                    result=outcome,
                    error_message=outcome.get("error"),
                )
                results.append(
                    {
                        "automationId": str(automation.id),
                        "actionType": action.type,
                        "result": outcome,
                    }
                )

        await self.submission_repo.mark_processed(submission.id)
        logger.info(f"Form submission processed: form={form.id} submission={submission.id}")

        body = {
            "success": True,
            "submissionId": str(submission.id),
            "message": "Form submitted successfully",
            "automations": results,
        }
        return body, form.success_url or None

    async def list_submissions(
        self,
        session: TokenSession,
        subaccount_id: Optional[str] = None,
        individual_id: Optional[str] = None,
        form_id: Optional[str] = None,
        time_range: Optional[str] = DEFAULT_TIME_RANGE,
        limit: int = DEFAULT_SUBMISSIONS_PAGE_SIZE,
        offset: int = 0,
    ) -> Tuple[List[Dict[str, Any]], int]:
        """List submissions in the time window, newest first.

        Returns:
            Tuple of (submissions with form name, total in window)
        """
        created_by = await self._scope(session, subaccount_id, individual_id)
        form_filter = None
        if form_id and form_id != "all":
            form_filter = str(parse_uuid(form_id, "formId"))
        form_ids = await self.form_repo.list_ids(
            subaccount_id=subaccount_id,
            individual_id=individual_id,
            form_id=form_filter,
            created_by=created_by,
        )
        rows, total = await self.submission_repo.list_for_forms(
            form_ids, window_start(time_range), limit=limit, offset=offset
        )
        return [_submission_to_dict(s, name) for s, name in rows], total
