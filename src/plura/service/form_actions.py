"""Automation actions run when a form is submitted.

Each runner returns a JSON-serialisable result dict whose ``success`` key
decides the stored execution status. Runners may raise; the caller records
the exception as a failed execution.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from plura.constants import WEBHOOK_PAYLOAD_SOURCE, WEBHOOK_TIMEOUT_SECONDS
from plura.infrastructure.persistence.postgresql.models import (
    AutomationAction,
    AutomationForm,
)
from plura.repository.form_submission_repository import FormSubmissionRepository

logger = logging.getLogger(__name__)

DEFAULT_EMAIL_SUBJECT = "Form Submission"
DEFAULT_EMAIL_BODY = "Thank you for your submission!"


def render_template(template: str, form_data: Dict[str, Any]) -> str:
    """Replace {{field}} placeholders with submitted values."""
    rendered = template
    for key, value in form_data.items():
        rendered = rendered.replace("{{" + key + "}}", str(value))
    return rendered


class FormActionRunner:
    """Dispatches automation actions by type.

    Attributes:
        submission_repo: Used by CREATE_CONTACT
        http_client_factory: Builds the httpx client used by CALL_WEBHOOK
    """

    def __init__(
        self,
        submission_repo: FormSubmissionRepository,
        http_client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
    ):
        self.submission_repo = submission_repo
        self.http_client_factory = http_client_factory or (
            lambda: httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT_SECONDS, follow_redirects=True)
        )
        self._runners: Dict[
            str,
            Callable[[AutomationAction, Dict[str, Any], AutomationForm], Awaitable[Dict[str, Any]]],
        ] = {
            "SEND_EMAIL": self.send_email,
            "CREATE_CONTACT": self.create_contact,
            "CALL_WEBHOOK": self.call_webhook,
        }

    def supports(self, action_type: str) -> bool:
        return action_type in self._runners

    async def run(
        self, action: AutomationAction, form_data: Dict[str, Any], form: AutomationForm
    ) -> Dict[str, Any]:
        runner = self._runners.get(action.type)
        if runner is None:
            return {"skipped": True, "reason": f"Unknown action type: {action.type}"}
        return await runner(action, form_data, form)

    async def send_email(
        self, action: AutomationAction, form_data: Dict[str, Any], form: AutomationForm
    ) -> Dict[str, Any]:
        """Render the email and log it. No mail is sent."""
        config = action.config or {}
        subject = render_template(
            config.get("subject") or form.email_subject or DEFAULT_EMAIL_SUBJECT, form_data
        )
        body = render_template(
            config.get("body") or form.email_body or DEFAULT_EMAIL_BODY, form_data
        )
        recipient = form_data.get("email") or config.get("to")
        logger.info(f"Email would be sent to={recipient} subject={subject!r}")
        logger.debug(f"Email body: {body}")
        return {
            "success": True,
            "emailSent": True,
            "recipient": recipient,
            "subject": subject,
        }

    async def create_contact(
        self, action: AutomationAction, form_data: Dict[str, Any], form: AutomationForm
    ) -> Dict[str, Any]:
        contact = await self.submission_repo.create_contact(
            name=form_data.get("name") or form_data.get("fullName") or "Unknown",
            email=form_data.get("email") or "",
            subaccount_id=form.subaccount_id,
            individual_id=form.individual_id,
        )
        return {
            "success": True,
            "contactCreated": True,
            "contactId": str(contact.id),
            "contactEmail": contact.email,
        }

    async def call_webhook(
        self, action: AutomationAction, form_data: Dict[str, Any], form: AutomationForm
    ) -> Dict[str, Any]:
        config = action.config or {}
        url = config.get("url")
        if not url:
            return {"success": False, "error": "Webhook URL not configured"}

        headers = {"Content-Type": "application/json", **(config.get("headers") or {})}
        payload = {
            "formData": form_data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": WEBHOOK_PAYLOAD_SOURCE,
        }
        try:
            async with self.http_client_factory() as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Webhook call to {url} failed: {e}")
            return {"success": False, "error": str(e), "webhookUrl": url}

        return {
            "success": response.is_success,
            "status": response.status_code,
            "webhookUrl": url,
        }
