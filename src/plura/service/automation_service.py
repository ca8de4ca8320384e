"""Start, pause and inspect subaccount automations."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from plura.constants import AUTOMATION_ACTION_PAUSE, AUTOMATION_ACTION_START
from plura.exception import BadRequestError, ResourceNotFoundError
from plura.infrastructure.persistence.postgresql.models import Automation
from plura.repository.automation_repository import AutomationRepository
from plura.repository.form_submission_repository import FormSubmissionRepository
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository
from plura.service.access import load_accessible_subaccount, parse_uuid

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _automation_to_dict(automation: Automation) -> Dict[str, Any]:
    return {
        "id": str(automation.id),
        "name": automation.name,
        "subAccountId": str(automation.subaccount_id),
        "triggerType": automation.trigger_type,
        "published": automation.published,
        "createdAt": _iso(automation.created_at),
        "updatedAt": _iso(automation.updated_at),
    }


def _latest_instance_active(automation: Automation) -> bool:
    if not automation.instances:
        return False
    latest = max(
        automation.instances,
        key=lambda i: i.created_at.timestamp() if i.created_at else 0.0,
    )
    return bool(latest.active)


class AutomationService:
    """Automation lifecycle for a caller's subaccounts.

    Attributes:
        automation_repo: Automation repository
        submission_repo: Submission repository, for execution statistics
        subaccount_repo: Subaccount repository, for tenant checks
    """

    def __init__(
        self,
        automation_repo: AutomationRepository,
        submission_repo: FormSubmissionRepository,
        subaccount_repo: SubAccountRepository,
    ):
        self.automation_repo = automation_repo
        self.submission_repo = submission_repo
        self.subaccount_repo = subaccount_repo

    async def _load(
        self, session: TokenSession, automation_id: str, subaccount_id: Optional[str]
    ) -> Automation:
        subaccount = await load_accessible_subaccount(
            self.subaccount_repo, session, subaccount_id, field="subAccountId"
        )
        parsed = parse_uuid(automation_id, "automationId")
        automation = await self.automation_repo.get_for_subaccount(parsed, subaccount.id)
        if automation is None:
            raise ResourceNotFoundError("Automation", str(parsed))
        return automation

    async def toggle(
        self,
        session: TokenSession,
        automation_id: str,
        subaccount_id: Optional[str],
        action: Optional[str],
    ) -> Dict[str, Any]:
        """Start or pause an automation.

        Raises:
            BadRequestError: Unknown action or missing subaccount id
            ResourceNotFoundError: Automation not found in that subaccount
        """
        if action not in (AUTOMATION_ACTION_START, AUTOMATION_ACTION_PAUSE):
            raise BadRequestError(
                "Invalid action. Use 'start' or 'pause'", field="action"
            )
        automation = await self._load(session, automation_id, subaccount_id)
        updated = await self.automation_repo.set_running(
            automation.id, running=action == AUTOMATION_ACTION_START
        )
        if updated is None:
            raise ResourceNotFoundError("Automation", str(automation.id))

        logger.info(f"Automation {action}: {automation.id} by {session.user_id}")
        return {
            "success": True,
            "automation": _automation_to_dict(updated),
            "action": action,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def get_status(
        self, session: TokenSession, automation_id: str, subaccount_id: Optional[str]
    ) -> Dict[str, Any]:
        automation = await self._load(session, automation_id, subaccount_id)
        execution_count, last_execution = await self.submission_repo.execution_stats(
            automation.id
        )
        return {
            "id": str(automation.id),
            "name": automation.name,
            "isRunning": automation.published and _latest_instance_active(automation),
            "published": automation.published,
            "executionCount": execution_count,
            "lastExecution": _iso(last_execution),
            "createdAt": _iso(automation.created_at),
            "updatedAt": _iso(automation.updated_at),
        }
