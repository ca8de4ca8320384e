"""Activity feed writes for agencies."""

import logging
from typing import Optional

from plura.repository.notification_repository import NotificationRepository
from plura.repository.subaccount_repository import SubAccountRepository
from plura.repository.user_repository import UserRepository

logger = logging.getLogger(__name__)


class NotificationService:
    """Appends "{user} | {description}" lines to an agency activity feed.

    Attributes:
        notification_repo: Notification repository
        user_repo: User repository for the actor's display name
        subaccount_repo: Subaccount repository for agency resolution
    """

    def __init__(
        self,
        notification_repo: NotificationRepository,
        user_repo: UserRepository,
        subaccount_repo: SubAccountRepository,
    ):
        self.notification_repo = notification_repo
        self.user_repo = user_repo
        self.subaccount_repo = subaccount_repo

    async def save_activity_log(
        self,
        user_id: str,
        description: str,
        agency_id: Optional[str] = None,
        subaccount_id: Optional[str] = None,
    ) -> None:
        """Write an activity entry.

        The agency is resolved from the subaccount when not given. A missing
        actor is logged and skipped rather than failing the caller.

        Raises:
            ValueError: If neither agency_id nor subaccount_id is given, or
                the subaccount has no agency
        """
        if not agency_id and not subaccount_id:
            raise ValueError("You need to provide at least an agency id or subaccount id")

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            logger.warning(f"Activity log skipped, user not found: {user_id}")
            return

        found_agency_id = agency_id
        if not found_agency_id:
            subaccount = await self.subaccount_repo.get_by_id(subaccount_id)
            if subaccount is None or subaccount.agency_id is None:
                raise ValueError(f"Could not resolve agency for subaccount {subaccount_id}")
            found_agency_id = str(subaccount.agency_id)

        await self.notification_repo.create(
            notification=f"{user.name} | {description}",
            agency_id=found_agency_id,
            user_id=user_id,
            subaccount_id=subaccount_id,
        )
