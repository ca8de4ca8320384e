"""Funnels: page listings, settings, previews and public site pages."""

import logging
from typing import Any, Dict, List, Optional

from plura.exception import ResourceNotFoundError
from plura.infrastructure.persistence.postgresql.models import Funnel, FunnelPage
from plura.repository.funnel_repository import FunnelRepository
from plura.repository.session_store_repository import TokenSession
from plura.repository.subaccount_repository import SubAccountRepository
from plura.service.access import owns_subaccount, parse_uuid

logger = logging.getLogger(__name__)

DEFAULT_FUNNEL_SETTINGS: Dict[str, Any] = {
    # meta
    "metaTitle": "",
    "metaDescription": "",
    "metaKeywords": "",
    "ogImage": "",
    "customFavicon": "",
    # analytics
    "googleAnalyticsId": "",
    "facebookPixelId": "",
    "customAnalyticsCode": "",
    # performance
    "enableCaching": True,
    "enableCompression": True,
    "enableLazyLoading": True,
    # security
    "enableSSL": True,
    "enableCsrfProtection": True,
    "allowedOrigins": "",
    # custom code
    "customCss": "",
    "customJs": "",
    "customHeadCode": "",
    "customBodyCode": "",
    # domain
    "customDomain": "",
    "subDomain": "",
    "enableWwwRedirect": False,
    # backup
    "autoBackupEnabled": True,
    "backupFrequency": "daily",
    "exportFormat": "react",
    # notifications
    "emailNotifications": True,
    "slackWebhookUrl": "",
    "discordWebhookUrl": "",
}


def _page_to_dict(page: FunnelPage) -> Dict[str, Any]:
    return {
        "id": str(page.id),
        "funnelId": str(page.funnel_id),
        "name": page.name,
        "pathName": page.path_name,
        "order": page.order,
        "content": page.content,
        "visits": page.visits,
        "previewImage": page.preview_image,
        "createdAt": page.created_at.isoformat() if page.created_at else None,
        "updatedAt": page.updated_at.isoformat() if page.updated_at else None,
    }


def _funnel_summary(funnel: Funnel) -> Dict[str, Any]:
    return {
        "id": str(funnel.id),
        "name": funnel.name,
        "description": funnel.description,
        "published": funnel.published,
        "subDomainName": funnel.subdomain_name,
        "favicon": funnel.favicon,
        "subAccountId": str(funnel.subaccount_id),
    }


def merge_settings(stored: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Overlay stored settings on the defaults; unknown stored keys are kept."""
    return {**DEFAULT_FUNNEL_SETTINGS, **(stored or {})}


def select_page(pages: List[FunnelPage], page_path: Optional[str]) -> Optional[FunnelPage]:
    """Pick the page served for a path; the root serves the home page."""
    if not pages:
        return None
    wanted = (page_path or "").strip("/")
    if not wanted:
        return pages[0]
    return next((p for p in pages if (p.path_name or "").strip("/") == wanted), None)


class FunnelService:
    """Funnel reads and settings writes.

    Attributes:
        funnel_repo: Funnel repository
        subaccount_repo: Subaccount repository, for tenant checks
    """

    def __init__(self, funnel_repo: FunnelRepository, subaccount_repo: SubAccountRepository):
        self.funnel_repo = funnel_repo
        self.subaccount_repo = subaccount_repo

    async def _accessible_funnel(self, session: TokenSession, funnel_id: str) -> Funnel:
        """Load a funnel the caller may access; other tenants' funnels read as missing."""
        parsed = parse_uuid(funnel_id, "funnelId")
        funnel = await self.funnel_repo.get_by_id(parsed)
        if funnel is None:
            raise ResourceNotFoundError("Funnel", str(parsed))
        subaccount = await self.subaccount_repo.get_by_id(funnel.subaccount_id)
        if subaccount is None or not owns_subaccount(session, subaccount):
            raise ResourceNotFoundError("Funnel", str(parsed))
        return funnel

    async def list_pages(self, session: TokenSession, funnel_id: str) -> List[Dict[str, Any]]:
        funnel = await self._accessible_funnel(session, funnel_id)
        pages = await self.funnel_repo.list_pages(funnel.id)
        return [_page_to_dict(p) for p in pages]

    async def get_settings(self, session: TokenSession, funnel_id: str) -> Dict[str, Any]:
        funnel = await self._accessible_funnel(session, funnel_id)
        return merge_settings(funnel.settings)

    async def save_settings(
        self, session: TokenSession, funnel_id: str, settings: Dict[str, Any]
    ) -> Dict[str, bool]:
        funnel = await self._accessible_funnel(session, funnel_id)
        await self.funnel_repo.update_settings(funnel.id, settings)
        logger.info(f"Funnel settings saved: {funnel.id} by {session.user_id}")
        return {"success": True}

    async def get_preview(self, funnel_id: str) -> Dict[str, Any]:
        """Public preview of a published funnel.

        Raises:
            ResourceNotFoundError: Unknown or unpublished funnel
        """
        parsed = parse_uuid(funnel_id, "funnelId")
        funnel = await self.funnel_repo.get_with_pages(parsed)
        if funnel is None or not funnel.published:
            raise ResourceNotFoundError("Funnel", str(parsed))
        return {
            "funnel": _funnel_summary(funnel),
            "pages": [_page_to_dict(p) for p in funnel.pages],
        }

    async def render_site_page(
        self, subdomain: str, page_path: Optional[str] = None
    ) -> Dict[str, Any]:
        """Serve a page of the funnel published under a subdomain.

        Counts a visit on the page served.
        """
        funnel = await self.funnel_repo.get_by_subdomain(subdomain)
        if funnel is None or not funnel.published:
            raise ResourceNotFoundError("Funnel", subdomain)
        page = select_page(funnel.pages, page_path)
        if page is None:
            raise ResourceNotFoundError("FunnelPage", page_path or "/")

        await self.funnel_repo.increment_page_visits(page.id)
        page_data = _page_to_dict(page)
        page_data["visits"] = (page.visits or 0) + 1
        return {"funnel": _funnel_summary(funnel), "page": page_data}
