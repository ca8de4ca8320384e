"""File upload routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status

from plura.controller.schemas.validators import validate_upload_files
from plura.exception import PluraException
from plura.middleware.admin_session_middleware import get_admin_session
from plura.middleware.tenant_context_middleware import get_session
from plura.service.upload_service import IncomingFile, UploadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/uploadthing", tags=["uploads"])


def _uploader_id(request: Request) -> str:
    """User id of the uploader: primary session first, then the admin cookie."""
    session = get_session(request)
    if session is not None:
        return session.user_id
    admin_session = get_admin_session(request)
    if admin_session is not None:
        return admin_session.user_id
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )


@router.get("")
async def get_upload_routes():
    return UploadService.route_config()


@router.post("/{route_name}")
async def upload_files(
    route_name: str,
    request: Request,
    files: Optional[List[UploadFile]] = File(None),
):
    """Store files posted to a named upload route.

    Raises:
        HTTPException: 401 without a session, 400 for rejected files
        ResourceNotFoundError: 404 for an undeclared route
    """
    uploaded_by = _uploader_id(request)
    upload_service = request.app.state.upload_service
    route = upload_service.resolve_route(route_name)
    validate_upload_files(files or [], route)

    try:
        incoming = [
            IncomingFile(
                filename=upload.filename or "file",
                content_type=upload.content_type,
                data=await upload.read(),
            )
            for upload in files
        ]
        result = await upload_service.store(route, incoming, uploaded_by)
    except (HTTPException, PluraException):
        raise
    except Exception as e:
        logger.error(f"Upload to {route_name} failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload files",
        )
    logger.info(f"{len(incoming)} file(s) uploaded to {route_name} by {uploaded_by}")
    return result
