"""Stores files accepted by the upload routes."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import uuid4

from plura.exception import ResourceNotFoundError
from plura.infrastructure.persistence.s3.client import S3Client
from plura.infrastructure.uploads.file_router import (
    FILE_ROUTES,
    FileRoute,
    get_file_route,
)

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    """A file read from the multipart body."""

    filename: str
    content_type: Optional[str]
    data: bytes


def object_key(route_name: str, filename: str) -> str:
    safe_name = filename.replace("/", "_").replace("\\", "_") or "file"
    return f"{route_name}/{uuid4()}-{safe_name}"


class UploadService:
    """Writes uploads to object storage.

    Attributes:
        s3_client: Object storage client
    """

    def __init__(self, s3_client: S3Client):
        self.s3_client = s3_client

    @staticmethod
    def route_config() -> List[Dict[str, Any]]:
        return [route.to_config() for route in FILE_ROUTES.values()]

    @staticmethod
    def resolve_route(route_name: str) -> FileRoute:
        route = get_file_route(route_name)
        if route is None:
            raise ResourceNotFoundError("UploadRoute", route_name)
        return route

    async def store(
        self, route: FileRoute, files: List[IncomingFile], uploaded_by: str
    ) -> Dict[str, Any]:
        """Store validated files under the route's prefix.

        Args:
            route: Upload route the files were validated against
            files: File contents
            uploaded_by: User id of the uploader

        Returns:
            {"uploadedBy": ..., "files": [{"key", "name", "size", "url"}]}
        """
        stored = []
        for incoming in files:
            key = object_key(route.name, incoming.filename)
            url = await self.s3_client.upload_file(
                key, incoming.data, content_type=incoming.content_type
            )
            stored.append(
                {
                    "key": key,
                    "name": incoming.filename,
                    "size": len(incoming.data),
                    "url": url,
                }
            )
        logger.info(f"Stored {len(stored)} file(s) on {route.name} for {uploaded_by}")
        return {"uploadedBy": uploaded_by, "files": stored}
