"""Shared controller-level validation helpers."""

from typing import List

from fastapi import HTTPException, UploadFile, status

from plura.infrastructure.uploads.file_router import FileRoute


def validate_upload_files(files: List[UploadFile], route: FileRoute) -> None:
    """Check uploaded files against a file route's declared limits.

    Args:
        files: Files received in the multipart body
        route: Route declaration with accepted types and limits

    Raises:
        HTTPException: 400 if the batch is empty, too large, or holds a
            file of an unaccepted type or size
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No files provided",
        )
    if len(files) > route.max_file_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"At most {route.max_file_count} file(s) allowed for {route.name}",
        )
    for upload in files:
        if not route.accepts(upload.content_type):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unsupported file type: {upload.content_type}",
            )
        if upload.size is not None and upload.size > route.max_file_size:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File exceeds {route.max_file_size // (1024 * 1024)}MB limit",
            )
