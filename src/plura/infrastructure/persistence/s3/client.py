"""Async S3/MinIO storage for uploaded media.

Logos, avatars and funnel media are written here by the upload endpoints.
Works against AWS S3 or any S3-compatible endpoint via endpoint_url.
"""

import logging
from typing import Optional

import aioboto3

logger = logging.getLogger(__name__)


class S3Client:
    """Async object storage for uploaded files.

    Attributes:
        endpoint_url: S3 endpoint URL (None for AWS, set for MinIO)
        access_key_id: Access key ID
        secret_access_key: Secret access key
        bucket_name: Target bucket name
        region: AWS region (ignored by MinIO)
        public_base_url: Base URL that serves objects publicly; derived from
            the endpoint and bucket when not given
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        public_base_url: Optional[str] = None,
    ):
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.bucket_name = bucket_name
        self.region = region
        self.public_base_url = public_base_url
        self._session = aioboto3.Session()

    def _client_kwargs(self) -> dict:
        kwargs = {
            "region_name": self.region,
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    def public_url(self, key: str) -> str:
        """Build the URL clients use to fetch an uploaded object.

        Args:
            key: Object key

        Returns:
            Absolute URL
        """
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def upload_file(
        self, key: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        """Store bytes under key.

        Args:
            key: Object key (path within bucket)
            data: Raw bytes to upload
            content_type: MIME type recorded on the object

        Returns:
            Public URL of the stored object
        """
        extra = {"ContentType": content_type} if content_type else {}
        async with self._session.client("s3", **self._client_kwargs()) as client:
            await client.put_object(
                Bucket=self.bucket_name, Key=key, Body=data, **extra
            )
        logger.debug(f"Uploaded {len(data)} bytes to s3://{self.bucket_name}/{key}")
        return self.public_url(key)
