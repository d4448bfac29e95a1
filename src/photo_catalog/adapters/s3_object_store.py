"""S3-backed object store for photo bytes."""

import logging
from dataclasses import dataclass
from typing import Any

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from photo_catalog.domain.errors import StorageError, ValidationError
from photo_catalog.services.objects import ObjectStore

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}
_SIGNED_OPERATIONS = {"GET": "get_object", "PUT": "put_object"}


@dataclass
class S3ObjectStore(ObjectStore):
    """Object store implementation using boto3."""

    client: Any
    bucket: str

    @classmethod
    def create(
        cls, bucket: str, region: str, endpoint_url: str | None = None
    ) -> "S3ObjectStore":
        """Create an S3 object store with a SigV4 client."""
        client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            config=Config(signature_version="s3v4", retries={"max_attempts": 3}),
        )
        return cls(client=client, bucket=bucket)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        """Upload bytes to the bucket."""
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ContentLength=len(data),
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"failed to store object {key}") from exc

    def get(self, key: str) -> bytes | None:
        """Download an object and join its streamed body."""
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as exc:
            if _error_code(exc) in _MISSING_CODES:
                return None
            raise StorageError(f"failed to read object {key}") from exc
        except BotoCoreError as exc:
            raise StorageError(f"failed to read object {key}") from exc
        body = response.get("Body")
        if body is None:
            return None
        try:
            return b"".join(body.iter_chunks())
        finally:
            body.close()

    def delete(self, key: str) -> None:
        """Delete an object; S3 deletes are idempotent so failures are logged."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError):
            logger.warning(
                "Failed to delete object, continuing",
                exc_info=True,
                extra={"object_key": key},
            )

    def sign_url(
        self,
        key: str,
        method: str,
        ttl_seconds: int,
        content_type: str | None = None,
    ) -> str:
        """Generate a presigned GET or PUT URL."""
        operation = _SIGNED_OPERATIONS.get(method.upper())
        if operation is None:
            raise ValidationError(f"unsupported signing method: {method}")
        params: dict[str, object] = {"Bucket": self.bucket, "Key": key}
        if operation == "put_object" and content_type:
            params["ContentType"] = content_type
        try:
            return self.client.generate_presigned_url(
                operation, Params=params, ExpiresIn=ttl_seconds
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"failed to sign url for {key}") from exc


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))
