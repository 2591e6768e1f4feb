import logging
import uuid

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import Settings, settings
from app.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class StorageService:
    """Rendered-document blobs in an S3-compatible bucket."""

    def __init__(self, client, bucket_name: str, presigned_url_expiry: int = 3600):
        self.client = client
        self.bucket_name = bucket_name
        self.presigned_url_expiry = presigned_url_expiry

    @staticmethod
    def is_configured(config: Settings = settings) -> bool:
        return bool(
            config.s3_endpoint_url and config.s3_access_key and config.s3_secret_key
        )

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "StorageService":
        client = None
        if cls.is_configured(config):
            client = boto3.client(
                "s3",
                endpoint_url=config.s3_endpoint_url,
                aws_access_key_id=config.s3_access_key,
                aws_secret_access_key=config.s3_secret_key,
                region_name=config.s3_region,
                config=Config(signature_version="s3v4"),
            )
        return cls(client, config.s3_bucket_name, config.s3_presigned_url_expiry)

    def _require_client(self):
        if self.client is None:
            raise PersistenceFailure(
                "S3 storage is not configured. "
                "Set S3_ENDPOINT_URL, S3_ACCESS_KEY, and S3_SECRET_KEY."
            )
        return self.client

    @staticmethod
    def generate_storage_key(
        user_id: str | uuid.UUID, case_id: str | uuid.UUID, file_name: str
    ) -> str:
        unique = uuid.uuid4().hex[:12]
        return f"generated/{user_id}/{case_id}/{unique}/{file_name}"

    def upload(self, storage_key: str, data: bytes, mime_type: str) -> None:
        client = self._require_client()
        try:
            client.put_object(
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=data,
                ContentType=mime_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to upload %s: %s", storage_key, e)
            raise PersistenceFailure(f"Failed to store {storage_key}") from e
        logger.info("Stored %s (%d bytes)", storage_key, len(data))

    def download(self, storage_key: str) -> bytes:
        client = self._require_client()
        try:
            response = client.get_object(Bucket=self.bucket_name, Key=storage_key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to read %s: %s", storage_key, e)
            raise PersistenceFailure(f"Failed to read {storage_key}") from e

    def delete(self, storage_key: str) -> None:
        client = self._require_client()
        try:
            client.delete_object(Bucket=self.bucket_name, Key=storage_key)
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to delete %s: %s", storage_key, e)
            raise PersistenceFailure(f"Failed to delete {storage_key}") from e
        logger.info("Deleted %s", storage_key)

    def generate_download_url(self, storage_key: str, expires_in: int | None = None) -> str:
        client = self._require_client()
        try:
            url: str = client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": storage_key},
                ExpiresIn=expires_in or self.presigned_url_expiry,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Failed to presign %s: %s", storage_key, e)
            raise PersistenceFailure(f"Failed to create a download link for {storage_key}") from e
        return url
