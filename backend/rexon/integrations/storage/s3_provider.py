from __future__ import annotations

import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from rexon.integrations.storage.base import StorageError, StorageProvider, StoredObject

logger = logging.getLogger(__name__)


class S3StorageProvider(StorageProvider):
    name = "s3"

    def __init__(self, *, bucket: str, region: str, client=None):
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    def put_object(self, *, key: str, data: bytes, content_type: str, metadata: dict | None = None, public: bool = False) -> str:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": data,
            "ContentType": content_type,
        }
        if metadata:
            params["Metadata"] = {str(k): str(v) for k, v in metadata.items()}
        try:
            if public:
                try:
                    self.client.put_object(ACL="public-read", **params)
                except ClientError as e:
                    # Buckets with object ownership enforced reject ACLs.
                    if e.response.get("Error", {}).get("Code") != "AccessControlListNotSupported":
                        raise
                    logger.info("s3_acl_not_supported bucket=%s retrying_without_acl", self.bucket)
                    self.client.put_object(**params)
            else:
                self.client.put_object(**params)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"s3 upload failed for {key}: {e}") from e
        return self.public_url(key)

    def delete_object(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"s3 delete failed for {key}: {e}") from e

    def list_objects(self, prefix: str, *, max_keys: int = 50) -> list[StoredObject]:
        try:
            resp = self.client.list_objects_v2(Bucket=self.bucket, Prefix=prefix, MaxKeys=int(max_keys))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"s3 list failed for {prefix}: {e}") from e
        items = []
        for obj in resp.get("Contents") or []:
            modified = obj.get("LastModified")
            items.append(
                StoredObject(
                    key=obj["Key"],
                    url=self.public_url(obj["Key"]),
                    size=int(obj.get("Size") or 0),
                    last_modified=modified.isoformat() if modified else None,
                )
            )
        return items

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
