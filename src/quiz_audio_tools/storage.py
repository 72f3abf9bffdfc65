from __future__ import annotations

import logging
import re
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import StorageError

logger = logging.getLogger(__name__)

_S3_URL_KEY = re.compile(r"amazonaws\.com/(.+)")


def extract_key(url_or_key: str) -> str:
    """Return the object key of a public S3 URL, or the value itself if it is already a key."""
    m = _S3_URL_KEY.search(url_or_key)
    return m.group(1) if m else url_or_key


def make_s3_client(region: Optional[str] = None, access_key: Optional[str] = None, secret_key: Optional[str] = None):
    return boto3.client(
        "s3",
        region_name=region,
        aws_access_key_id=access_key,
        aws_secret_access_key=secret_key,
    )


class S3Storage:
    def __init__(self, bucket: str, *, region: Optional[str] = None, s3_client=None):
        self.bucket = bucket
        self.region = region
        self.s3 = s3_client or boto3.client("s3", region_name=region)

    def public_url(self, key: str) -> str:
        if self.region:
            return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.amazonaws.com/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        if not data:
            raise StorageError(f"Refusing to upload empty object {key}")
        try:
            self.s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ACL="public-read",
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Upload of %s failed: %s", key, exc)
            raise StorageError(f"S3 upload of {key} failed: {exc}") from exc
        url = self.public_url(key)
        logger.info("Uploaded %s", url)
        return url

    def delete(self, key: str) -> bool:
        try:
            self.s3.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Delete of %s failed: %s", key, exc)
            raise StorageError("S3 delete failed") from exc
        logger.info("Deleted %s", key)
        return True
