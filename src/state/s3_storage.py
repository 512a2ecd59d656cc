from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from cryptography.fernet import Fernet, InvalidToken


# Environment variable names for convenience configuration
ENV_BUCKET = "USE_WALLET_STATE_BUCKET"
ENV_PREFIX = "USE_WALLET_STATE_PREFIX"
ENV_FERNET_KEY = "USE_WALLET_FERNET_KEY"

DEFAULT_PREFIX = "use-wallet/"

logger = logging.getLogger(__name__)


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


@dataclass
class S3ObjectRef:
    bucket: str
    prefix: str

    def key_for(self, item_key: str) -> str:
        # Storage keys such as "@txnlab/use-wallet:v4" contain slashes
        return f"{self.prefix}{quote(item_key, safe='')}"


class S3Storage:
    """
    S3-backed storage adapter, encrypted at rest using Fernet.

    Usage
    - Provide an S3 bucket, an optional key prefix and a Fernet key.
    - Each storage key maps to one object: `{prefix}{url-quoted key}`.
    - `get_item()` returns None when the object is missing, unreadable or
      cannot be decrypted; the cause is logged.
    - `set_item()` / `remove_item()` log and swallow S3 failures, so a
      flaky bucket never breaks a state commit.

    Environment variables (optional)
    - `USE_WALLET_STATE_BUCKET`: S3 bucket
    - `USE_WALLET_STATE_PREFIX`: key prefix (default "use-wallet/")
    - `USE_WALLET_FERNET_KEY`:   urlsafe base64-encoded key for Fernet
    """

    def __init__(
        self,
        *,
        s3: Optional[object] = None,
        bucket: str,
        prefix: str = DEFAULT_PREFIX,
        fernet_key: str | bytes,
        region_name: Optional[str] = None,
    ) -> None:
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._obj = S3ObjectRef(bucket=bucket, prefix=prefix)
        self._fernet = _to_fernet(fernet_key)

    # -------- Construction helpers --------
    @classmethod
    def from_env(cls) -> "S3Storage":
        bucket = os.environ.get(ENV_BUCKET)
        fkey = os.environ.get(ENV_FERNET_KEY)
        prefix = os.environ.get(ENV_PREFIX) or DEFAULT_PREFIX
        if not bucket or not fkey:
            missing = [name for name, val in [(ENV_BUCKET, bucket), (ENV_FERNET_KEY, fkey)] if not val]
            raise RuntimeError(
                f"Missing required environment variables for S3 storage: {', '.join(missing)}"
            )
        return cls(bucket=bucket, prefix=prefix, fernet_key=fkey)

    # -------- Storage adapter --------
    def get_item(self, key: str) -> Optional[str]:
        object_key = self._obj.key_for(key)
        try:
            resp = self._s3.get_object(Bucket=self._obj.bucket, Key=object_key)
            body = resp["Body"].read()
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None
            logger.error("Could not read s3://%s/%s: %s", self._obj.bucket, object_key, e)
            return None
        except BotoCoreError as e:
            logger.error("Could not read s3://%s/%s: %s", self._obj.bucket, object_key, e)
            return None

        try:
            return self._fernet.decrypt(body).decode("utf-8")
        except (InvalidToken, UnicodeDecodeError):
            logger.error("Could not decrypt s3://%s/%s", self._obj.bucket, object_key)
            return None

    def set_item(self, key: str, value: str) -> None:
        object_key = self._obj.key_for(key)
        ciphertext = self._fernet.encrypt(value.encode("utf-8"))
        try:
            self._s3.put_object(
                Bucket=self._obj.bucket,
                Key=object_key,
                Body=ciphertext,
                ContentType="application/octet-stream",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Could not write s3://%s/%s: %s", self._obj.bucket, object_key, e)

    def remove_item(self, key: str) -> None:
        object_key = self._obj.key_for(key)
        try:
            self._s3.delete_object(Bucket=self._obj.bucket, Key=object_key)
        except (ClientError, BotoCoreError) as e:
            logger.error("Could not delete s3://%s/%s: %s", self._obj.bucket, object_key, e)
