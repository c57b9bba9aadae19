"""
Snapshot storage components for the Listing Watch system.

A snapshot store keeps exactly one value per key. ``get`` returns ``None``
for a key that was never written; every other failure raises
``StoreTransientError`` so callers never mistake an outage for a missing
baseline.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ..interfaces import ISnapshotStore
from ..models.config import StorageConfig
from ..utils.error_handling import ConfigError, StoreTransientError

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class S3SnapshotStore(ISnapshotStore):
    """Snapshot store backed by an S3 bucket."""

    def __init__(self, client, bucket: str, wait_timeout: int = 60):
        """
        Initialize S3 snapshot store.

        Args:
            client: boto3 S3 client
            bucket: Bucket holding the snapshots
            wait_timeout: Seconds to wait for a put to become visible
        """
        self.client = client
        self.bucket = bucket
        self.wait_timeout = wait_timeout

    def get(self, key: str) -> Optional[bytes]:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                logger.info(f"No object {key} in bucket {self.bucket}")
                return None
            raise StoreTransientError(
                f"Couldn't get object {self.bucket}:{key}: {e}", e
            )
        except BotoCoreError as e:
            raise StoreTransientError(
                f"Couldn't get object {self.bucket}:{key}: {e}", e
            )

        body = response["Body"]
        try:
            return body.read()
        except (BotoCoreError, OSError) as e:
            raise StoreTransientError(
                f"Couldn't read object body {self.bucket}:{key}: {e}", e
            )
        finally:
            body.close()

    def put(self, key: str, data: bytes) -> None:
        """Upload data and wait until the object is visible."""
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            raise StoreTransientError(
                f"Couldn't upload {key} to {self.bucket}: {e}", e
            )

        try:
            waiter = self.client.get_waiter("object_exists")
            waiter.wait(
                Bucket=self.bucket,
                Key=key,
                WaiterConfig={"Delay": 5, "MaxAttempts": max(1, self.wait_timeout // 5)},
            )
        except (WaiterError, ClientError, BotoCoreError) as e:
            raise StoreTransientError(
                f"Failed waiting for object {self.bucket}:{key} to exist: {e}", e
            )

        logger.info(f"Uploaded {key} to bucket {self.bucket}")

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return
            raise StoreTransientError(
                f"Couldn't delete object {self.bucket}:{key}: {e}", e
            )
        except BotoCoreError as e:
            raise StoreTransientError(
                f"Couldn't delete object {self.bucket}:{key}: {e}", e
            )


class LocalSnapshotStore(ISnapshotStore):
    """Snapshot store backed by files in a local directory."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        path = (self.directory / key).resolve()
        if self.directory.resolve() not in path.parents:
            raise StoreTransientError(f"Key escapes store directory: {key}")
        return path

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            logger.info(f"No snapshot {key} in {self.directory}")
            return None
        except OSError as e:
            raise StoreTransientError(f"Couldn't read snapshot {path}: {e}", e)

    def put(self, key: str, data: bytes) -> None:
        """Write data atomically via a temporary file in the same directory."""
        path = self._path(key)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "wb", dir=path.parent, prefix=f".{path.name}.", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise StoreTransientError(f"Couldn't write snapshot {path}: {e}", e)
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        logger.info(f"Stored snapshot {key} in {self.directory}")

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StoreTransientError(f"Couldn't delete snapshot {path}: {e}", e)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def create_snapshot_store(config: StorageConfig, session=None) -> ISnapshotStore:
    """
    Create the snapshot store described by config.

    Args:
        config: Storage configuration with a resolved bucket for S3
        session: Optional boto3 session

    Returns:
        Configured snapshot store

    Raises:
        ConfigError: If the configuration is incomplete
    """
    if config.type == "local":
        if not config.directory:
            raise ConfigError("Local storage requires 'directory'")
        return LocalSnapshotStore(config.directory)

    if config.type == "s3":
        if not config.bucket:
            raise ConfigError("S3 bucket name has not been resolved")
        session = session or boto3.session.Session(region_name=config.region)
        return S3SnapshotStore(
            session.client("s3"), config.bucket, wait_timeout=config.wait_timeout
        )

    raise ConfigError(f"Unsupported storage type: {config.type}")
