"""
Storage abstraction for guide uploads (S3-compatible) and in-memory testing.

Guides upload a profile picture, a verification document and itinerary
images. The API never serves them; it only removes them when a guide
account is deleted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from marketplace.errors import BackendError

GUIDE_FILE_COLUMNS = ("profile_picture_url", "document_url")
ITINERARY_FILE_COLUMNS = ("image_1_url", "image_2_url")


class StorageError(BackendError):
    """Object storage call failed."""


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def delete_objects(self, paths: Iterable[str]) -> int:
        ...


def object_path(url_or_path: Optional[str], bucket: str) -> Optional[str]:
    """
    Reduce a stored public URL to its object key.

    Public URLs look like ``.../storage/v1/object/public/<bucket>/<key>``;
    plain keys are returned unchanged.
    """
    if not url_or_path:
        return None
    path = urlparse(url_or_path).path if "://" in url_or_path else url_or_path
    marker = f"/{bucket}/"
    if marker in path:
        return path.split(marker, 1)[1]
    return path.lstrip("/") or None


def file_paths(rows: Iterable[dict], columns: Iterable[str], bucket: str) -> List[str]:
    columns = tuple(columns)
    paths = []
    for row in rows:
        for column in columns:
            path = object_path(row.get(column), bucket)
            if path:
                paths.append(path)
    return paths


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    bucket: str = "guide-uploads"
    stored_objects: dict = field(default_factory=dict)
    fail: bool = False

    def delete_objects(self, paths: Iterable[str]) -> int:
        if self.fail:
            raise StorageError("delete failed")
        removed = 0
        for path in paths:
            if self.stored_objects.pop(path, None) is not None:
                removed += 1
        return removed


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (the managed service exposes an S3 endpoint).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        # The storage gateway only understands path-style addressing.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def delete_objects(self, paths: Iterable[str]) -> int:
        keys = [{"Key": path} for path in paths]
        if not keys:
            return 0
        try:
            response = self._client.delete_objects(
                Bucket=self.bucket, Delete={"Objects": keys, "Quiet": False}
            )
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(type(exc).__name__) from exc
        if response.get("Errors"):
            raise StorageError(f"{len(response['Errors'])} objects not deleted")
        return len(response.get("Deleted", []))
