from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import boto3
from botocore.exceptions import ClientError

from page_annotator.settings import get_settings


class StorageDriver(Protocol):
    def put_bytes(self, key: str, data: bytes, content_type: str | None = None) -> str:
        ...

    def get_bytes(self, key: str) -> bytes:
        ...

    def exists(self, key: str) -> bool:
        ...

    def delete(self, key: str) -> None:
        ...


@dataclass
class LocalStorageDriver:
    root: Path

    def ensure_root(self) -> None:
        self.root = self.root.resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _safe_join(self, key: str) -> Path:
        candidate = (self.root / key).resolve()
        if self.root not in candidate.parents and candidate != self.root:
            raise ValueError("Invalid storage key")
        return candidate

    def put_bytes(self, key: str, data: bytes, content_type: str | None = None) -> str:
        path = self._safe_join(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # write-then-rename so a reader never sees a half-written document
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(path)
        return key

    def get_bytes(self, key: str) -> bytes:
        return self._safe_join(key).read_bytes()

    def exists(self, key: str) -> bool:
        return self._safe_join(key).exists()

    def delete(self, key: str) -> None:
        self._safe_join(key).unlink(missing_ok=True)


@dataclass
class S3StorageDriver:
    bucket: str
    prefix: str | None
    client: boto3.client

    def _resolve_key(self, key: str) -> str:
        if self.prefix:
            clean_prefix = self.prefix.strip("/")
            return f"{clean_prefix}/{key}"
        return key

    def put_bytes(self, key: str, data: bytes, content_type: str | None = None) -> str:
        params = {
            "Bucket": self.bucket,
            "Key": self._resolve_key(key),
            "Body": data,
        }
        if content_type:
            params["ContentType"] = content_type
        self.client.put_object(**params)
        return key

    def get_bytes(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._resolve_key(key))
            return response["Body"].read()
        except ClientError as exc:
            if _is_not_found(exc):
                raise FileNotFoundError("Object not found") from exc
            raise

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._resolve_key(key))
            return True
        except ClientError as exc:
            if _is_not_found(exc):
                return False
            raise

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=self._resolve_key(key))


def _is_not_found(exc: ClientError) -> bool:
    error_code = exc.response.get("Error", {}).get("Code")
    if error_code in {"NoSuchKey", "404"}:
        return True
    return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode") == 404


def _build_s3_driver() -> S3StorageDriver:
    settings = get_settings()
    client = boto3.client(
        "s3",
        region_name=settings.ANNOTATOR_S3_REGION,
        endpoint_url=settings.ANNOTATOR_S3_ENDPOINT,
        aws_access_key_id=settings.ANNOTATOR_S3_ACCESS_KEY,
        aws_secret_access_key=settings.ANNOTATOR_S3_SECRET_KEY,
    )
    return S3StorageDriver(
        bucket=settings.ANNOTATOR_S3_BUCKET,
        prefix=settings.ANNOTATOR_S3_PREFIX,
        client=client,
    )


def _build_local_driver(root: str) -> LocalStorageDriver:
    driver = LocalStorageDriver(Path(root))
    driver.ensure_root()
    return driver


def get_storage() -> StorageDriver:
    settings = get_settings()
    if settings.ANNOTATOR_STORAGE_DRIVER.lower() == "s3":
        return _build_s3_driver()
    return _build_local_driver(settings.ANNOTATOR_STORAGE_LOCAL_DIR)


def get_draft_storage() -> StorageDriver:
    settings = get_settings()
    if settings.ANNOTATOR_DRAFT_DRIVER.lower() == "s3":
        return _build_s3_driver()
    return _build_local_driver(settings.ANNOTATOR_DRAFT_LOCAL_DIR)
