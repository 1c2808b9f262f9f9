# exam_service/services/storage.py
"""
File storage for uploaded answer sheets.

Two backends: local disk (default, also used in tests) and S3. Both hand back an
opaque path string that the OCR step later downloads again.
"""
import logging
import os
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from exam_service.core.config import settings
from exam_service.core.exceptions import FileValidationError, StorageError

logger = logging.getLogger(__name__)

_S3_PREFIX = "s3://"


def validate_extension(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lower()
    if ext not in settings.ALLOWED_UPLOAD_EXTENSIONS:
        raise FileValidationError(
            f"File type '{ext or filename}' is not allowed. "
            f"Allowed types: {', '.join(settings.ALLOWED_UPLOAD_EXTENSIONS)}"
        )
    return ext


def build_unique_name(exam_id: str, student_id: str, ext: str) -> str:
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{exam_id}_{student_id}_{timestamp}_{uuid.uuid4().hex}{ext}"


class FileStorage(ABC):
    @abstractmethod
    def save(self, content: bytes, filename: str, exam_id: str, student_id: str) -> str:
        """Persist an uploaded file and return its path or URL."""

    @abstractmethod
    def download(self, path: str) -> bytes: ...

    @abstractmethod
    def delete(self, path: str) -> bool: ...


class LocalFileStorage(FileStorage):
    def __init__(self, root: str | None = None):
        self.root = Path(root or settings.UPLOAD_DIR)

    def save(self, content: bytes, filename: str, exam_id: str, student_id: str) -> str:
        ext = validate_extension(filename)
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.root / build_unique_name(exam_id, student_id, ext)
        try:
            target.write_bytes(content)
        except OSError as e:
            raise StorageError(f"Could not write {filename}: {e}") from e
        logger.info(f"Stored upload {filename} as {target}")
        return str(target)

    def download(self, path: str) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def delete(self, path: str) -> bool:
        target = Path(path)
        if not target.exists():
            return False
        try:
            target.unlink()
        except OSError as e:
            raise StorageError(f"Could not delete {path}: {e}") from e
        return True


class S3FileStorage(FileStorage):
    def __init__(self, bucket: str | None = None, client=None):
        self.bucket = bucket or settings.S3_BUCKET_NAME
        if not self.bucket:
            raise StorageError("S3_BUCKET_NAME is not configured")
        self.client = client or boto3.client(
            "s3",
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )

    def _key(self, path: str) -> str:
        prefix = f"{_S3_PREFIX}{self.bucket}/"
        return path[len(prefix):] if path.startswith(prefix) else path

    def save(self, content: bytes, filename: str, exam_id: str, student_id: str) -> str:
        ext = validate_extension(filename)
        key = f"written-answers/{exam_id}/{build_unique_name(exam_id, student_id, ext)}"
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=content)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 upload failed for {filename}: {e}") from e
        logger.info(f"Uploaded {filename} to s3://{self.bucket}/{key}")
        return f"{_S3_PREFIX}{self.bucket}/{key}"

    def download(self, path: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(path))
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 download failed for {path}: {e}") from e

    def delete(self, path: str) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(path))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 delete failed for {path}: {e}") from e
        return True


_storage_instance: FileStorage | None = None


def get_file_storage() -> FileStorage:
    global _storage_instance
    if _storage_instance is None:
        if settings.STORAGE_BACKEND == "s3":
            _storage_instance = S3FileStorage()
        else:
            _storage_instance = LocalFileStorage()
    return _storage_instance
