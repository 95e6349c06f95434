from __future__ import annotations

import logging
import re
from pathlib import Path
from urllib.parse import quote

from pulse.config import upload_dir
from pulse.errors import BackendError, ConflictError, NotFoundError, ValidationError
from pulse.security import sign_file_path, verify_file_signature

logger = logging.getLogger(__name__)

INJURY_UPLOADS_BUCKET = "injury-uploads"
SIGNED_URL_TTL_SECONDS = 60 * 10
BUCKETS = (INJURY_UPLOADS_BUCKET,)


def safe_file_name(filename: str) -> str:
    name = Path(filename or "").name
    name = re.sub(r"[^\w.\-() ]+", "_", name)
    return name or "file"


class FileStorage:
    def __init__(self, root: Path) -> None:
        self.root = root

    def _resolve(self, bucket: str, path: str) -> Path:
        if bucket not in BUCKETS:
            raise NotFoundError("Unknown storage bucket")
        bucket_root = (self.root / bucket).resolve()
        target = (bucket_root / path).resolve()
        if bucket_root not in target.parents:
            raise ValidationError("Invalid file path")
        return target

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        target = self._resolve(bucket, path)
        if target.exists():
            raise ConflictError("A file already exists at that path")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.exception("upload to %s/%s failed", bucket, path)
            raise BackendError(f"Upload failed: {exc.strerror or exc}") from exc
        return path

    def read(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise NotFoundError("File not found")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise BackendError(f"Failed to read file: {exc.strerror or exc}") from exc

    def remove(self, bucket: str, path: str) -> None:
        target = self._resolve(bucket, path)
        try:
            target.unlink(missing_ok=True)
        except OSError:
            logger.warning("could not remove %s/%s", bucket, path)

    def signed_url(self, bucket: str, path: str, ttl_seconds: int = SIGNED_URL_TTL_SECONDS) -> str:
        self._resolve(bucket, path)
        expires, signature = sign_file_path(bucket, path, ttl_seconds)
        return f"/api/files/{bucket}/{quote(path)}?expires={expires}&signature={signature}"

    def verify(self, bucket: str, path: str, expires: int, signature: str) -> bool:
        return verify_file_signature(bucket, path, expires, signature)


def get_storage() -> FileStorage:
    return FileStorage(upload_dir())
