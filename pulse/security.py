from __future__ import annotations

import hashlib
import hmac
import time

import bcrypt

from pulse.config import file_url_secret


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def _file_signature(bucket: str, path: str, expires: int) -> str:
    message = f"{bucket}:{path}:{expires}".encode("utf-8")
    return hmac.new(file_url_secret().encode("utf-8"), message, hashlib.sha256).hexdigest()


def sign_file_path(bucket: str, path: str, ttl_seconds: int, now: float | None = None) -> tuple[int, str]:
    expires = int(now if now is not None else time.time()) + ttl_seconds
    return expires, _file_signature(bucket, path, expires)


def verify_file_signature(bucket: str, path: str, expires: int, signature: str, now: float | None = None) -> bool:
    if expires < int(now if now is not None else time.time()):
        return False
    return hmac.compare_digest(_file_signature(bucket, path, expires), signature)
