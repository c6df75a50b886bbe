from __future__ import annotations

import os
import secrets
import time
from dataclasses import dataclass


class StorageError(RuntimeError):
    pass


@dataclass
class StoredObject:
    key: str
    url: str
    size: int = 0
    last_modified: str | None = None


def build_object_key(prefix: str, extension: str, *, stem: str = "") -> str:
    """``{prefix}/{stem}{epoch_ms}-{32 hex}.{ext}``; the random tail keeps keys unique."""
    ext = (extension or "bin").strip(".").lower() or "bin"
    token = f"{int(time.time() * 1000)}-{secrets.token_hex(16)}"
    return f"{prefix.strip('/')}/{stem}{token}.{ext}"


def file_extension(filename: str | None, default: str = "bin") -> str:
    _, ext = os.path.splitext(filename or "")
    return ext.lstrip(".").lower() or default


class StorageProvider:
    name = "unknown"

    def put_object(self, *, key: str, data: bytes, content_type: str, metadata: dict | None = None, public: bool = False) -> str:
        raise NotImplementedError

    def delete_object(self, key: str) -> None:
        raise NotImplementedError

    def list_objects(self, prefix: str, *, max_keys: int = 50) -> list[StoredObject]:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        raise NotImplementedError
