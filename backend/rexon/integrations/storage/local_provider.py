from __future__ import annotations

import os
from datetime import datetime

from rexon.integrations.storage.base import StorageError, StorageProvider, StoredObject


class LocalStorageProvider(StorageProvider):
    """Keeps objects on disk under ``root``; they are served at ``/api/uploads/<key>``."""

    name = "local"

    def __init__(self, *, root: str, base_url: str = ""):
        self.root = os.path.abspath(root)
        self.base_url = (base_url or "").rstrip("/")
        os.makedirs(self.root, exist_ok=True)

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root, key))
        if not path.startswith(self.root + os.sep):
            raise StorageError(f"invalid object key: {key}")
        return path

    def put_object(self, *, key: str, data: bytes, content_type: str, metadata: dict | None = None, public: bool = False) -> str:
        path = self._path(key)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as fh:
                fh.write(data)
        except OSError as e:
            raise StorageError(f"local write failed for {key}: {e}") from e
        return self.public_url(key)

    def delete_object(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(f"local delete failed for {key}: {e}") from e

    def list_objects(self, prefix: str, *, max_keys: int = 50) -> list[StoredObject]:
        base = self._path(prefix.rstrip("/") + "/x")
        directory = os.path.dirname(base)
        if not os.path.isdir(directory):
            return []
        items: list[StoredObject] = []
        for dirpath, _dirnames, filenames in os.walk(directory):
            for filename in sorted(filenames):
                full = os.path.join(dirpath, filename)
                key = os.path.relpath(full, self.root).replace(os.sep, "/")
                stat = os.stat(full)
                items.append(
                    StoredObject(
                        key=key,
                        url=self.public_url(key),
                        size=int(stat.st_size),
                        last_modified=datetime.utcfromtimestamp(stat.st_mtime).isoformat(),
                    )
                )
                if len(items) >= max_keys:
                    return items
        return items

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/api/uploads/{key}"
