"""Staged multi-file uploads.

Every file in a batch is read and validated before anything is written. The
batch is then pushed to object storage one file at a time, and each outcome
goes into a manifest. If any file fails, the objects that did land are
removed again and ``UploadBatchError`` carries the manifest back to the
caller, which is expected to roll back its database transaction.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from rexon.integrations.storage.base import StorageError, StorageProvider, build_object_key, file_extension

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass(frozen=True)
class FileRule:
    label: str
    allowed_types: frozenset
    max_bytes: int

    @property
    def max_mb(self) -> int:
        return self.max_bytes // MB


LISTING_IMAGE_RULE = FileRule(
    "Image",
    frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}),
    50 * MB,
)
LISTING_VIDEO_RULE = FileRule(
    "Video",
    frozenset({"video/mp4", "video/webm", "video/quicktime"}),
    200 * MB,
)
PROFILE_IMAGE_RULE = FileRule(
    "Profile image",
    frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"}),
    2 * MB,
)
KYC_DOCUMENT_RULE = FileRule(
    "KYC document",
    frozenset({"application/pdf", "image/jpeg", "image/jpg", "image/png"}),
    5 * MB,
)
BANNER_IMAGE_RULE = FileRule(
    "Banner image",
    frozenset({"image/jpeg", "image/jpg", "image/png", "image/webp"}),
    5 * MB,
)


class UploadValidationError(ValueError):
    def __init__(self, message: str, *, reason: str):
        super().__init__(message)
        self.reason = reason


class UploadBatchError(RuntimeError):
    def __init__(self, manifest: list["ManifestEntry"]):
        failed = [m.file_name for m in manifest if not m.ok]
        super().__init__(f"upload failed for: {', '.join(failed)}")
        self.manifest = manifest


@dataclass
class StagedFile:
    file_name: str
    content_type: str
    data: bytes
    key: str = ""

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return file_extension(self.file_name, default="bin")


@dataclass
class ManifestEntry:
    file_name: str
    key: str
    url: str = ""
    ok: bool = False
    error: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def stage_file(storage_file, rule: FileRule) -> StagedFile:
    """Read a werkzeug ``FileStorage`` into memory, enforcing ``rule``."""
    file_name = (storage_file.filename or "").strip() or "upload"
    content_type = (storage_file.mimetype or storage_file.content_type or "").split(";")[0].strip().lower()
    if content_type not in rule.allowed_types:
        raise UploadValidationError(f"{rule.label} '{file_name}' has an unsupported type ({content_type or 'unknown'})", reason="type")
    data = storage_file.read()
    if not data:
        raise UploadValidationError(f"{rule.label} '{file_name}' is empty", reason="empty")
    if len(data) > rule.max_bytes:
        raise UploadValidationError(f"{rule.label} '{file_name}' exceeds {rule.max_mb}MB", reason="size")
    return StagedFile(file_name=file_name, content_type=content_type, data=data)


def stage_files(storage_files, rule: FileRule) -> list[StagedFile]:
    return [stage_file(f, rule) for f in storage_files if f is not None and (f.filename or "").strip()]


def assign_keys(staged: list[StagedFile], prefix: str, *, stem: str = "") -> list[StagedFile]:
    for item in staged:
        item.key = build_object_key(prefix, item.extension, stem=stem)
    return staged


def upload_all(
    provider: StorageProvider,
    staged: list[StagedFile],
    *,
    metadata: dict | None = None,
    public: bool = False,
) -> list[ManifestEntry]:
    manifest: list[ManifestEntry] = []
    for item in staged:
        entry = ManifestEntry(file_name=item.file_name, key=item.key)
        try:
            entry.url = provider.put_object(
                key=item.key,
                data=item.data,
                content_type=item.content_type,
                metadata=metadata,
                public=public,
            )
            entry.ok = True
        except StorageError as e:
            logger.warning("upload_failed key=%s err=%s", item.key, e)
            entry.error = str(e)[:200]
        manifest.append(entry)

    if not all(entry.ok for entry in manifest):
        discard_uploaded(provider, manifest)
        raise UploadBatchError(manifest)
    return manifest


def discard_uploaded(provider: StorageProvider, manifest: list[ManifestEntry]) -> None:
    """Best-effort removal of objects a failed batch already stored."""
    for entry in manifest:
        if not entry.ok:
            continue
        try:
            provider.delete_object(entry.key)
        except StorageError as e:
            logger.error("upload_compensation_failed key=%s err=%s", entry.key, e)
