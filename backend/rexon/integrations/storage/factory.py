from __future__ import annotations

from flask import current_app

from rexon.integrations.common import IntegrationMisconfiguredError
from rexon.integrations.storage.base import StorageProvider
from rexon.integrations.storage.local_provider import LocalStorageProvider


def build_storage_provider() -> StorageProvider:
    cfg = current_app.config
    backend = (cfg.get("STORAGE_BACKEND") or "local").strip().lower()
    if backend == "local":
        return LocalStorageProvider(root=cfg["UPLOAD_DIR"], base_url=cfg.get("PUBLIC_URL") or "")
    if backend == "s3":
        from rexon.integrations.storage.s3_provider import S3StorageProvider

        bucket = (cfg.get("S3_BUCKET_NAME") or "").strip()
        region = (cfg.get("AWS_REGION") or "").strip()
        if not bucket or not region:
            raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing S3_BUCKET_NAME or AWS_REGION")
        return S3StorageProvider(bucket=bucket, region=region)
    raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:unknown STORAGE_BACKEND {backend}")


def storage_health() -> dict:
    cfg = current_app.config
    backend = (cfg.get("STORAGE_BACKEND") or "local").strip().lower()
    missing = []
    if backend == "s3":
        for key in ("S3_BUCKET_NAME", "AWS_REGION"):
            if not (cfg.get(key) or "").strip():
                missing.append(key)
    return {"backend": backend, "status": "misconfigured" if missing else "configured", "missing": missing}
