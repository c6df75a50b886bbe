from __future__ import annotations

import re
import time

from flask import Blueprint, current_app, jsonify, request

from rexon.integrations.storage.base import StorageError
from rexon.integrations.storage.factory import build_storage_provider
from rexon.services.upload_service import BANNER_IMAGE_RULE, UploadValidationError, stage_file
from rexon.utils.api import error_response, session_user_id, unauthorized

banners_bp = Blueprint("banners_bp", __name__, url_prefix="/api/banner-images")

BANNER_PREFIX = "banners"
BANNER_LIST_LIMIT = 50
BANNER_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_BANNER_REJECTIONS = {
    "type": "Invalid file type. Only JPEG, PNG, and WebP are allowed.",
    "empty": "No file provided",
    "size": f"File too large. Maximum size is {BANNER_IMAGE_RULE.max_mb}MB.",
}


def _user_prefix(user_id: int) -> str:
    return f"{BANNER_PREFIX}/{user_id}/"


@banners_bp.get("")
def list_banners():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized("Unauthorized. Please log in.")

    prefix = _user_prefix(user_id)
    try:
        objects = build_storage_provider().list_objects(prefix, max_keys=BANNER_LIST_LIMIT)
    except StorageError as e:
        current_app.logger.warning("banner_list_failed user_id=%s err=%s", user_id, e)
        return error_response("Failed to fetch banner images", 500)

    images = [
        obj.url
        for obj in objects
        if obj.key != prefix and obj.key.lower().endswith(BANNER_EXTENSIONS)
    ]
    return jsonify({"success": True, "images": images, "count": len(images), "prefix": prefix})


@banners_bp.post("")
def upload_banner():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized("Unauthorized. Please log in.")

    file = request.files.get("file")
    if file is None or not (file.filename or "").strip():
        return error_response("No file provided", 400)
    try:
        staged = stage_file(file, BANNER_IMAGE_RULE)
    except UploadValidationError as e:
        return error_response(_BANNER_REJECTIONS.get(e.reason, str(e)), 400)

    key = f"{_user_prefix(user_id)}{int(time.time() * 1000)}-{_UNSAFE_NAME_CHARS.sub('_', staged.file_name)}"
    try:
        url = build_storage_provider().put_object(
            key=key,
            data=staged.data,
            content_type=staged.content_type,
            metadata={"user-id": str(user_id)},
            public=True,
        )
    except StorageError as e:
        current_app.logger.warning("banner_upload_failed user_id=%s err=%s", user_id, e)
        return error_response("Failed to upload banner image", 502)

    current_app.logger.info("banner_uploaded user_id=%s key=%s", user_id, key)
    return jsonify(
        {
            "success": True,
            "message": "Banner image uploaded successfully",
            "imageUrl": url,
            "key": key,
            "userId": user_id,
        }
    ), 201
