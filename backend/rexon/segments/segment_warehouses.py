from __future__ import annotations

import json

from flask import Blueprint, current_app, jsonify, request, send_from_directory

from rexon.integrations.storage.factory import build_storage_provider
from rexon.models import Warehouse
from rexon.services.upload_service import (
    LISTING_IMAGE_RULE,
    LISTING_VIDEO_RULE,
    UploadBatchError,
    UploadValidationError,
    stage_files,
)
from rexon.services.warehouse_service import (
    ListingValidationError,
    create_warehouse,
    media_for,
    owner_warehouses,
    parse_listing_form,
    update_warehouse,
)
from rexon.utils.api import error_response, session_user_id, unauthorized

warehouses_bp = Blueprint("warehouses_bp", __name__, url_prefix="/api")


def _with_media(warehouse: Warehouse) -> dict:
    images, videos = media_for(warehouse.id)
    item = warehouse.to_dict()
    item["images"] = [u.to_dict() for u in images]
    item["videos"] = [u.to_dict() for u in videos]
    return item


def _owned_warehouse(warehouse_id: int, user_id: int) -> Warehouse | None:
    return Warehouse.query.filter_by(id=int(warehouse_id), user_id=int(user_id)).first()


def _upload_failed_response(err: UploadBatchError):
    return error_response(
        "File upload failed. Please try again.",
        502,
        manifest=[m.to_dict() for m in err.manifest],
    )


def _parse_deleted_ids(raw) -> list[int]:
    if not raw:
        return []
    try:
        decoded = json.loads(raw)
    except ValueError:
        raise ListingValidationError("deletedImageIds must be a JSON array of ids") from None
    if not isinstance(decoded, list):
        raise ListingValidationError("deletedImageIds must be a JSON array of ids")
    try:
        return [int(v) for v in decoded]
    except (TypeError, ValueError):
        raise ListingValidationError("deletedImageIds must be a JSON array of ids") from None


@warehouses_bp.post("/upload")
def create_listing():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized("Unauthorized. Please sign in.")

    try:
        fields = parse_listing_form(request.form)
        images = stage_files(request.files.getlist("images"), LISTING_IMAGE_RULE)
    except (ListingValidationError, UploadValidationError) as e:
        return error_response(str(e), 400)
    if not images:
        return error_response("At least one property image is required", 400)

    try:
        warehouse, manifest = create_warehouse(build_storage_provider(), user_id=user_id, fields=fields, images=images)
    except UploadBatchError as e:
        current_app.logger.warning("listing_create_upload_failed user_id=%s", user_id)
        return _upload_failed_response(e)

    images_out, _videos = media_for(warehouse.id)
    return jsonify(
        {
            "success": True,
            "message": "Property listed successfully",
            "propertyId": warehouse.id,
            "warehouse": warehouse.to_dict(),
            "images": [u.to_dict() for u in images_out],
            "manifest": [m.to_dict() for m in manifest],
        }
    ), 201


@warehouses_bp.get("/upload")
def my_properties():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()
    items = [_with_media(w) for w in owner_warehouses(user_id)]
    return jsonify({"success": True, "count": len(items), "properties": items})


@warehouses_bp.get("/listings")
def my_listings():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()
    items = [w.to_dict() for w in owner_warehouses(user_id)]
    resp = jsonify({"success": True, "count": len(items), "listings": items})
    resp.headers["Cache-Control"] = "no-store, must-revalidate"
    return resp


@warehouses_bp.get("/properties/<int:warehouse_id>")
def get_property(warehouse_id: int):
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()
    warehouse = _owned_warehouse(warehouse_id, user_id)
    if not warehouse:
        return error_response("Property not found or access denied", 404)
    return jsonify({"success": True, "property": _with_media(warehouse)})


@warehouses_bp.patch("/properties/<int:warehouse_id>")
def update_property(warehouse_id: int):
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()
    warehouse = _owned_warehouse(warehouse_id, user_id)
    if not warehouse:
        return error_response("Property not found or access denied", 404)

    try:
        fields = parse_listing_form(request.form)
        deleted_ids = _parse_deleted_ids(request.form.get("deletedImageIds"))
        new_images = stage_files(request.files.getlist("newImages"), LISTING_IMAGE_RULE)
        new_videos = stage_files(request.files.getlist("newVideos"), LISTING_VIDEO_RULE)
    except (ListingValidationError, UploadValidationError) as e:
        return error_response(str(e), 400)

    try:
        manifest = update_warehouse(
            build_storage_provider(),
            warehouse,
            fields=fields,
            deleted_ids=deleted_ids,
            new_images=new_images,
            new_videos=new_videos,
        )
    except UploadBatchError as e:
        current_app.logger.warning("listing_update_upload_failed warehouse_id=%s", warehouse_id)
        return _upload_failed_response(e)

    return jsonify(
        {
            "success": True,
            "message": "Property updated successfully",
            "property": _with_media(warehouse),
            "manifest": [m.to_dict() for m in manifest],
        }
    )


@warehouses_bp.get("/uploads/<path:filename>")
def get_uploaded_file(filename):
    return send_from_directory(current_app.config["UPLOAD_DIR"], filename)
