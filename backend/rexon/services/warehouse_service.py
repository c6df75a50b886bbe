"""Owner-side listing writes: create, edit, and media bookkeeping."""
from __future__ import annotations

import json
import logging

from sqlalchemy import func

from rexon.extensions import db
from rexon.integrations.storage.base import StorageProvider
from rexon.models import Upload, Warehouse
from rexon.services.upload_service import ManifestEntry, StagedFile, assign_keys, discard_uploaded, upload_all
from rexon.utils.json_fields import dump_json_list, parse_amenities
from rexon.utils.validators import (
    is_valid_pincode,
    normalize_price_type,
    normalize_property_type,
    normalize_road_connectivity,
    parse_finite_float,
)

logger = logging.getLogger(__name__)

REQUIRED_LISTING_FIELDS = (
    "title",
    "propertyType",
    "totalArea",
    "availableFrom",
    "listingType",
    "pricePerSqFt",
    "address",
    "city",
    "state",
)


class ListingValidationError(ValueError):
    pass


def _text(form, name: str) -> str:
    return (form.get(name) or "").strip()


def parse_listing_form(form) -> dict:
    """Validate listing fields from a multipart form and map them to column values."""
    if any(not _text(form, name) for name in REQUIRED_LISTING_FIELDS):
        raise ListingValidationError(
            "Please fill in all required fields: title, property type, total area, available from, "
            "listing type, price per sq.ft, address, city, and state"
        )

    total_area = parse_finite_float(form.get("totalArea"))
    if total_area is None or total_area <= 0:
        raise ListingValidationError("Total area must be a positive number")
    price_per_sqft = parse_finite_float(form.get("pricePerSqFt"))
    if price_per_sqft is None or price_per_sqft < 0:
        raise ListingValidationError("Price per sq.ft must be a non-negative number")
    total_price = None
    if _text(form, "totalPrice"):
        total_price = parse_finite_float(form.get("totalPrice"))
        if total_price is None:
            raise ListingValidationError("Total price must be a number")

    pincode = _text(form, "pincode") or None
    if pincode and not is_valid_pincode(pincode):
        raise ListingValidationError("Pincode must be 6 digits")

    latitude = longitude = None
    if _text(form, "latitude") or _text(form, "longitude"):
        latitude = parse_finite_float(form.get("latitude"))
        longitude = parse_finite_float(form.get("longitude"))
        if latitude is None or longitude is None or not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
            raise ListingValidationError("Invalid coordinate values")

    raw_amenities = form.get("amenities")
    if raw_amenities:
        try:
            decoded = json.loads(raw_amenities)
        except ValueError:
            raise ListingValidationError("Amenities must be a JSON array") from None
        if not isinstance(decoded, list):
            raise ListingValidationError("Amenities must be a JSON array")

    title = _text(form, "title")
    return {
        "property_name": title,
        "title": title,
        "description": _text(form, "description") or None,
        "property_type": normalize_property_type(form.get("propertyType")),
        "space_available": total_area,
        "space_unit": _text(form, "sizeUnit") or "sqft",
        "warehouse_size": total_area,
        "available_from": _text(form, "availableFrom"),
        "price_type": normalize_price_type(form.get("listingType")),
        "price_per_sqft": price_per_sqft,
        "total_price": total_price,
        "address": _text(form, "address"),
        "city": _text(form, "city"),
        "state": _text(form, "state"),
        "pincode": pincode,
        "road_connectivity": normalize_road_connectivity(form.get("roadConnectivity")),
        "contact_person_name": _text(form, "contactPersonName") or None,
        "contact_person_phone": _text(form, "contactPersonPhone") or None,
        "contact_person_email": _text(form, "contactPersonEmail") or None,
        "contact_person_designation": _text(form, "contactPersonDesignation") or None,
        "latitude": latitude,
        "longitude": longitude,
        "amenities": dump_json_list(parse_amenities(raw_amenities)),
    }


def _media_rows(warehouse: Warehouse, staged: list[StagedFile], manifest: list[ManifestEntry], *, start_order: int, primary_first: bool) -> list[Upload]:
    by_key = {entry.key: entry for entry in manifest}
    rows = []
    for offset, item in enumerate(staged):
        rows.append(
            Upload(
                user_id=warehouse.user_id,
                warehouse_id=warehouse.id,
                image_order=start_order + offset,
                is_primary=primary_first and offset == 0,
                file_name=item.file_name,
                file_type=item.content_type,
                file_size=item.size,
                storage_key=item.key,
                url=by_key[item.key].url,
                status="Active",
            )
        )
    return rows


def next_media_order(warehouse_id: int, type_prefix: str) -> int:
    current = (
        db.session.query(func.max(Upload.image_order))
        .filter(
            Upload.warehouse_id == int(warehouse_id),
            Upload.status == "Active",
            Upload.file_type.like(f"{type_prefix}/%"),
        )
        .scalar()
    )
    return 0 if current is None else int(current) + 1


def create_warehouse(provider: StorageProvider, *, user_id: int, fields: dict, images: list[StagedFile]) -> tuple[Warehouse, list[ManifestEntry]]:
    """Insert a Pending listing with its images.

    The row is flushed to obtain its id (needed for object keys), files are
    uploaded, and only then is everything committed. Any failure rolls back
    the row and removes stored objects.
    """
    warehouse = Warehouse(user_id=user_id, status="Pending", is_verified=False, is_featured=False, **fields)
    manifest: list[ManifestEntry] = []
    try:
        db.session.add(warehouse)
        db.session.flush()
        assign_keys(images, f"{user_id}/warehouses/{warehouse.id}/images")
        manifest = upload_all(provider, images, metadata={"user-id": str(user_id), "warehouse-id": str(warehouse.id)})
        db.session.add_all(_media_rows(warehouse, images, manifest, start_order=0, primary_first=True))
        db.session.commit()
    except Exception:
        db.session.rollback()
        discard_uploaded(provider, manifest)
        raise
    logger.info("warehouse_created user_id=%s warehouse_id=%s images=%s", user_id, warehouse.id, len(images))
    return warehouse, manifest


def update_warehouse(
    provider: StorageProvider,
    warehouse: Warehouse,
    *,
    fields: dict,
    deleted_ids: list[int],
    new_images: list[StagedFile],
    new_videos: list[StagedFile],
) -> list[ManifestEntry]:
    """Apply an owner edit. The listing goes back to Pending for review."""
    manifest: list[ManifestEntry] = []
    try:
        for key, value in fields.items():
            setattr(warehouse, key, value)
        warehouse.status = "Pending"
        warehouse.is_verified = False

        if deleted_ids:
            Upload.query.filter(
                Upload.warehouse_id == warehouse.id,
                Upload.id.in_(deleted_ids),
            ).update({"status": "Deleted"}, synchronize_session=False)
        db.session.flush()

        batches = [(new_images, "image"), (new_videos, "video")]
        for batch, kind in batches:
            if not batch:
                continue
            start = next_media_order(warehouse.id, kind)
            has_primary = (
                kind == "image"
                and Upload.query.filter_by(warehouse_id=warehouse.id, status="Active", is_primary=True).first() is not None
            )
            assign_keys(batch, f"{warehouse.user_id}/warehouses/{warehouse.id}/{kind}s")
            uploaded = upload_all(provider, batch, metadata={"warehouse-id": str(warehouse.id)})
            manifest.extend(uploaded)
            db.session.add_all(
                _media_rows(warehouse, batch, uploaded, start_order=start, primary_first=(kind == "image" and not has_primary))
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        discard_uploaded(provider, manifest)
        raise
    logger.info(
        "warehouse_updated warehouse_id=%s deleted=%s new_images=%s new_videos=%s",
        warehouse.id,
        len(deleted_ids),
        len(new_images),
        len(new_videos),
    )
    return manifest


def media_for(warehouse_id: int) -> tuple[list[Upload], list[Upload]]:
    rows = (
        Upload.query.filter_by(warehouse_id=int(warehouse_id), status="Active")
        .order_by(Upload.is_primary.desc(), Upload.image_order.asc())
        .all()
    )
    return [r for r in rows if r.is_image], [r for r in rows if r.is_video]


def owner_warehouses(user_id: int) -> list[Warehouse]:
    return (
        Warehouse.query.filter_by(user_id=int(user_id))
        .order_by(Warehouse.created_at.desc(), Warehouse.id.desc())
        .all()
    )
