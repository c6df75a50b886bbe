"""Public listing search.

Both entry points only ever return ``Active`` warehouses. Each result carries
its active images, fetched with one follow-up query per listing.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlalchemy import and_, func, literal, or_

from rexon.extensions import db
from rexon.models import Upload, Warehouse
from rexon.utils.states import resolve_state
from rexon.utils.validators import parse_finite_float

logger = logging.getLogger(__name__)

CITY_PREFIX_LENGTH = 7
LARGE_SIZE_BUCKET = 10000
BOUNDS_RESULT_LIMIT = 500
BOUNDS_PARAMS = ("ne_lat", "ne_lng", "sw_lat", "sw_lng")

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


class SearchValidationError(ValueError):
    pass


@dataclass
class SearchFilters:
    city: str = ""
    state: str = ""
    property_type: str = ""
    distance: int | None = None

    def echo(self) -> dict:
        return {
            "city": self.city or None,
            "state": self.state or None,
            "propertyType": self.property_type or None,
            "distance": str(self.distance) if self.distance is not None else None,
        }


@dataclass
class Bounds:
    ne_lat: float
    ne_lng: float
    sw_lat: float
    sw_lng: float

    def to_dict(self) -> dict:
        return {
            "ne": {"lat": self.ne_lat, "lng": self.ne_lng},
            "sw": {"lat": self.sw_lat, "lng": self.sw_lng},
        }


def parse_size_bucket(raw: str | None) -> int | None:
    """Leading integer of ``raw`` (``"5000sqft"`` -> 5000); blank means no filter."""
    if raw is None or not str(raw).strip():
        return None
    match = _LEADING_INT_RE.match(str(raw))
    if not match:
        raise SearchValidationError("Invalid distance value")
    return int(match.group(1))


def parse_search_filters(args) -> SearchFilters:
    return SearchFilters(
        city=(args.get("city") or "").strip(),
        state=(args.get("state") or "").strip(),
        property_type=(args.get("type") or "").strip(),
        distance=parse_size_bucket(args.get("distance")),
    )


def _normalized(column):
    return func.lower(func.trim(column))


def compile_search_filters(filters: SearchFilters) -> list:
    clauses = [Warehouse.status == "Active"]

    if filters.city.strip():
        # Fold both sides in SQL.
        stored = _normalized(Warehouse.city)
        wanted = _normalized(literal(filters.city))
        clauses.append(
            or_(
                stored == wanted,
                func.substr(stored, 1, CITY_PREFIX_LENGTH) == func.substr(wanted, 1, CITY_PREFIX_LENGTH),
            )
        )

    state = resolve_state(filters.state)
    if state:
        clauses.append(_normalized(Warehouse.state) == _normalized(literal(state)))

    if filters.property_type and filters.property_type != "all":
        clauses.append(Warehouse.property_type == filters.property_type)

    if filters.distance is not None:
        if filters.distance == LARGE_SIZE_BUCKET:
            clauses.append(Warehouse.warehouse_size >= LARGE_SIZE_BUCKET)
        else:
            clauses.append(Warehouse.warehouse_size <= filters.distance)

    return clauses


def active_images_for(warehouse_id: int) -> list[Upload]:
    return (
        Upload.query.filter(
            Upload.warehouse_id == int(warehouse_id),
            Upload.status == "Active",
            Upload.file_type.like("image/%"),
        )
        .order_by(Upload.is_primary.desc(), Upload.image_order.asc())
        .all()
    )


def serialize_with_images(warehouse: Warehouse) -> dict:
    item = warehouse.to_dict()
    item["images"] = [u.to_dict() for u in active_images_for(warehouse.id)]
    return item


def search_warehouses(filters: SearchFilters) -> list[dict]:
    rows = (
        Warehouse.query.filter(and_(*compile_search_filters(filters)))
        .order_by(Warehouse.is_featured.desc(), Warehouse.created_at.desc(), Warehouse.id.desc())
        .all()
    )
    logger.info(
        "warehouse_search city=%s state=%s type=%s distance=%s count=%s",
        filters.city or "-",
        filters.state or "-",
        filters.property_type or "-",
        filters.distance,
        len(rows),
    )
    return [serialize_with_images(w) for w in rows]


def parse_bounds(args) -> Bounds:
    raw = {name: args.get(name) for name in BOUNDS_PARAMS}
    if any(value is None or not str(value).strip() for value in raw.values()):
        raise SearchValidationError("Missing required bounds parameters")
    parsed = {name: parse_finite_float(value) for name, value in raw.items()}
    if any(value is None for value in parsed.values()):
        raise SearchValidationError("Invalid coordinate values")
    return Bounds(**parsed)


def search_warehouses_in_bounds(bounds: Bounds, property_type: str = "") -> list[dict]:
    lat_lo, lat_hi = sorted((bounds.sw_lat, bounds.ne_lat))
    clauses = [
        Warehouse.status == "Active",
        Warehouse.latitude.isnot(None),
        Warehouse.longitude.isnot(None),
        Warehouse.latitude.between(lat_lo, lat_hi),
    ]
    if bounds.sw_lng <= bounds.ne_lng:
        clauses.append(Warehouse.longitude.between(bounds.sw_lng, bounds.ne_lng))
    else:
        # Viewport spans the antimeridian.
        clauses.append(or_(Warehouse.longitude >= bounds.sw_lng, Warehouse.longitude <= bounds.ne_lng))

    kind = (property_type or "").strip()
    if kind and kind != "all":
        clauses.append(Warehouse.property_type == kind)

    rows = (
        db.session.query(Warehouse)
        .filter(and_(*clauses))
        .order_by(Warehouse.created_at.desc(), Warehouse.id.desc())
        .limit(BOUNDS_RESULT_LIMIT)
        .all()
    )
    return [serialize_with_images(w) for w in rows]
