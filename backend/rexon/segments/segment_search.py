from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from rexon.extensions import db
from rexon.services.search_service import (
    SearchValidationError,
    parse_bounds,
    parse_search_filters,
    search_warehouses,
    search_warehouses_in_bounds,
)
from rexon.utils.api import error_response

search_bp = Blueprint("search_bp", __name__, url_prefix="/api/warehouse")

_NO_STORE = "no-store, must-revalidate"


@search_bp.get("/search")
def search():
    try:
        filters = parse_search_filters(request.args)
    except SearchValidationError as e:
        return error_response(str(e), 400)

    try:
        properties = search_warehouses(filters)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("warehouse_search_failed")
        return error_response("Failed to search properties", 500)

    resp = jsonify(
        {
            "success": True,
            "count": len(properties),
            "properties": properties,
            "filters": filters.echo(),
        }
    )
    resp.headers["Cache-Control"] = _NO_STORE
    return resp


@search_bp.get("/search-by-bounds")
def search_by_bounds():
    try:
        bounds = parse_bounds(request.args)
    except SearchValidationError as e:
        return error_response(str(e), 400)

    try:
        properties = search_warehouses_in_bounds(bounds, request.args.get("type") or "")
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("warehouse_bounds_search_failed")
        return error_response("Failed to fetch properties", 500)

    resp = jsonify(
        {
            "success": True,
            "count": len(properties),
            "properties": properties,
            "bounds": bounds.to_dict(),
        }
    )
    resp.headers["Cache-Control"] = _NO_STORE
    return resp
