from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from rexon.services.cities_service import CitiesUnavailable, all_cities, search_cities

cities_bp = Blueprint("cities_bp", __name__, url_prefix="/api/cities")


@cities_bp.get("")
def list_cities():
    query = (request.args.get("search") or "").strip()
    try:
        items = search_cities(query) if query else all_cities()
    except CitiesUnavailable as e:
        current_app.logger.warning("cities_unavailable search=%s err=%s", bool(query), e)
        return jsonify(
            {
                "error": "Failed to load cities",
                "message": str(e) or "Unknown error occurred",
                "timestamp": datetime.utcnow().isoformat(),
            }
        ), 500
    return jsonify(items)
