from __future__ import annotations

import logging
import time

import requests

from rexon.utils.cache_layer import get_json, set_json

logger = logging.getLogger(__name__)

CITIES_API_URL = "https://indian-cities.vercel.app/api/cities"
CITIES_CACHE_KEY = "v1:cities:all"
CITIES_FRESH_SECONDS = 24 * 60 * 60
# Entries outlive freshness so an upstream outage can fall back to them.
CITIES_RETAIN_SECONDS = 7 * 24 * 60 * 60


class CitiesUnavailable(RuntimeError):
    pass


def _fetch(search: str | None = None) -> list[dict]:
    params = {"search": search} if search else None
    try:
        r = requests.get(CITIES_API_URL, params=params, headers={"Accept": "application/json"}, timeout=10)
    except requests.RequestException as e:
        raise CitiesUnavailable(str(e)[:200]) from e
    if r.status_code != 200:
        raise CitiesUnavailable(f"API request failed with status {r.status_code}")
    try:
        data = r.json()
    except ValueError as e:
        raise CitiesUnavailable("Invalid data format received from API") from e
    if not isinstance(data, list):
        raise CitiesUnavailable("Invalid data format received from API")
    return [
        {
            "id": f"{item.get('name')}-{item.get('state')}-{index}",
            "city": item.get("name"),
            "stateCode": item.get("state"),
            "latitude": item.get("latitude"),
            "longitude": item.get("longitude"),
        }
        for index, item in enumerate(data)
        if isinstance(item, dict)
    ]


def search_cities(query: str) -> list[dict]:
    return _fetch(query.strip())


def all_cities() -> list[dict]:
    """Full city list, refreshed at most once a day; stale data is served if the upstream fails."""
    cached = get_json(CITIES_CACHE_KEY)
    if cached and time.time() - float(cached.get("fetched_at") or 0) < CITIES_FRESH_SECONDS:
        return cached.get("items") or []
    try:
        items = _fetch()
    except CitiesUnavailable as e:
        if cached and cached.get("items"):
            logger.warning("cities_upstream_failed serving_stale count=%s err=%s", len(cached["items"]), e)
            return cached["items"]
        raise
    set_json(CITIES_CACHE_KEY, {"fetched_at": time.time(), "items": items}, CITIES_RETAIN_SECONDS)
    logger.info("cities_cache_refreshed count=%s", len(items))
    return items
