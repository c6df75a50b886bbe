from __future__ import annotations

import json
import logging
import os
import threading
import time
from typing import Any

import redis

logger = logging.getLogger(__name__)

_LOCK = threading.Lock()
_CLIENT = None
_CLIENT_INIT_ATTEMPTED = False
# key -> (expires_at, value); used when Redis is not configured
_MEMORY: dict[str, tuple[float, Any]] = {}

_STATS = {
    "hits": 0,
    "misses": 0,
    "sets": 0,
    "errors": 0,
}


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in ("1", "true", "yes", "on")


def cache_enabled(default: bool = False) -> bool:
    return _env_bool("ENABLE_CACHE", default)


def _cache_redis_url() -> str:
    return (os.getenv("CACHE_REDIS_URL") or os.getenv("REDIS_URL") or "").strip()


def _bump_stat(name: str, delta: int = 1) -> None:
    with _LOCK:
        _STATS[name] = int(_STATS.get(name, 0) or 0) + int(delta)


def _get_client():
    global _CLIENT, _CLIENT_INIT_ATTEMPTED
    if not cache_enabled(False):
        return None
    with _LOCK:
        if _CLIENT_INIT_ATTEMPTED:
            return _CLIENT
        _CLIENT_INIT_ATTEMPTED = True
    url = _cache_redis_url()
    if not url:
        return None
    try:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=0.75,
            socket_connect_timeout=0.75,
            health_check_interval=30,
        )
        client.ping()
    except redis.RedisError as e:
        logger.warning("cache_redis_unavailable err=%s", e)
        _bump_stat("errors")
        return None
    with _LOCK:
        _CLIENT = client
    return client


def get_json(key: str) -> Any:
    client = _get_client()
    if client is not None:
        try:
            raw = client.get(str(key))
        except redis.RedisError as e:
            logger.warning("cache_get_failed key=%s err=%s", key, e)
            _bump_stat("errors")
            raw = None
        if raw:
            _bump_stat("hits")
            return json.loads(raw)
        _bump_stat("misses")
        return None

    with _LOCK:
        entry = _MEMORY.get(str(key))
    if entry is None:
        _bump_stat("misses")
        return None
    expires_at, value = entry
    if expires_at < time.time():
        _bump_stat("misses")
        return None
    _bump_stat("hits")
    return value


def set_json(key: str, value: Any, ttl_seconds: int) -> bool:
    ttl = max(1, int(ttl_seconds))
    client = _get_client()
    if client is not None:
        try:
            client.setex(str(key), ttl, json.dumps(value, separators=(",", ":"), default=str))
        except redis.RedisError as e:
            logger.warning("cache_set_failed key=%s err=%s", key, e)
            _bump_stat("errors")
            return False
        _bump_stat("sets")
        return True
    with _LOCK:
        _MEMORY[str(key)] = (time.time() + ttl, value)
    _bump_stat("sets")
    return True


def cache_stats() -> dict:
    client = _get_client()
    with _LOCK:
        return {
            "backend": "redis" if client is not None else "memory",
            "url_configured": bool(_cache_redis_url()),
            **_STATS,
        }


def _reset_cache_state_for_tests() -> None:
    global _CLIENT, _CLIENT_INIT_ATTEMPTED
    with _LOCK:
        _CLIENT = None
        _CLIENT_INIT_ATTEMPTED = False
        _MEMORY.clear()
        for key in _STATS:
            _STATS[key] = 0
