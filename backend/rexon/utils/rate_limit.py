from __future__ import annotations

import logging
import os
import threading
import time

import redis
from flask import request

logger = logging.getLogger(__name__)

_LOCK = threading.Lock()
_WINDOWS: dict[str, tuple[int, list[float]]] = {}
_LAST_SWEEP = 0.0
_SWEEP_MAX_INTERVAL_SECONDS = 60
_CLIENT = None
_CLIENT_INIT = False
_STATS = {
    "redis_hits": 0,
    "redis_errors": 0,
    "memory_hits": 0,
}


def check_limit(key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    """Count one hit against ``key``; return (allowed, retry_after_seconds)."""
    safe_window = max(1, int(window_seconds))
    safe_limit = max(1, int(limit))
    redis_client = _get_client()
    if redis_client is not None:
        now_sec = int(time.time())
        window_epoch = now_sec // safe_window
        counter_key = f"rl:v1:{key}:{window_epoch}"
        try:
            current = int(redis_client.incr(counter_key))
            if current == 1:
                redis_client.expire(counter_key, safe_window + 1)
            with _LOCK:
                _STATS["redis_hits"] += 1
            if current <= safe_limit:
                return True, 0
            return False, int(max(1, safe_window - (now_sec % safe_window)))
        except redis.RedisError as e:
            logger.warning("rate_limit_redis_error err=%s", e)
            with _LOCK:
                _STATS["redis_errors"] += 1
    return _check_limit_memory(key, limit=safe_limit, window_seconds=safe_window)


def _sweep_expired(now: float) -> None:
    """Drop keys whose newest hit is older than their window. Caller holds ``_LOCK``."""
    expired = [k for k, (span, bucket) in _WINDOWS.items() if not bucket or bucket[-1] < now - span]
    for k in expired:
        del _WINDOWS[k]


def _check_limit_memory(key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    global _LAST_SWEEP
    now = time.time()
    start = now - window_seconds
    with _LOCK:
        if now - _LAST_SWEEP >= min(window_seconds, _SWEEP_MAX_INTERVAL_SECONDS):
            _sweep_expired(now)
            _LAST_SWEEP = now
        _, previous = _WINDOWS.get(key, (window_seconds, []))
        bucket = [ts for ts in previous if ts >= start]
        if len(bucket) >= limit:
            _WINDOWS[key] = (window_seconds, bucket)
            _STATS["memory_hits"] += 1
            return False, int(max(1, window_seconds - (now - min(bucket))))
        bucket.append(now)
        _WINDOWS[key] = (window_seconds, bucket)
    return True, 0


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in ("1", "true", "yes", "on")


def rate_limit_enabled(default: bool = True) -> bool:
    return _env_bool("RATE_LIMIT_ENABLED", default)


def trust_proxy_headers(default: bool = False) -> bool:
    return _env_bool("TRUST_PROXY_HEADERS", default)


def _rate_limit_redis_url() -> str:
    return (os.getenv("RATE_LIMIT_REDIS_URL") or os.getenv("REDIS_URL") or "").strip()


def _get_client():
    global _CLIENT, _CLIENT_INIT
    with _LOCK:
        if _CLIENT_INIT:
            return _CLIENT
        _CLIENT_INIT = True
    url = _rate_limit_redis_url()
    if not url:
        return None
    try:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=0.75,
            socket_timeout=0.75,
            health_check_interval=30,
        )
        client.ping()
    except redis.RedisError as e:
        logger.warning("rate_limit_redis_unavailable err=%s", e)
        return None
    with _LOCK:
        _CLIENT = client
    return client


def resolve_client_ip(req, *, trusted_proxy: bool = True) -> str:
    if trusted_proxy:
        xff = (req.headers.get("X-Forwarded-For") or "").strip()
        if xff:
            first_hop = (xff.split(",")[0] or "").strip()
            if first_hop:
                return first_hop
        x_real_ip = (req.headers.get("X-Real-IP") or "").strip()
        if x_real_ip:
            return x_real_ip
    return (req.remote_addr or "").strip() or "unknown"


def build_rate_limit_subject(*, scope: str, user_id: int | None, request_obj=None) -> str:
    req = request_obj or request
    if (scope or "ip").strip().lower() == "user" and user_id is not None:
        return f"u:{int(user_id)}"
    return f"ip:{resolve_client_ip(req, trusted_proxy=trust_proxy_headers(False))}"


def limiter_stats() -> dict:
    with _LOCK:
        return {
            "enabled": bool(rate_limit_enabled(True)),
            "redis_configured": bool(_rate_limit_redis_url()),
            "redis_connected": _CLIENT is not None,
            "memory_keys": len(_WINDOWS),
            **_STATS,
        }


def _reset_limiter_state_for_tests() -> None:
    global _CLIENT, _CLIENT_INIT, _LAST_SWEEP
    with _LOCK:
        _CLIENT = None
        _CLIENT_INIT = False
        _WINDOWS.clear()
        _LAST_SWEEP = 0.0
        for key in _STATS:
            _STATS[key] = 0
