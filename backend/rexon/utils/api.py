from __future__ import annotations

from flask import current_app, g, jsonify, request

from rexon.utils.session import get_session


def error_response(message: str, status: int, **extra):
    payload = {"success": False, "error": message}
    payload.update(extra)
    rid = (getattr(g, "request_id", "") or "").strip()
    if rid:
        payload["trace_id"] = rid
    return jsonify(payload), status


def unauthorized(message: str = "Unauthorized"):
    return error_response(message, 401)


def session_user_id() -> int | None:
    session = get_session()
    if not session:
        return None
    try:
        return int(session.get("userId"))
    except (TypeError, ValueError):
        return None


def get_request_payload(label: str) -> dict:
    """Body fields from JSON or a form post, whichever the client sent."""
    data_json = request.get_json(silent=True)
    if isinstance(data_json, dict) and data_json:
        data = data_json
    else:
        data = request.form.to_dict() if request.form else {}
    current_app.logger.info(
        "%s_payload_keys content_type=%s keys=%s",
        label,
        request.content_type,
        sorted(data.keys()),
    )
    return data


def form_text(data: dict, name: str) -> str:
    value = data.get(name)
    if value is None:
        return ""
    return str(value).strip()
