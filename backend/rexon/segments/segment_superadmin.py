from __future__ import annotations

from functools import wraps

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from rexon.extensions import db
from rexon.models import Agent, User, Warehouse
from rexon.services.admin_service import (
    AdminValidationError,
    dashboard_snapshot,
    delete_user,
    list_agents,
    list_users,
    list_warehouses,
    load_settings,
    save_settings,
    set_agent_status,
    set_user_role,
    set_warehouse_status,
)
from rexon.utils.api import error_response, unauthorized
from rexon.utils.session import get_session

superadmin_bp = Blueprint("superadmin_bp", __name__, url_prefix="/api/superadmin")


def superadmin_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        session = get_session()
        if not session or session.get("role") != "superadmin":
            return unauthorized()
        try:
            g.superadmin_id = int(session.get("userId"))
        except (TypeError, ValueError):
            return unauthorized()
        return fn(*args, **kwargs)

    return wrapper


def _failed(label: str, message: str, exc: Exception):
    db.session.rollback()
    current_app.logger.exception("superadmin_%s_failed err=%s", label, exc)
    return error_response(message, 500)


@superadmin_bp.get("/users")
@superadmin_required
def users_index():
    try:
        return jsonify({"success": True, "users": list_users()})
    except SQLAlchemyError as e:
        return _failed("users", "Failed to fetch users", e)


@superadmin_bp.patch("/users/<int:user_id>")
@superadmin_required
def users_update_role(user_id: int):
    user = db.session.get(User, user_id)
    if user is None:
        return error_response("User not found", 404)
    payload = request.get_json(silent=True) or {}
    try:
        set_user_role(user, payload.get("role"))
    except AdminValidationError as e:
        return error_response(str(e), 400)
    except SQLAlchemyError as e:
        return _failed("update_role", "Failed to update role", e)
    current_app.logger.info("superadmin_role_changed by=%s user_id=%s role=%s", g.superadmin_id, user_id, user.role)
    return jsonify({"success": True})


@superadmin_bp.delete("/users/<int:user_id>")
@superadmin_required
def users_delete(user_id: int):
    if user_id == g.superadmin_id:
        return error_response("Cannot delete your own account", 400)
    user = db.session.get(User, user_id)
    if user is None:
        return error_response("User not found", 404)
    try:
        delete_user(user)
    except SQLAlchemyError as e:
        return _failed("delete_user", "Failed to delete user", e)
    current_app.logger.info("superadmin_user_deleted by=%s user_id=%s", g.superadmin_id, user_id)
    return jsonify({"success": True})


@superadmin_bp.get("/agents")
@superadmin_required
def agents_index():
    try:
        return jsonify({"success": True, "agents": list_agents()})
    except SQLAlchemyError as e:
        return _failed("agents", "Failed to fetch agents", e)


@superadmin_bp.patch("/agents/<int:agent_id>/status")
@superadmin_required
def agents_update_status(agent_id: int):
    agent = db.session.get(Agent, agent_id)
    if agent is None:
        return error_response("Agent not found", 404)
    payload = request.get_json(silent=True) or {}
    try:
        status = set_agent_status(agent, payload.get("status"))
    except AdminValidationError as e:
        return error_response(str(e), 400)
    except SQLAlchemyError as e:
        return _failed("agent_status", "Failed to update status", e)
    current_app.logger.info("superadmin_agent_status by=%s agent_id=%s status=%s", g.superadmin_id, agent_id, status)
    return jsonify({"success": True, "status": status})


@superadmin_bp.get("/warehouses")
@superadmin_required
def warehouses_index():
    try:
        return jsonify({"success": True, "warehouses": list_warehouses()})
    except SQLAlchemyError as e:
        return _failed("warehouses", "Failed to fetch warehouses", e)


@superadmin_bp.patch("/warehouses/<int:warehouse_id>/status")
@superadmin_required
def warehouses_update_status(warehouse_id: int):
    warehouse = db.session.get(Warehouse, warehouse_id)
    if warehouse is None:
        return error_response("Warehouse not found", 404)
    payload = request.get_json(silent=True) or {}
    try:
        status = set_warehouse_status(warehouse, payload.get("status"))
    except AdminValidationError as e:
        return error_response(str(e), 400)
    except SQLAlchemyError as e:
        return _failed("warehouse_status", "Failed to update status", e)
    current_app.logger.info(
        "superadmin_warehouse_status by=%s warehouse_id=%s status=%s", g.superadmin_id, warehouse_id, status
    )
    return jsonify({"success": True, "status": status})


@superadmin_bp.get("/settings")
@superadmin_required
def settings_get():
    try:
        return jsonify({"success": True, "settings": load_settings()})
    except SQLAlchemyError as e:
        return _failed("settings_get", "Failed to fetch settings", e)


@superadmin_bp.post("/settings")
@superadmin_required
def settings_save():
    payload = request.get_json(silent=True)
    try:
        settings = save_settings(payload, updated_by=g.superadmin_id)
    except AdminValidationError as e:
        return error_response(str(e), 400)
    except SQLAlchemyError as e:
        return _failed("settings_save", "Failed to save settings", e)
    current_app.logger.info("superadmin_settings_saved by=%s keys=%s", g.superadmin_id, sorted(payload.keys()))
    return jsonify({"success": True, "settings": settings})


@superadmin_bp.get("/dashboard")
@superadmin_required
def dashboard():
    try:
        snapshot = dashboard_snapshot()
    except SQLAlchemyError as e:
        return _failed("dashboard", "Failed to fetch dashboard data", e)
    return jsonify({"success": True, **snapshot})
