from __future__ import annotations

import json
from datetime import datetime, timedelta

from sqlalchemy import func

from rexon.extensions import db
from rexon.models import (
    Agent,
    AgentDomain,
    Customer,
    DEFAULT_SYSTEM_SETTINGS,
    SystemSetting,
    Upload,
    User,
    USER_ROLES,
    Warehouse,
)

RECENT_ACTIVITY_LIMIT = 10

AGENT_STATUS_INPUTS = {
    "pending": "Pending",
    "approved": "Approved",
    "rejected": "Rejected",
}

WAREHOUSE_STATUS_INPUTS = {
    "pending": "Pending",
    "active": "Active",
    "approved": "Active",
    "rejected": "Rejected",
}


class AdminValidationError(ValueError):
    pass


def list_users() -> list[dict]:
    rows = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return [u.to_dict() for u in rows]


def set_user_role(user: User, role: str) -> None:
    role = (role or "").strip()
    if role not in USER_ROLES:
        raise AdminValidationError("Invalid role")
    user.role = role
    db.session.commit()


def delete_user(user: User) -> None:
    """Remove a user and everything they own.

    Dependent rows are deleted explicitly so the result does not rely on the
    database enforcing ON DELETE CASCADE (SQLite does not by default).
    """
    uid = int(user.id)
    agent_ids = [row.id for row in Agent.query.with_entities(Agent.id).filter(Agent.user_id == uid)]
    warehouse_ids = [row.id for row in Warehouse.query.with_entities(Warehouse.id).filter(Warehouse.user_id == uid)]

    if warehouse_ids:
        Upload.query.filter(Upload.warehouse_id.in_(warehouse_ids)).delete(synchronize_session=False)
    Upload.query.filter(Upload.user_id == uid).delete(synchronize_session=False)
    Warehouse.query.filter(Warehouse.user_id == uid).delete(synchronize_session=False)
    if agent_ids:
        AgentDomain.query.filter(AgentDomain.agent_id.in_(agent_ids)).delete(synchronize_session=False)
    Agent.query.filter(Agent.user_id == uid).delete(synchronize_session=False)
    Customer.query.filter(Customer.user_id == uid).delete(synchronize_session=False)
    SystemSetting.query.filter(SystemSetting.updated_by == uid).update(
        {SystemSetting.updated_by: None}, synchronize_session=False
    )
    db.session.delete(user)
    db.session.commit()


def list_agents() -> list[dict]:
    rows = Agent.query.order_by(Agent.created_at.desc(), Agent.id.desc()).all()
    return [a.to_dict() for a in rows]


def set_agent_status(agent: Agent, raw_status: str) -> str:
    status = AGENT_STATUS_INPUTS.get((raw_status or "").strip().lower())
    if status is None:
        raise AdminValidationError("Invalid status")
    agent.status = status
    agent.is_verified = status == "Approved"
    agent.updated_at = datetime.utcnow()
    db.session.commit()
    return status


def list_warehouses() -> list[dict]:
    images_count = (
        db.session.query(Upload.warehouse_id, func.count(Upload.id).label("n"))
        .group_by(Upload.warehouse_id)
        .subquery()
    )
    rows = (
        db.session.query(Warehouse, User.first_name, User.last_name, images_count.c.n)
        .outerjoin(User, User.id == Warehouse.user_id)
        .outerjoin(images_count, images_count.c.warehouse_id == Warehouse.id)
        .order_by(Warehouse.created_at.desc(), Warehouse.id.desc())
        .all()
    )
    out = []
    for warehouse, first_name, last_name, n in rows:
        item = warehouse.to_dict()
        item["user_name"] = f"{first_name or ''} {last_name or ''}".strip()
        item["images_count"] = int(n or 0)
        out.append(item)
    return out


def set_warehouse_status(warehouse: Warehouse, raw_status: str) -> str:
    status = WAREHOUSE_STATUS_INPUTS.get((raw_status or "").strip().lower())
    if status is None:
        raise AdminValidationError("Invalid status")
    warehouse.status = status
    warehouse.is_verified = status == "Active"
    warehouse.updated_at = datetime.utcnow()
    db.session.commit()
    return status


def load_settings() -> dict:
    settings = dict(DEFAULT_SYSTEM_SETTINGS)
    for row in SystemSetting.query.all():
        if row.key not in settings:
            continue
        try:
            settings[row.key] = json.loads(row.value)
        except ValueError:
            continue
    return settings


def _coerce_setting(key: str, value):
    default = DEFAULT_SYSTEM_SETTINGS[key]
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise AdminValidationError(f"Setting {key} must be true or false")
        return value
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise AdminValidationError(f"Setting {key} must be a string")
    return str(value).strip()


def save_settings(payload: dict, *, updated_by: int | None) -> dict:
    if not isinstance(payload, dict):
        raise AdminValidationError("Settings must be an object")
    unknown = sorted(set(payload) - set(DEFAULT_SYSTEM_SETTINGS))
    if unknown:
        raise AdminValidationError(f"Unknown settings: {', '.join(unknown)}")

    values = {key: _coerce_setting(key, value) for key, value in payload.items()}
    now = datetime.utcnow()
    for key, value in values.items():
        row = db.session.get(SystemSetting, key)
        if row is None:
            row = SystemSetting(key=key)
            db.session.add(row)
        row.value = json.dumps(value)
        row.updated_by = updated_by
        row.updated_at = now
    db.session.commit()
    return load_settings()


def relative_time_label(created_at: datetime | None, *, now: datetime | None = None) -> str:
    if created_at is None:
        return ""
    now = now or datetime.utcnow()
    age = now - created_at
    if age < timedelta(hours=1):
        return f"{max(int(age.total_seconds() // 60), 0)} min ago"
    if age < timedelta(days=1):
        return f"{int(age.total_seconds() // 3600)} hours ago"
    return created_at.strftime("%b %d")


def _activity_status(status: str | None) -> str:
    if status == "Pending":
        return "pending"
    if status == "Active":
        return "success"
    return "warning"


def dashboard_snapshot(*, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

    stats = {
        "totalWarehouses": Warehouse.query.count(),
        "pendingApprovals": Warehouse.query.filter(Warehouse.status == "Pending").count(),
        "totalUsers": User.query.count(),
        "totalAgents": Agent.query.count(),
        "verifiedAgents": Agent.query.filter(Agent.is_verified.is_(True)).count(),
        "todayListings": Warehouse.query.filter(Warehouse.created_at >= today_start).count(),
    }

    recent = (
        db.session.query(Warehouse, User.first_name, User.last_name)
        .outerjoin(User, User.id == Warehouse.user_id)
        .order_by(Warehouse.created_at.desc(), Warehouse.id.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
        .all()
    )
    activity = [
        {
            "id": warehouse.id,
            "action": "New warehouse listing",
            "warehouse": warehouse.title,
            "user": f"{first_name or ''} {last_name or ''}".strip(),
            "time": relative_time_label(warehouse.created_at, now=now),
            "status": _activity_status(warehouse.status),
        }
        for warehouse, first_name, last_name in recent
    ]
    return {"stats": stats, "recentActivity": activity}
