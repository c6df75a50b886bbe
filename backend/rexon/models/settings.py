from datetime import datetime

from rexon.extensions import db


DEFAULT_SYSTEM_SETTINGS = {
    "autoApprove": False,
    "emailNotifications": True,
    "agentVerification": True,
    "maintenanceMode": False,
    "requireKYC": True,
    "minWarehouseSize": "100",
    "maxListingsPerUser": "10",
}


class SystemSetting(db.Model):
    __tablename__ = "system_settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    updated_by = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
