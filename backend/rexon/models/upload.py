from datetime import datetime

from rexon.extensions import db


class Upload(db.Model):
    """A media file attached to a warehouse listing."""

    __tablename__ = "uploads"
    __table_args__ = (
        db.Index("ix_uploads_warehouse_status", "warehouse_id", "status"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id", ondelete="CASCADE"), nullable=False)

    image_order = db.Column(db.Integer, nullable=False, default=0)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    file_name = db.Column(db.String(255), nullable=False)
    file_type = db.Column(db.String(100), nullable=False)
    file_size = db.Column(db.Integer, nullable=False, default=0)
    storage_key = db.Column(db.String(512), nullable=False)
    url = db.Column(db.String(1024), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="Active")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_image(self) -> bool:
        return (self.file_type or "").lower().startswith("image/")

    @property
    def is_video(self) -> bool:
        return (self.file_type or "").lower().startswith("video/")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "warehouse_id": self.warehouse_id,
            "image_order": int(self.image_order or 0),
            "is_primary": bool(self.is_primary),
            "file_name": self.file_name,
            "file_type": self.file_type,
            "file_size": int(self.file_size or 0),
            "key": self.storage_key,
            "url": self.url,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
