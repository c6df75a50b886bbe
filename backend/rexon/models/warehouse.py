from datetime import datetime

from rexon.extensions import db
from rexon.utils.json_fields import parse_amenities


WAREHOUSE_STATUSES = ("Pending", "Active", "Rejected")


class Warehouse(db.Model):
    __tablename__ = "warehouses"
    __table_args__ = (
        db.Index("ix_warehouses_status_featured_created", "status", "is_featured", "created_at"),
        db.Index("ix_warehouses_lat_lng", "latitude", "longitude"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    property_name = db.Column(db.String(255), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    property_type = db.Column(db.String(64), nullable=False, index=True)

    space_available = db.Column(db.Float, nullable=False, default=0.0)
    space_unit = db.Column(db.String(16), nullable=False, default="sqft")
    warehouse_size = db.Column(db.Float, nullable=False, default=0.0)
    available_from = db.Column(db.String(32), nullable=True)

    price_type = db.Column(db.String(16), nullable=False, default="Lease")
    price_per_sqft = db.Column(db.Float, nullable=False, default=0.0)
    total_price = db.Column(db.Float, nullable=True)

    address = db.Column(db.Text, nullable=False)
    city = db.Column(db.String(120), nullable=False, index=True)
    state = db.Column(db.String(120), nullable=False)
    pincode = db.Column(db.String(6), nullable=True)
    road_connectivity = db.Column(db.String(32), nullable=True)

    contact_person_name = db.Column(db.String(160), nullable=True)
    contact_person_phone = db.Column(db.String(16), nullable=True)
    contact_person_email = db.Column(db.String(255), nullable=True)
    contact_person_designation = db.Column(db.String(120), nullable=True)

    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    amenities = db.Column(db.Text, nullable=True)

    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    is_featured = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(16), nullable=False, default="Pending")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    uploads = db.relationship("Upload", backref="warehouse", lazy="dynamic", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "property_name": self.property_name,
            "title": self.title,
            "description": self.description,
            "property_type": self.property_type,
            "space_available": self.space_available,
            "space_unit": self.space_unit,
            "warehouse_size": self.warehouse_size,
            "available_from": self.available_from,
            "price_type": self.price_type,
            "price_per_sqft": self.price_per_sqft,
            "total_price": self.total_price,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "road_connectivity": self.road_connectivity,
            "contact_person_name": self.contact_person_name,
            "contact_person_phone": self.contact_person_phone,
            "contact_person_email": self.contact_person_email,
            "contact_person_designation": self.contact_person_designation,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "amenities": parse_amenities(self.amenities),
            "is_verified": bool(self.is_verified),
            "is_featured": bool(self.is_featured),
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
