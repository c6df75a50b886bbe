from datetime import datetime

from rexon.extensions import db
from rexon.utils.json_fields import parse_json_list


AGENT_STATUSES = ("Pending", "Approved", "Rejected")


class Agent(db.Model):
    __tablename__ = "agents"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)

    full_name = db.Column(db.String(160), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    mobile_number = db.Column(db.String(16), unique=True, nullable=False)
    secondary_number = db.Column(db.String(16), nullable=True)
    whatsapp_number = db.Column(db.String(16), nullable=True)

    date_of_birth = db.Column(db.String(16), nullable=True)
    gender = db.Column(db.String(16), nullable=True)

    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(120), nullable=True)
    state = db.Column(db.String(120), nullable=True)
    pincode = db.Column(db.String(6), nullable=True)

    agency_name = db.Column(db.String(200), nullable=True)
    license_number = db.Column(db.String(80), unique=True, nullable=True)
    experience_years = db.Column(db.Integer, nullable=False, default=0)
    properties_managed = db.Column(db.Integer, nullable=False, default=0)
    specialization = db.Column(db.String(16), nullable=False, default="All")
    rera_registration = db.Column(db.String(80), nullable=True)

    aadhar_number = db.Column(db.String(12), nullable=True)
    pan_number = db.Column(db.String(10), nullable=True)

    languages_spoken = db.Column(db.Text, nullable=True)
    service_areas = db.Column(db.Text, nullable=True)
    bio = db.Column(db.Text, nullable=True)

    profile_photo_key = db.Column(db.String(512), nullable=True)
    profile_photo_url = db.Column(db.String(1024), nullable=True)
    kyc_document_key = db.Column(db.String(512), nullable=True)
    kyc_document_url = db.Column(db.String(1024), nullable=True)

    terms_accepted = db.Column(db.Boolean, nullable=False, default=True)
    is_verified = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(16), nullable=False, default="Pending", index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    domain = db.relationship("AgentDomain", uselist=False, backref="agent", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "full_name": self.full_name,
            "email": self.email,
            "mobile_number": self.mobile_number,
            "secondary_number": self.secondary_number,
            "whatsapp_number": self.whatsapp_number,
            "date_of_birth": self.date_of_birth,
            "gender": self.gender,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "agency_name": self.agency_name,
            "license_number": self.license_number,
            "experience_years": int(self.experience_years or 0),
            "properties_managed": int(self.properties_managed or 0),
            "specialization": self.specialization,
            "rera_registration": self.rera_registration,
            "languages_spoken": parse_json_list(self.languages_spoken, field="languages_spoken"),
            "service_areas": parse_json_list(self.service_areas, field="service_areas"),
            "bio": self.bio,
            "profile_photo_url": self.profile_photo_url,
            "kyc_document_url": self.kyc_document_url,
            "is_verified": bool(self.is_verified),
            "status": self.status,
            "domain_name": self.domain.domain_name if self.domain else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class AgentDomain(db.Model):
    __tablename__ = "agent_domains"

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id", ondelete="CASCADE"), unique=True, nullable=False)
    domain_name = db.Column(db.String(50), unique=True, nullable=False)
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "domain_name": self.domain_name,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
