from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from rexon.extensions import db
from rexon.integrations.storage.factory import build_storage_provider
from rexon.models import Agent
from rexon.services.agent_service import (
    AgentConflict,
    conflict_message_from_integrity,
    domain_is_available,
    find_conflict,
    register_agent,
)
from rexon.services.upload_service import (
    KYC_DOCUMENT_RULE,
    PROFILE_IMAGE_RULE,
    UploadBatchError,
    UploadValidationError,
    stage_file,
)
from rexon.utils.api import error_response, form_text, session_user_id, unauthorized
from rexon.utils.json_fields import dump_json_list, parse_json_list
from rexon.utils.validators import (
    domain_name_error,
    is_reserved_domain,
    is_valid_aadhar,
    is_valid_contact_email,
    is_valid_mobile,
    is_valid_pan,
    is_valid_pincode,
    normalize_domain_name,
    normalize_gender,
    normalize_specialization,
    parse_int,
    strip_spaces,
)

agents_bp = Blueprint("agents_bp", __name__, url_prefix="/api/agents")

AGENT_UPDATABLE_FIELDS = (
    "full_name",
    "mobile_number",
    "city",
    "address",
    "date_of_birth",
    "gender",
    "agency_name",
    "experience_years",
    "properties_managed",
    "bio",
)


@agents_bp.get("/check-domain")
def check_domain():
    name = normalize_domain_name(request.args.get("name"))
    problem = domain_name_error(name)
    if problem:
        return error_response(problem, 400)
    if is_reserved_domain(name):
        return jsonify({"available": False, "reason": "reserved"})
    return jsonify({"available": domain_is_available(name)})


def _validate_identity(form) -> str | None:
    whatsapp = strip_spaces(form_text(form, "whatsappNumber"))
    if whatsapp and not is_valid_mobile(whatsapp):
        return "Please enter a valid 10-digit WhatsApp number"
    secondary = strip_spaces(form_text(form, "secondaryPhone"))
    if secondary and not is_valid_mobile(secondary):
        return "Please enter a valid 10-digit secondary phone number"
    pincode = form_text(form, "pincode")
    if pincode and not is_valid_pincode(pincode):
        return "Pincode must be 6 digits"
    aadhar = form_text(form, "aadharNumber")
    if aadhar and not is_valid_aadhar(aadhar):
        return "Aadhar number must be 12 digits"
    pan = form_text(form, "panNumber")
    if pan and not is_valid_pan(pan):
        return "Invalid PAN format (e.g. ABCDE1234F)"
    return None


def _agent_fields(form, *, email: str, mobile: str) -> dict:
    address = ", ".join(
        part for part in (form_text(form, "addressLine1"), form_text(form, "addressLine2")) if part
    )
    return {
        "full_name": form_text(form, "fullName"),
        "email": email,
        "mobile_number": mobile,
        "secondary_number": strip_spaces(form_text(form, "secondaryPhone")) or None,
        "whatsapp_number": strip_spaces(form_text(form, "whatsappNumber")) or None,
        "date_of_birth": form_text(form, "dateOfBirth") or None,
        "gender": normalize_gender(form_text(form, "gender")),
        "address": address or None,
        "city": form_text(form, "city") or None,
        "state": form_text(form, "state") or None,
        "pincode": form_text(form, "pincode") or None,
        "agency_name": form_text(form, "agencyName") or None,
        "license_number": form_text(form, "licenseNumber") or None,
        "experience_years": max(0, parse_int(form_text(form, "experienceYears"), 0)),
        "specialization": normalize_specialization(form_text(form, "specialization")),
        "rera_registration": form_text(form, "reraRegistration") or None,
        "aadhar_number": strip_spaces(form_text(form, "aadharNumber")) or None,
        "pan_number": form_text(form, "panNumber").upper() or None,
        "languages_spoken": dump_json_list(parse_json_list(form.get("languagesSpoken"), field="languagesSpoken")),
        "service_areas": dump_json_list(parse_json_list(form.get("serviceAreas"), field="serviceAreas")),
        "bio": form_text(form, "bio") or None,
    }


@agents_bp.post("/register")
def register():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized("Unauthorized. Please sign in first.")

    form = request.form
    full_name = form_text(form, "fullName")
    email = form_text(form, "email").lower()
    mobile = strip_spaces(form_text(form, "primaryPhone"))

    if not full_name or not mobile or not email:
        return error_response("Please fill in all required fields: full name, primary phone, and email", 400)
    if len(full_name) < 3:
        return error_response("Full name must be at least 3 characters", 400)
    if not is_valid_mobile(mobile):
        return error_response("Please enter a valid 10-digit Indian mobile number", 400)
    if not is_valid_contact_email(email):
        return error_response("Please enter a valid email address", 400)
    problem = _validate_identity(form)
    if problem:
        return error_response(problem, 400)

    domain_name = normalize_domain_name(form.get("domainName")) or None
    if domain_name:
        problem = domain_name_error(domain_name)
        if problem:
            return error_response(problem, 400)
        if is_reserved_domain(domain_name):
            return error_response("This domain name is reserved", 400)

    try:
        profile_file = request.files.get("profileImage")
        profile_image = stage_file(profile_file, PROFILE_IMAGE_RULE) if profile_file and profile_file.filename else None
        documents = [f for f in request.files.getlist("documents") if f and f.filename]
        kyc_document = stage_file(documents[0], KYC_DOCUMENT_RULE) if documents else None
    except UploadValidationError as e:
        return error_response(str(e), 400)

    fields = _agent_fields(form, email=email, mobile=mobile)
    conflict = find_conflict(
        user_id=user_id,
        email=email,
        mobile=mobile,
        license_number=fields["license_number"],
        domain_name=domain_name,
    )
    if conflict:
        return error_response(conflict, 409)

    try:
        agent = register_agent(
            build_storage_provider(),
            user_id=user_id,
            fields=fields,
            profile_image=profile_image,
            kyc_document=kyc_document,
            domain_name=domain_name,
        )
    except AgentConflict as e:
        return error_response(str(e), 409)
    except UploadBatchError as e:
        current_app.logger.warning("agent_register_upload_failed user_id=%s", user_id)
        return error_response(
            "File upload failed. Please try again.",
            502,
            manifest=[m.to_dict() for m in e.manifest],
        )

    return jsonify(
        {
            "success": True,
            "message": "Agent registration submitted successfully. We will review and get back to you.",
            "agent": agent.to_dict(),
        }
    ), 201


@agents_bp.get("/register")
def get_agent_profile():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()
    agent = Agent.query.filter_by(user_id=user_id).first()
    if not agent:
        return error_response("Agent profile not found", 404)
    return jsonify({"success": True, "agent": agent.to_dict()})


@agents_bp.put("/register")
def update_agent_profile():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()

    data = request.get_json(silent=True) or {}
    updates = {k: data[k] for k in AGENT_UPDATABLE_FIELDS if data.get(k) is not None}
    if not updates:
        return error_response("No fields to update", 400)
    for key in ("experience_years", "properties_managed"):
        if key in updates:
            updates[key] = max(0, parse_int(updates[key], 0))
    if "mobile_number" in updates:
        updates["mobile_number"] = strip_spaces(str(updates["mobile_number"]))
        if not is_valid_mobile(updates["mobile_number"]):
            return error_response("Please enter a valid 10-digit Indian mobile number", 400)
    if "gender" in updates:
        updates["gender"] = normalize_gender(str(updates["gender"]))

    agent = Agent.query.filter_by(user_id=user_id).first()
    if not agent:
        return error_response("Agent profile not found", 404)
    for key, value in updates.items():
        setattr(agent, key, value.strip() if isinstance(value, str) else value)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        return error_response(conflict_message_from_integrity(e), 409)

    return jsonify({"success": True, "message": "Agent profile updated successfully", "agent": agent.to_dict()})
