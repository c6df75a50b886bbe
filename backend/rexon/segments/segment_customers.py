from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from rexon.extensions import db
from rexon.models import Customer
from rexon.services.email_service import dispatch_welcome_email
from rexon.utils.api import error_response, form_text, get_request_payload, session_user_id, unauthorized
from rexon.utils.db_errors import conflict_columns, is_unique_violation
from rexon.utils.validators import is_valid_contact_email, is_valid_mobile, strip_spaces

customers_bp = Blueprint("customers_bp", __name__, url_prefix="/api/customers")

CUSTOMER_UPDATABLE_FIELDS = ("full_name", "mobile_number", "city", "complete_address")

_CONFLICT_MESSAGES = {
    "user_id": "Customer profile already exists for this account",
    "email": "This email is already registered as a customer",
    "mobile_number": "This mobile number is already registered as a customer",
}


def _conflict_message_from_integrity(err: IntegrityError) -> str:
    columns = conflict_columns(err, table="customers")
    for column in ("user_id", "email", "mobile_number"):
        if column in columns:
            return _CONFLICT_MESSAGES[column]
    return "Customer already registered"


@customers_bp.post("/register")
def register_customer():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized("Unauthorized. Please sign in first.")

    data = get_request_payload("customer_register")
    full_name = form_text(data, "fullName")
    email = form_text(data, "email").lower()
    mobile = strip_spaces(form_text(data, "mobileNumber"))
    city = form_text(data, "city")
    address = form_text(data, "completeAddress")

    if not all((full_name, email, mobile, city, address)):
        return error_response(
            "Please fill in all required fields: full name, mobile number, email, complete address, and city",
            400,
        )
    if not is_valid_mobile(mobile):
        return error_response("Please enter a valid 10-digit Indian mobile number", 400)
    if not is_valid_contact_email(email):
        return error_response("Please enter a valid email address", 400)

    if Customer.query.filter_by(user_id=user_id).first():
        return error_response(_CONFLICT_MESSAGES["user_id"], 409)
    if Customer.query.filter_by(email=email).first():
        return error_response(_CONFLICT_MESSAGES["email"], 409)
    if Customer.query.filter_by(mobile_number=mobile).first():
        return error_response(_CONFLICT_MESSAGES["mobile_number"], 409)

    customer = Customer(
        user_id=user_id,
        full_name=full_name,
        email=email,
        mobile_number=mobile,
        city=city,
        complete_address=address,
        status="Active",
        is_active=True,
    )
    db.session.add(customer)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if not is_unique_violation(e):
            raise
        current_app.logger.info("customer_register_conflict user_id=%s", user_id)
        return error_response(_conflict_message_from_integrity(e), 409)

    current_app.logger.info("customer_registered user_id=%s customer_id=%s", user_id, customer.id)
    dispatch_welcome_email(full_name=full_name, email=email, city=city)
    return jsonify(
        {
            "success": True,
            "message": "Customer registration completed successfully. Welcome aboard!",
            "customer": customer.to_dict(),
        }
    ), 201


@customers_bp.get("/register")
def get_customer_profile():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()
    customer = Customer.query.filter_by(user_id=user_id).first()
    if not customer:
        return error_response("Customer profile not found", 404)
    return jsonify({"success": True, "customer": customer.to_dict()})


@customers_bp.put("/register")
def update_customer_profile():
    user_id = session_user_id()
    if user_id is None:
        return unauthorized()

    data = request.get_json(silent=True) or {}
    updates = {k: str(data[k]).strip() for k in CUSTOMER_UPDATABLE_FIELDS if data.get(k) is not None}
    if not updates:
        return error_response("No fields to update", 400)
    if "mobile_number" in updates:
        updates["mobile_number"] = strip_spaces(updates["mobile_number"])
        if not is_valid_mobile(updates["mobile_number"]):
            return error_response("Please enter a valid 10-digit Indian mobile number", 400)

    customer = Customer.query.filter_by(user_id=user_id).first()
    if not customer:
        return error_response("Customer profile not found", 404)
    for key, value in updates.items():
        setattr(customer, key, value)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        return error_response(_conflict_message_from_integrity(e), 409)

    return jsonify(
        {
            "success": True,
            "message": "Customer profile updated successfully",
            "customer": customer.to_dict(),
        }
    )
