from __future__ import annotations

import math
import re

MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
CONTACT_EMAIL_RE = re.compile(r"^[\w-]+(\.[\w-]+)*@([\w-]+\.)+[a-zA-Z]{2,7}$")
ACCOUNT_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PINCODE_RE = re.compile(r"^\d{6}$")
AADHAR_RE = re.compile(r"^\d{12}$")
PAN_RE = re.compile(r"^[A-Z]{5}[0-9]{4}[A-Z]$")
DOMAIN_RE = re.compile(r"^[a-z0-9-]+$")

MIN_PASSWORD_LENGTH = 8
DOMAIN_MIN_LENGTH = 3
DOMAIN_MAX_LENGTH = 50

RESERVED_DOMAINS = frozenset(
    {
        "admin", "api", "www", "app", "mail", "support", "help", "login",
        "register", "dashboard", "agent", "agents", "property", "properties",
        "blog", "about", "contact", "careers", "terms", "privacy", "legal",
        "rexon", "dev", "staging", "test", "demo",
    }
)

PROPERTY_TYPE_MAP = {
    "warehouse": "Warehouse",
    "cold storage": "Warehouse",
    "godown": "Warehouse",
    "industrial shed": "Industrial",
    "manufacturing unit": "Industrial",
    "factory space": "Industrial",
    "industrial": "Industrial",
    "logistics hub": "Commercial",
    "distribution center": "Commercial",
    "commercial": "Commercial",
}

ROAD_CONNECTIVITY_MAP = {
    "national highway": "National Highway",
    "state highway": "State Highway",
    "main road": "City Road",
    "city road": "City Road",
    "interior/service road": "Other",
    "other": "Other",
}

PRICE_TYPE_MAP = {"rent": "Rent", "sale": "Sale"}


def strip_spaces(value: str | None) -> str:
    return re.sub(r"\s+", "", value or "")


def is_valid_mobile(value: str | None) -> bool:
    return bool(MOBILE_RE.match(strip_spaces(value)))


def is_valid_contact_email(value: str | None) -> bool:
    return bool(CONTACT_EMAIL_RE.match((value or "").strip()))


def is_valid_account_email(value: str | None) -> bool:
    return bool(ACCOUNT_EMAIL_RE.match((value or "").strip()))


def is_valid_pincode(value: str | None) -> bool:
    return bool(PINCODE_RE.match((value or "").strip()))


def is_valid_aadhar(value: str | None) -> bool:
    return bool(AADHAR_RE.match(strip_spaces(value)))


def is_valid_pan(value: str | None) -> bool:
    return bool(PAN_RE.match((value or "").strip().upper()))


def normalize_domain_name(value: str | None) -> str:
    return (value or "").strip().lower()


def domain_name_error(name: str) -> str | None:
    """Return a human-readable reason ``name`` is unusable, or None when it is well-formed."""
    if not name:
        return "Domain name is required"
    if not DOMAIN_RE.match(name):
        return "Only lowercase letters, numbers, and hyphens allowed"
    if len(name) < DOMAIN_MIN_LENGTH or len(name) > DOMAIN_MAX_LENGTH:
        return f"Domain must be between {DOMAIN_MIN_LENGTH} and {DOMAIN_MAX_LENGTH} characters"
    if name.startswith("-") or name.endswith("-"):
        return "Domain cannot start or end with a hyphen"
    return None


def is_reserved_domain(name: str) -> bool:
    return name in RESERVED_DOMAINS


def normalize_property_type(value: str | None) -> str:
    return PROPERTY_TYPE_MAP.get((value or "").strip().lower(), "Warehouse")


def normalize_road_connectivity(value: str | None) -> str | None:
    raw = (value or "").strip()
    if not raw:
        return None
    return ROAD_CONNECTIVITY_MAP.get(raw.lower(), "Other")


def normalize_price_type(listing_type: str | None) -> str:
    return PRICE_TYPE_MAP.get((listing_type or "").strip().lower(), "Lease")


def normalize_specialization(value: str | None) -> str:
    raw = (value or "").strip().lower()
    if "residential" in raw:
        return "Residential"
    if "commercial" in raw:
        return "Commercial"
    if "industrial" in raw or "warehouse" in raw:
        return "Industrial"
    return "All"


def normalize_gender(value: str | None) -> str | None:
    raw = (value or "").strip()
    if not raw:
        return None
    return raw[0].upper() + raw[1:].lower()


def parse_finite_float(value) -> float | None:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(parsed):
        return None
    return parsed


def parse_int(value, default: int = 0) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default
