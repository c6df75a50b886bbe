"""Agent onboarding: profile row, optional domain claim and KYC files in one unit."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from rexon.extensions import db
from rexon.integrations.storage.base import StorageProvider
from rexon.models import Agent, AgentDomain
from rexon.services.upload_service import StagedFile, assign_keys, discard_uploaded, upload_all
from rexon.utils.db_errors import conflict_columns, is_unique_violation

logger = logging.getLogger(__name__)

CONFLICT_MESSAGES = {
    "user_id": "Agent profile already exists for this user",
    "email": "This email is already registered as an agent",
    "mobile_number": "This mobile number is already registered as an agent",
    "license_number": "This license number is already registered",
    "domain_name": "This domain name is already taken",
}


class AgentConflict(ValueError):
    pass


def find_conflict(*, user_id: int, email: str, mobile: str, license_number: str | None, domain_name: str | None) -> str | None:
    if Agent.query.filter_by(user_id=user_id).first():
        return CONFLICT_MESSAGES["user_id"]
    if Agent.query.filter_by(email=email).first():
        return CONFLICT_MESSAGES["email"]
    if Agent.query.filter_by(mobile_number=mobile).first():
        return CONFLICT_MESSAGES["mobile_number"]
    if license_number and Agent.query.filter_by(license_number=license_number).first():
        return CONFLICT_MESSAGES["license_number"]
    if domain_name and AgentDomain.query.filter_by(domain_name=domain_name).first():
        return CONFLICT_MESSAGES["domain_name"]
    return None


def conflict_message_from_integrity(err: IntegrityError) -> str:
    agent_columns = conflict_columns(err, table="agents")
    for column in ("user_id", "email", "mobile_number", "license_number"):
        if column in agent_columns:
            return CONFLICT_MESSAGES[column]
    if "domain_name" in conflict_columns(err, table="agent_domains"):
        return CONFLICT_MESSAGES["domain_name"]
    return "Agent already registered"


def domain_is_available(name: str) -> bool:
    return AgentDomain.query.filter_by(domain_name=name, status="active").first() is None


def register_agent(
    provider: StorageProvider,
    *,
    user_id: int,
    fields: dict,
    profile_image: StagedFile | None,
    kyc_document: StagedFile | None,
    domain_name: str | None,
) -> Agent:
    """Insert the agent and optional domain, uploading files before the commit.

    Raises ``UploadBatchError`` when storage fails and ``AgentConflict`` on a
    uniqueness violation; in both cases nothing is persisted and any stored
    object is removed.
    """
    agent = Agent(user_id=user_id, status="Pending", is_verified=False, terms_accepted=True, **fields)
    db.session.add(agent)
    if domain_name:
        agent.domain = AgentDomain(domain_name=domain_name, status="active")

    staged: list[StagedFile] = []
    if profile_image is not None:
        staged += assign_keys([profile_image], f"{user_id}/agents/profile", stem="profile-")
    if kyc_document is not None:
        staged += assign_keys([kyc_document], f"{user_id}/agents/kyc", stem="kyc-")

    manifest = []
    try:
        db.session.flush()
        if staged:
            manifest = upload_all(provider, staged, metadata={"user-id": str(user_id)})
        by_key = {entry.key: entry for entry in manifest}
        if profile_image is not None:
            agent.profile_photo_key = profile_image.key
            agent.profile_photo_url = by_key[profile_image.key].url
        if kyc_document is not None:
            agent.kyc_document_key = kyc_document.key
            agent.kyc_document_url = by_key[kyc_document.key].url
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        discard_uploaded(provider, manifest)
        if not is_unique_violation(e):
            raise
        raise AgentConflict(conflict_message_from_integrity(e)) from e
    except Exception:
        db.session.rollback()
        discard_uploaded(provider, manifest)
        raise

    logger.info("agent_registered user_id=%s agent_id=%s files=%s", user_id, agent.id, len(manifest))
    return agent
