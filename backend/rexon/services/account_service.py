from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError

from rexon.extensions import db
from rexon.integrations.oauth.base import OAuthError, OAuthProfile
from rexon.models import User
from rexon.utils.db_errors import conflict_columns

logger = logging.getLogger(__name__)

_PROVIDER_LABELS = {"google": "Google", "microsoft": "Microsoft"}
_PROVIDER_ID_COLUMN = {"google": "google_id", "microsoft": "microsoft_id"}


class AccountConflict(ValueError):
    pass


def create_email_user(*, first_name: str, last_name: str, email: str, password: str, phone: str | None = None) -> User:
    """Insert an email/password account. Raises ``AccountConflict`` if the email is taken."""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        raise AccountConflict("User with this email already exists")
    user = User(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email,
        phone=(phone or "").strip() or None,
        auth_provider="email",
        role="user",
        last_login=datetime.utcnow(),
    )
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        if "email" in conflict_columns(e, table="users"):
            raise AccountConflict("User with this email already exists") from e
        raise
    return user


def touch_last_login(user: User) -> None:
    user.last_login = datetime.utcnow()
    db.session.commit()


def upsert_oauth_user(profile: OAuthProfile) -> User:
    """Find, link or create the account for an OAuth sign-in.

    Lookup is by provider id first, then by email. An email/password account
    with the same address is converted to the provider; an account owned by a
    different provider is refused.
    """
    id_column = _PROVIDER_ID_COLUMN[profile.provider]
    user = User.query.filter(getattr(User, id_column) == profile.provider_id).first()

    if user is None:
        user = User.query.filter_by(email=profile.email).first()
        if user is None:
            user = User(
                first_name=profile.first_name,
                last_name=profile.last_name,
                email=profile.email,
                auth_provider=profile.provider,
                is_verified=True,
                role="user",
            )
            setattr(user, id_column, profile.provider_id)
            db.session.add(user)
            logger.info("oauth_user_created provider=%s", profile.provider)
        elif user.auth_provider == "email":
            setattr(user, id_column, profile.provider_id)
            user.auth_provider = profile.provider
            user.is_verified = True
            user.first_name = user.first_name or profile.first_name
            user.last_name = user.last_name or profile.last_name
            logger.info("oauth_user_linked provider=%s user_id=%s", profile.provider, user.id)
        elif user.auth_provider != profile.provider:
            label = _PROVIDER_LABELS.get(user.auth_provider, user.auth_provider)
            raise OAuthError(
                "provider_mismatch",
                f"This email is already registered with {label}. Please sign in with {label}.",
            )
        elif not getattr(user, id_column):
            setattr(user, id_column, profile.provider_id)
        else:
            raise OAuthError("account_conflict", "Authentication failed. Please try again.")

    user.last_login = datetime.utcnow()
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise OAuthError("account_conflict", "Authentication failed. Please try again.") from e
    return user
