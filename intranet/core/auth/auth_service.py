"""Authentication service layer."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from intranet.core.auth.events import AUTH_USER_LOGGED_IN, AUTH_USER_REGISTERED
from intranet.core.auth.models import RevokedToken, Role, SessionToken
from intranet.core.auth.password import hash_password, verify_password
from intranet.core.auth.principal import principal_from_user
from intranet.core.auth.schemas import RegisterRequest
from intranet.core.users.models import User
from intranet.domains.gamification import rules as gamification_rules
from intranet.domains.gamification.services import ensure_profile, record_activity
from intranet.extensions import db
from intranet.portal_platform.outbox import enqueue as enqueue_outbox

logger = logging.getLogger(__name__)

# Roles granted to every new account by default.
DEFAULT_REGISTER_ROLES = ("user", "reservations:write")


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Return the active user if credentials are valid."""
    user = User.query.filter(func.lower(User.email) == email.strip().lower()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def issue_tokens(user: User) -> dict[str, str]:
    """Create access and refresh tokens for a user."""
    identity = str(user.id)
    access_token = create_access_token(identity=identity, additional_claims={"roles": user.role_codes})
    refresh_token = create_refresh_token(identity=identity)

    # Persist refresh jti for revocation checks
    decoded_refresh = decode_token(refresh_token)
    expires = decoded_refresh.get("exp")
    db.session.add(
        SessionToken(
            user_id=user.id,
            jti=decoded_refresh.get("jti"),
            expires_at=datetime.utcfromtimestamp(expires) if expires else None,
        )
    )
    db.session.commit()
    return {"access_token": access_token, "refresh_token": refresh_token}


def refresh_access_token(user_id: int) -> Optional[str]:
    """Mint a new access token carrying the user's current roles."""
    user = db.session.get(User, int(user_id))
    if not user or not user.is_active:
        return None
    return create_access_token(identity=str(user.id), additional_claims={"roles": user.role_codes})


def revoke_token(jti: str, user_id: Optional[int] = None, token_type: str = "access") -> None:
    """Blocklist a token id; a refresh jti also closes its session row."""
    now = datetime.utcnow()
    session_token = SessionToken.query.filter_by(jti=jti).first()
    if session_token is not None and session_token.revoked_at is None:
        session_token.revoked_at = now
    if RevokedToken.query.filter_by(jti=jti).first() is None:
        db.session.add(RevokedToken(jti=jti, token_type=token_type, user_id=user_id, revoked_at=now))
    db.session.commit()
    logger.info("Revoked %s token for user %s", token_type, user_id)


def is_token_revoked(jti: str) -> bool:
    if db.session.query(RevokedToken.id).filter_by(jti=jti).first() is not None:
        return True
    session_token = SessionToken.query.filter_by(jti=jti).first()
    return bool(session_token and session_token.is_revoked)


def register_user(payload: RegisterRequest, auto_issue_tokens: bool = False) -> dict:
    """Create a user with default roles and a fresh gamification profile."""
    normalized_email = payload.email.strip().lower()
    existing = User.query.filter(func.lower(User.email) == normalized_email).first()
    if existing:
        raise ValueError("email_already_exists")

    user = User(
        email=normalized_email,
        full_name=(payload.full_name or "").strip() or None,
        sector=(payload.sector or "").strip() or "Geral",
        avatar_url=(payload.avatar_url or "").strip() or None,
        password_hash=hash_password(payload.password),
    )
    db.session.add(user)
    _assign_default_roles(user)
    db.session.flush()

    enqueue_outbox(
        AUTH_USER_REGISTERED,
        {
            "user_id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "sector": user.sector,
        },
        user_id=user.id,
    )
    db.session.commit()
    ensure_profile(principal_from_user(user))
    logger.info("Registered user %s", user.id)

    tokens = issue_tokens(user) if auto_issue_tokens else {}
    return {"user": user, **tokens}


def record_login(user: User) -> None:
    """Login bookkeeping: outbox event plus the once-per-session page visit."""
    enqueue_outbox(
        AUTH_USER_LOGGED_IN,
        {"user_id": user.id, "logged_in_at": datetime.utcnow().isoformat()},
        user_id=user.id,
    )
    db.session.commit()
    try:
        ensure_profile(principal_from_user(user))
        record_activity(user.id, gamification_rules.PAGE_VISIT, "Acessou o portal")
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not record login activity for user %s", user.id)


def _role(code: str) -> Role:
    role = Role.query.filter_by(code=code).first()
    if role is None:
        role = Role(code=code, label=code.replace(":", " ").title())
        db.session.add(role)
    return role


def _assign_default_roles(user: User) -> None:
    for code in DEFAULT_REGISTER_ROLES:
        role = _role(code)
        if role not in user.roles:
            user.roles.append(role)


def grant_role(user: User, code: str) -> None:
    """Add a role; new access tokens carry it, already issued ones do not."""
    role = _role(code)
    if role not in user.roles:
        user.roles.append(role)
    db.session.commit()
    logger.info("Granted role %s to user %s", code, user.id)
