# Overview: Service-layer operations for session tokens.

"""
Session Token Management Service

WHY: Tokens are cryptographically secure, hashed in database, and time-limited.
A session is bound to exactly one principal: an admin User or a shop Account.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (Config.SESSION_ABSOLUTE_HOURS)
- Idle timeout (Config.SESSION_IDLE_HOURS)
- Revocable on logout
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User, Account
from wholesale.time_utils import utcnow


PRINCIPAL_ADMIN = "admin"
PRINCIPAL_SHOP = "shop"


@dataclass
class SessionContext:
    """Identity for one authenticated request."""
    principal_type: str
    session: SessionToken
    user: User | None = None
    account: Account | None = None
    shop_id: int | None = None  # Shop the owner logged in with

    @property
    def is_admin(self) -> bool:
        return self.principal_type == PRINCIPAL_ADMIN

    @property
    def is_shop(self) -> bool:
        return self.principal_type == PRINCIPAL_SHOP


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy), sent to the client only."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is sufficient for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _timeouts() -> tuple[timedelta, timedelta]:
    absolute = timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_HOURS", 24))
    idle = timedelta(hours=current_app.config.get("SESSION_IDLE_HOURS", 12))
    return absolute, idle


def create_session(
    *,
    user_id: int | None = None,
    account_id: int | None = None,
    shop_id: int | None = None,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create a session for an admin user or a shop account.

    Returns (session_record, plaintext_token).
    """
    if bool(user_id) == bool(account_id):
        raise ValueError("Exactly one of user_id or account_id is required")

    plaintext_token = generate_token()
    now = utcnow()
    absolute, _ = _timeouts()

    session = SessionToken(
        principal_type=PRINCIPAL_ADMIN if user_id else PRINCIPAL_SHOP,
        user_id=user_id,
        account_id=account_id,
        shop_id=shop_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + absolute,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False,
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is invalid, expired, revoked, idle too long,
    or its principal has been deactivated.
    """
    now = utcnow()

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < now:
        return None

    _, idle = _timeouts()
    if now - session.last_used_at > idle:
        _revoke(session, "Idle timeout")
        return None

    if session.principal_type == PRINCIPAL_ADMIN:
        if not session.user or not session.user.is_active:
            _revoke(session, "User account deactivated")
            return None
    elif not session.account or not session.account.is_active:
        _revoke(session, "Shop account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(
        principal_type=session.principal_type,
        session=session,
        user=session.user,
        account=session.account,
        shop_id=session.shop_id,
    )


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """Returns True if a live session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True


def revoke_account_sessions(account_id: int, reason: str) -> int:
    """Revoke every live session of a shop account (used on password reset)."""
    now = utcnow()
    sessions = db.session.query(SessionToken).filter_by(
        account_id=account_id,
        is_revoked=False
    ).all()

    for session in sessions:
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason

    db.session.commit()
    return len(sessions)
