# Overview: Service-layer operations for session tokens; resolves bearer tokens to principals.

"""
Session Token Management

Identity management is owned elsewhere; this module only maps a bearer
token to the user it was issued for.

Tokens are 32 random bytes handed out once in hex. Only their SHA-256
digest is stored. A token dies when revoked or SESSION_TTL_HOURS after issue,
whichever comes first.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from mercado.time_utils import utcnow
from .sale_filters import Principal


@dataclass
class SessionContext:
    user: User
    session: SessionToken

    @property
    def principal(self) -> Principal:
        return Principal(user_id=self.user.id, role=self.user.role)


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: int) -> tuple[SessionToken, str]:
    """
    Issue a session token for a user.

    Returns (session_record, plaintext_token). The database stores only the hash.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise ValueError("User not found")
    if not user.is_active:
        raise ValueError("User is not active")

    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))

    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + ttl,
        is_revoked=False,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Return the SessionContext for a valid token.

    None if the token is unknown, expired or revoked, or its user is inactive.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session or session.is_revoked:
        return None

    now = utcnow()
    if session.expires_at <= now:
        return None

    user = session.user
    if not user or not user.is_active:
        return None

    session.last_used_at = now
    db.session.commit()

    return SessionContext(user=user, session=session)


def revoke_session(token: str) -> bool:
    session = db.session.query(SessionToken).filter_by(token_hash=hash_token(token)).first()
    if not session:
        return False
    session.is_revoked = True
    db.session.commit()
    return True
