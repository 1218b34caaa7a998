# Overview: Bearer token issue, validation and revocation.

"""
Session Token Management Service

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout of TOKEN_TTL_HOURS
- Revocable on logout or security events
"""

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy); only ever sent to the client."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_token(user: User) -> tuple[SessionToken, str]:
    """
    Issue a token for user. Returns (token_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()
    record = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + timedelta(hours=current_app.config.get("TOKEN_TTL_HOURS", 8)),
        is_revoked=False,
    )
    db.session.add(record)
    db.session.commit()
    return record, plaintext_token


def validate_token(token: str) -> User | None:
    """
    Return the user behind a live token.

    None if the token is unknown, revoked, expired, or the user is
    deactivated.
    """
    record = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not record:
        return None

    if record.expires_at < utcnow():
        return None

    user = record.user
    if not user or not user.is_active:
        return None
    return user


def revoke_token(token: str, reason: str = "User logout") -> bool:
    record = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not record:
        return False

    record.is_revoked = True
    record.revoked_at = utcnow()
    record.revoked_reason = reason
    db.session.commit()
    return True


def revoke_all_user_tokens(user_id: int, reason: str = "Revoke all sessions") -> int:
    """
    Revoke every live token of a user. Does not commit; callers run it
    inside their own unit of work.
    """
    now = utcnow()
    records = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False).all()
    for record in records:
        record.is_revoked = True
        record.revoked_at = now
        record.revoked_reason = reason
    return len(records)
