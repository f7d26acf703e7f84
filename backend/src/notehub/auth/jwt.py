"""JWT token generation and validation

Access tokens are HS256-signed and always backed by an ``auth_session``
row, so they can be revoked server-side (logout, ban) before they expire.

Claims:
- sub: Identity ID as UUID string
- sid: AuthSession ID as UUID string (revocation handle)
- email: Identity email (lower-cased)
- is_admin: Admin flag at issue time. Display only: authorization reads
  the identity row, never this claim.
- iat / exp: Issue and expiry Unix timestamps (exp = iat + JWT_EXPIRY_MINUTES)
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

import jwt


def _get_jwt_secret() -> str:
    """Get JWT_SECRET from environment.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = os.getenv('JWT_SECRET')
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def get_jwt_expiry_minutes() -> int:
    """JWT_EXPIRY_MINUTES from environment (default: 60)."""
    expiry = os.getenv('JWT_EXPIRY_MINUTES', '60')
    try:
        return int(expiry)
    except ValueError:
        return 60


def create_access_token(
    identity_id: UUID,
    session_id: UUID,
    email: str,
    is_admin: bool,
    issued_at: datetime = None,
) -> str:
    """Create a signed access token for a session.

    Args:
        identity_id: Identity's UUID
        session_id: AuthSession row ID
        email: Identity email
        is_admin: Admin flag (informational)
        issued_at: Issue time (defaults to now, UTC)

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()
    now = issued_at or datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=get_jwt_expiry_minutes())

    payload = {
        'sub': str(identity_id),
        'sid': str(session_id),
        'email': email,
        'is_admin': bool(is_admin),
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def decode_token(token: str, verify_exp: bool = True) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    ``verify_exp=False`` still checks the signature; it is only used to
    find out who an expired token was issued to.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    return jwt.decode(
        token,
        _get_jwt_secret(),
        algorithms=['HS256'],
        options={"require": ["sub", "sid", "exp"], "verify_exp": verify_exp},
    )
