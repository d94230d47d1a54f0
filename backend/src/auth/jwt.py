"""JWT bearer token validation

DriverDocs does not manage sessions or passwords. Tokens are issued by the
external identity provider and carry the claims the backend needs:

- sub: User ID
- company_id: Company (tenant) ID as UUID string; every query is scoped by it
- role: "ADMIN" | "MANAGER" | "VIEWER"
- email: User's email address
- iat / exp: Issued-at and expiry timestamps

create_access_token exists for local development and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional
from uuid import UUID

import jwt

from config import get_settings


def create_access_token(
    user_id: str,
    company_id: UUID,
    role: str,
    email: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed token with DriverDocs claims.

    Args:
        user_id: Identity provider user ID
        company_id: Company UUID
        role: ADMIN, MANAGER or VIEWER
        email: User's email address
        expires_minutes: Lifetime override (defaults to JWT_EXPIRY_MINUTES)

    Returns:
        str: Signed JWT
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    lifetime = expires_minutes if expires_minutes is not None else settings.JWT_EXPIRY_MINUTES

    payload = {
        'sub': str(user_id),
        'company_id': str(company_id),
        'role': role,
        'email': email,
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(minutes=lifetime)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    settings = get_settings()
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
