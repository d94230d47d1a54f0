"""FastAPI dependencies for authentication and authorization.

The identity is decoded from the bearer token into an explicit
IdentityContext and passed down to services; nothing below the router layer
reads identity implicitly.

Usage:
    @router.get("/drivers")
    def list_drivers(identity: IdentityContext = Depends(require_viewer)):
        ...

    @router.post("/billing/credits")
    def add_credits(identity: IdentityContext = Depends(require_admin)):
        ...
"""

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .jwt import decode_token
from .roles import UserRole, has_permission

security = HTTPBearer()


@dataclass(frozen=True)
class IdentityContext:
    """Caller identity derived from the bearer token"""
    user_id: str
    company_id: UUID
    role: UserRole
    email: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_identity(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> IdentityContext:
    """Validate the bearer token and build the IdentityContext.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or bad claims
    """
    try:
        payload = decode_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")

    try:
        return IdentityContext(
            user_id=str(payload["sub"]),
            company_id=UUID(payload["company_id"]),
            role=UserRole(payload.get("role", UserRole.VIEWER.value)),
            email=payload.get("email", ""),
        )
    except (KeyError, ValueError) as e:
        raise _unauthorized(f"Invalid token claims: {str(e)}")


def require_role(required_role: UserRole) -> Callable:
    """Create a dependency that enforces the role hierarchy.

    Raises:
        HTTPException 403: If the caller's role is insufficient
    """

    def role_dependency(identity: IdentityContext = Depends(get_identity)) -> IdentityContext:
        if not has_permission(identity.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {required_role.value}",
            )
        return identity

    return role_dependency


require_admin = require_role(UserRole.ADMIN)
require_manager = require_role(UserRole.MANAGER)
require_viewer = require_role(UserRole.VIEWER)
