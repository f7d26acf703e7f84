"""FastAPI dependencies for authentication and authorization.

Usage:
    @router.get("/resources/search")
    def search(context: Optional[AuthContext] = Depends(get_optional_context)):
        ...

    @router.post("/admin/moderation/{id}/approve")
    def approve(context: AuthContext = Depends(get_admin_context)):
        ...

Every dependency goes through IdentityGate, so the ban check runs on every
request that carries a session, including public ones.
"""

from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..database import get_db
from ..domain.identity.ports.identity_provider_port import IdentityProviderPort
from .identity_gate import IdentityGate
from .roles import AuthContext, require_admin
from .session_provider import JWTSessionProvider

# auto_error=False: anonymous callers are allowed on public routes
security = HTTPBearer(auto_error=False)


def get_identity_provider(db: Session = Depends(get_db)) -> IdentityProviderPort:
    return JWTSessionProvider(db)


def get_identity_gate(
    db: Session = Depends(get_db),
    provider: IdentityProviderPort = Depends(get_identity_provider),
) -> IdentityGate:
    return IdentityGate(db, provider)


def get_optional_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    gate: IdentityGate = Depends(get_identity_gate),
) -> Optional[AuthContext]:
    """Caller context, or None for anonymous callers.

    An unusable token is treated as anonymous. A banned caller is not: the
    Banned error propagates.
    """
    token = credentials.credentials if credentials else None
    if not token:
        return None
    return gate.validate_session(token)


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    gate: IdentityGate = Depends(get_identity_gate),
) -> AuthContext:
    """Raises Unauthenticated or Banned."""
    return gate.authorize(credentials.credentials if credentials else None)


def get_admin_context(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """Raises Unauthenticated, Banned or Unauthorized."""
    require_admin(context)
    return context


CurrentContext = Annotated[AuthContext, Depends(get_auth_context)]
AdminContext = Annotated[AuthContext, Depends(get_admin_context)]
OptionalContext = Annotated[Optional[AuthContext], Depends(get_optional_context)]
