"""Caller roles and the authorization context handed to every operation.

Role is derived once, when the session is validated, and carried on the
AuthContext so call sites never re-query it.

┌──────────────────────────┬───────┬────────┬───────────┐
│ Action                   │ ADMIN │ MEMBER │ ANONYMOUS │
├──────────────────────────┼───────┼────────┼───────────┤
│ Search / download        │   ✓   │   ✓    │     ✓     │
│ Submit resources         │   ✓   │   ✓    │           │
│ Moderate / curate        │   ✓   │        │           │
│ Ban / unban              │   ✓   │        │           │
│ File manager / reconcile │   ✓   │        │           │
└──────────────────────────┴───────┴────────┴───────────┘
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..domain.errors import Unauthenticated, Unauthorized
from ..models.identity import Identity


class IdentityRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"


@dataclass
class AuthContext:
    """A validated, non-banned caller.

    Attributes:
        identity: The caller's identity row
        role: Role derived from ``identity.is_admin``
        token: The session token the caller presented
    """
    identity: Identity
    role: IdentityRole
    token: Optional[str] = None

    @classmethod
    def for_identity(cls, identity: Identity, token: Optional[str] = None) -> "AuthContext":
        role = IdentityRole.ADMIN if identity.is_admin else IdentityRole.MEMBER
        return cls(identity=identity, role=role, token=token)

    @property
    def identity_id(self):
        return self.identity.id

    @property
    def is_admin(self) -> bool:
        return self.role == IdentityRole.ADMIN


def require_identity(context: Optional[AuthContext]) -> AuthContext:
    """Raise Unauthenticated for anonymous callers."""
    if context is None:
        raise Unauthenticated()
    return context


def require_admin(context: Optional[AuthContext]) -> Identity:
    """Return the admin identity, or raise.

    Raises:
        Unauthenticated: If there is no caller
        Unauthorized: If the caller is not an admin
    """
    context = require_identity(context)
    if not context.is_admin:
        raise Unauthorized()
    return context.identity
