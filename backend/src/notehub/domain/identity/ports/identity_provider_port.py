"""Identity Provider Port - Domain interface for session issuance and lookup.

The moderation core never inspects tokens itself. It asks the provider who
the caller is, and tells it to drop sessions when an identity is banned.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from ....models.identity import Identity


class IdentityProviderPort(ABC):
    """Port interface for the identity provider.

    Example Usage:
        provider = JWTSessionProvider(db)
        token = provider.issue_session(identity)
        assert provider.current_session(token).id == identity.id
        provider.invalidate_session(identity.id)
        assert provider.current_session(token) is None
    """

    @abstractmethod
    def current_session(self, token: Optional[str]) -> Optional[Identity]:
        """Resolve a session token to its identity.

        Returns:
            The identity, or None when the token is missing, expired,
            revoked or refers to a deleted identity
        """

    @abstractmethod
    def token_identity(self, token: Optional[str]) -> Optional[Identity]:
        """Identity a genuine token was issued to, whether or not its session is still live.

        Lets the gate route a banned caller holding a revoked or expired
        token to the banned page instead of treating them as anonymous.
        Returns None for missing, forged or malformed tokens.
        """

    @abstractmethod
    def invalidate_session(self, identity_id: UUID) -> int:
        """Revoke every live session of an identity.

        Returns:
            Number of sessions revoked
        """

    @abstractmethod
    def issue_session(self, identity: Identity) -> str:
        """Create a new session for ``identity`` and return its token."""

    @abstractmethod
    def end_session(self, token: Optional[str]) -> bool:
        """Revoke the single session behind ``token`` (logout).

        Returns:
            True if a live session was revoked
        """
