"""Identity provider domain interfaces"""

from .ports import IdentityProviderPort

__all__ = ["IdentityProviderPort"]
