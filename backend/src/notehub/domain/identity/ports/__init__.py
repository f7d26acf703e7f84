from .identity_provider_port import IdentityProviderPort

__all__ = ["IdentityProviderPort"]
