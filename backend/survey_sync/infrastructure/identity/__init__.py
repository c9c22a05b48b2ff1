"""Identity provider infrastructure package."""

from .identity_toolkit_provider import IdentityToolkitProvider
from .local_identity_provider import LocalIdentityProvider

__all__ = ["IdentityToolkitProvider", "LocalIdentityProvider"]
