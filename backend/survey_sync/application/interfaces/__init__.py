from .document_store import DocumentStore
from .identity_provider import IdentityProvider

__all__ = [
    "DocumentStore",
    "IdentityProvider",
]
