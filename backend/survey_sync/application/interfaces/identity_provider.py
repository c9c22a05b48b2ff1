"""Abstract identity provider interface (port)."""

from abc import ABC, abstractmethod

from survey_sync.domain.entities import Identity


class IdentityProvider(ABC):
    """Port for signing in — implemented in the infrastructure layer."""

    @abstractmethod
    async def sign_in_with_token(self, token: str) -> Identity:
        """Privileged sign-in with a bootstrap token."""
        ...

    @abstractmethod
    async def sign_in_anonymously(self) -> Identity:
        """Sign in without credentials."""
        ...

    async def aclose(self) -> None:
        return None
