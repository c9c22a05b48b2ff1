"""Offline identity provider for local development and single-machine setups."""

from uuid import uuid4

from survey_sync.application.interfaces import IdentityProvider
from survey_sync.domain.entities import Identity
from survey_sync.domain.exceptions import IdentityError
from survey_sync.infrastructure.identity.identity_toolkit_provider import decode_jwt_claims


class LocalIdentityProvider(IdentityProvider):
    """Issues random anonymous subjects; a bootstrap token names the subject.

    A JWT-shaped token contributes its ``user_id``/``sub`` claim (unverified),
    any other token is used as the subject id as is.
    """

    async def sign_in_anonymously(self) -> Identity:
        return Identity(subject_id=uuid4().hex, is_anonymous=True)

    async def sign_in_with_token(self, token: str) -> Identity:
        token = token.strip()
        if not token:
            raise IdentityError("Empty bootstrap token")
        claims = decode_jwt_claims(token)
        subject_id = claims.get("user_id") or claims.get("sub") or token
        return Identity(subject_id=str(subject_id), is_anonymous=False, id_token=token)
