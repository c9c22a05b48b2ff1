"""Identity Toolkit client — implements the IdentityProvider interface over REST.

Anonymous sign-in uses ``accounts:signUp`` without credentials; token
sign-in exchanges a custom token through ``accounts:signInWithCustomToken``
and reads the subject from the returned id token.
"""

import base64
import json
import logging

import httpx

from survey_sync.application.interfaces import IdentityProvider
from survey_sync.domain.entities import Identity
from survey_sync.domain.exceptions import IdentityError

logger = logging.getLogger(__name__)


class IdentityToolkitProvider(IdentityProvider):
    """Infrastructure adapter — signs in against an Identity Toolkit compatible API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://identitytoolkit.googleapis.com/v1",
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    async def sign_in_anonymously(self) -> Identity:
        data = await self._post("accounts:signUp", {"returnSecureToken": True})
        subject_id = data.get("localId")
        if not subject_id:
            raise IdentityError("Anonymous sign-in response has no localId")
        return Identity(
            subject_id=subject_id,
            is_anonymous=True,
            id_token=data.get("idToken", ""),
        )

    async def sign_in_with_token(self, token: str) -> Identity:
        data = await self._post(
            "accounts:signInWithCustomToken",
            {"token": token, "returnSecureToken": True},
        )
        id_token = data.get("idToken", "")
        claims = decode_jwt_claims(id_token)
        subject_id = data.get("localId") or claims.get("user_id") or claims.get("sub")
        if not subject_id:
            raise IdentityError("Token sign-in response has no subject")
        return Identity(subject_id=subject_id, is_anonymous=False, id_token=id_token)

    async def _post(self, method: str, body: dict) -> dict:
        url = f"{self._base_url}/{method}"
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        should_close = self._http_client is None
        try:
            response = await client.post(url, params={"key": self._api_key}, json=body)
        except httpx.HTTPError as exc:
            raise IdentityError(f"{method} request failed: {exc}") from exc
        finally:
            if should_close:
                await client.aclose()

        if response.status_code != 200:
            raise IdentityError(f"{method} rejected ({response.status_code}): {_error_message(response)}")
        try:
            return response.json()
        except ValueError as exc:
            raise IdentityError(f"{method} returned invalid JSON") from exc

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()


def decode_jwt_claims(token: str) -> dict:
    """Read the payload of a JWT without verifying it; {} when it is not a JWT."""
    parts = token.split(".")
    if len(parts) != 3:
        return {}
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (ValueError, UnicodeDecodeError):
        return {}
    return claims if isinstance(claims, dict) else {}


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return response.text
