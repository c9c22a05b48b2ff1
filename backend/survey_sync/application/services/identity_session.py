"""Identity session — resolves the signed-in subject once per process."""

import asyncio
import logging
from collections.abc import Callable

from survey_sync.application.interfaces import IdentityProvider
from survey_sync.domain.entities import Identity
from survey_sync.domain.exceptions import IdentityError
from survey_sync.infrastructure.logging.colored_logger import SyncLogger, SyncStage

logger = logging.getLogger(__name__)
log = SyncLogger(__name__)

IdentityListener = Callable[[Identity], None]


class IdentitySession:
    """Resolves and caches the identity used to stamp every write.

    With a bootstrap token the session first tries token sign-in and falls
    back to anonymous sign-in when that fails. The outcome is cached: a
    resolved identity is shared by all callers, and a failure is re-raised
    to every later caller without another attempt.
    """

    def __init__(self, provider: IdentityProvider, bootstrap_token: str | None = None):
        self._provider = provider
        self._bootstrap_token = (bootstrap_token or "").strip() or None
        self._identity: Identity | None = None
        self._failure: IdentityError | None = None
        self._lock = asyncio.Lock()
        self._listeners: list[IdentityListener] = []

    @property
    def current(self) -> Identity | None:
        return self._identity

    @property
    def is_resolved(self) -> bool:
        return self._identity is not None

    @property
    def subject_id(self) -> str:
        """Subject id of the resolved identity; raises IdentityError if unresolved."""
        if self._identity is None:
            raise IdentityError("Identity has not been resolved")
        return self._identity.subject_id

    def on_identity_changed(self, listener: IdentityListener) -> None:
        """Register a listener; called immediately if already resolved."""
        if self._identity is not None:
            listener(self._identity)
            return
        self._listeners.append(listener)

    async def resolve(self) -> Identity:
        if self._identity is not None:
            return self._identity
        async with self._lock:
            if self._identity is not None:
                return self._identity
            if self._failure is not None:
                raise self._failure

            with log.timed_step(SyncStage.IDENTITY, "Signing in"):
                try:
                    identity = await self._sign_in()
                except IdentityError as exc:
                    self._failure = exc
                    raise

            self._identity = identity
            self._publish(identity)
            return identity

    async def _sign_in(self) -> Identity:
        if self._bootstrap_token is not None:
            try:
                return await self._provider.sign_in_with_token(self._bootstrap_token)
            except Exception as exc:
                logger.warning(
                    "Token sign-in failed, falling back to anonymous: %s", exc
                )
        try:
            return await self._provider.sign_in_anonymously()
        except Exception as exc:
            raise IdentityError(f"Anonymous sign-in failed: {exc}") from exc

    async def aclose(self) -> None:
        await self._provider.aclose()

    def _publish(self, identity: Identity) -> None:
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(identity)
            except Exception:
                logger.exception("Identity listener raised")
