from collections.abc import Mapping

import structlog

from listing_builder.application.interfaces.authorization_server import (
    AuthorizationError,
    AuthorizationServer,
)
from listing_builder.application.interfaces.key_value_store import KeyValueStore
from listing_builder.application.services.credential_store import CredentialStore
from listing_builder.application.use_cases.begin_authorization import (
    STATE_STORAGE_KEY,
    VERIFIER_STORAGE_KEY,
)

logger = structlog.get_logger(__name__)


class StateMismatchError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Invalid state parameter received. Possible CSRF attack.")


class AuthorizationDeniedError(AuthorizationError):
    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(description)


class MissingVerifierError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("Code verifier not found in session storage.")


class CompleteAuthorization:
    """
    Use case: handle the redirect back from the authorization server.

    Validates state before anything touches the network, exchanges the code
    with the stored verifier, and saves the token. The PKCE secrets are
    single-use: they are removed on every exit path so a retry starts clean.
    A failed callback also clears any stored token.
    """

    def __init__(
        self,
        transient: KeyValueStore,
        auth_server: AuthorizationServer,
        credentials: CredentialStore,
    ) -> None:
        self._transient = transient
        self._auth_server = auth_server
        self._credentials = credentials

    async def execute(self, params: Mapping[str, str]) -> str:
        try:
            token = await self._exchange(params)
        except AuthorizationError as exc:
            logger.warning("authorization_failed", error_type=type(exc).__name__, error=str(exc))
            self._credentials.clear()
            raise
        finally:
            self._transient.delete(STATE_STORAGE_KEY)
            self._transient.delete(VERIFIER_STORAGE_KEY)

        self._credentials.save(token)
        logger.info("authorization_completed")
        return token

    async def _exchange(self, params: Mapping[str, str]) -> str:
        returned_state = params.get("state")
        stored_state = self._transient.get(STATE_STORAGE_KEY)
        if not stored_state or returned_state != stored_state:
            raise StateMismatchError()
        self._transient.delete(STATE_STORAGE_KEY)

        code = params.get("code")
        if not code:
            raise AuthorizationDeniedError(
                params.get("error_description")
                or params.get("error")
                or "No authorization code found in URL."
            )

        verifier = self._transient.get(VERIFIER_STORAGE_KEY)
        if not verifier:
            raise MissingVerifierError()

        return await self._auth_server.exchange_code(code, verifier)
