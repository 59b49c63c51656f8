import structlog

from listing_builder.application.interfaces.authorization_server import AuthorizationServer
from listing_builder.application.interfaces.key_value_store import KeyValueStore
from listing_builder.domain.entities.auth_session import AuthSession

logger = structlog.get_logger(__name__)

VERIFIER_STORAGE_KEY = "etsy_code_verifier"
STATE_STORAGE_KEY = "etsy_oauth_state"


class BeginAuthorization:
    """
    Use case: start an OAuth 2.0 + PKCE login.

    Stores a fresh verifier and state in the transient store and returns the
    authorization URL the user agent must be sent to. Raises
    StorageUnavailableError if the secrets cannot be stored.
    """

    def __init__(self, transient: KeyValueStore, auth_server: AuthorizationServer) -> None:
        self._transient = transient
        self._auth_server = auth_server

    def execute(self) -> str:
        session = AuthSession.create()
        self._transient.set(VERIFIER_STORAGE_KEY, session.verifier)
        self._transient.set(STATE_STORAGE_KEY, session.state)

        url = self._auth_server.build_authorization_url(
            state=session.state, code_challenge=session.code_challenge
        )
        logger.info("authorization_started")
        return url
