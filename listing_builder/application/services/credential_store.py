import structlog

from listing_builder.application.interfaces.key_value_store import (
    KeyValueStore,
    StorageUnavailableError,
)

logger = structlog.get_logger(__name__)

TOKEN_STORAGE_KEY = "etsy_access_token"


class CredentialStore:
    """
    Holds at most one access token, written through to a durable store.

    There is no refresh token and no expiry tracking: an expired token is
    only noticed when a call fails, and the caller clears it then.
    """

    def __init__(self, durable: KeyValueStore) -> None:
        self._durable = durable
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def load(self) -> str | None:
        """Read the persisted token. Storage failures degrade to no token."""
        try:
            self._token = self._durable.get(TOKEN_STORAGE_KEY) or None
        except StorageUnavailableError as exc:
            logger.warning("token_load_failed", error=str(exc))
            self._token = None
        return self._token

    def save(self, token: str) -> None:
        self._durable.set(TOKEN_STORAGE_KEY, token)
        self._token = token
        logger.info("token_saved")

    def clear(self) -> None:
        """Forget the token. Safe to call repeatedly."""
        self._token = None
        try:
            self._durable.delete(TOKEN_STORAGE_KEY)
        except StorageUnavailableError as exc:
            logger.warning("token_clear_failed", error=str(exc))
