import structlog

from listing_builder.application.services.credential_store import CredentialStore

logger = structlog.get_logger(__name__)


class LogOut:
    """Use case: drop the stored token. Idempotent."""

    def __init__(self, credentials: CredentialStore) -> None:
        self._credentials = credentials

    def execute(self) -> None:
        self._credentials.clear()
        logger.info("logged_out")
