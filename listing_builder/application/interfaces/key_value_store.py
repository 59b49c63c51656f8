from abc import ABC, abstractmethod


class StorageUnavailableError(Exception):
    """Raised when the backing store cannot be read or written."""


class KeyValueStore(ABC):
    """
    Port for string key-value storage.

    The app uses two instances: a transient one for the single-use PKCE
    secrets and a durable one for the access token.
    """

    @abstractmethod
    def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""
        ...
