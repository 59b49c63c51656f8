"""
In-memory key-value store. Backs the transient slot for PKCE secrets: its
contents die with the process, like browser session storage dies with the tab.
Also handy as a durable-store stand-in for tests.
"""
from listing_builder.application.interfaces.key_value_store import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
