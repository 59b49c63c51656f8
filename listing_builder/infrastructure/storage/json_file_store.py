import json
import os
from pathlib import Path

import structlog

from listing_builder.application.interfaces.key_value_store import (
    KeyValueStore,
    StorageUnavailableError,
)

logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Durable key-value store kept as one JSON object on disk.

    Every write rewrites the file through a temp file and os.replace so a
    crash never leaves half a token behind. All I/O and decode failures
    surface as StorageUnavailableError.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> dict:  # type: ignore[type-arg]
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageUnavailableError(f"Cannot read {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageUnavailableError(f"{self._path} does not hold a JSON object")
        return data

    def _write(self, data: dict) -> None:  # type: ignore[type-arg]
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot write {self._path}: {exc}") from exc
        logger.debug("store_written", path=str(self._path), keys=len(data))
