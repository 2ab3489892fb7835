"""Local key-value backend.

A synchronous string store exposed through the async backend contract.
Values are kept as strings: non-string values are JSON-encoded on save and
decoded on load, falling back to the raw string when it is not JSON.

The store lives in one JSON file per origin (LocalConfig.path) or, without
a path, only in memory for the lifetime of the process. A byte quota caps
the total size of keys and values.
"""

from __future__ import annotations

import json
from pathlib import Path

import structlog

from wordmemo.storage.base import (
    InitializationError,
    PersistenceBackend,
    QuotaError,
    StorageError,
    StoredValue,
)

logger = structlog.get_logger(__name__)

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


def _entry_size(key: str, value: str) -> int:
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class LocalBackend(PersistenceBackend):
    """String-keyed store backed by a JSON file or plain memory."""

    name = "local"

    def __init__(self, path: Path | None = None, quota_bytes: int = DEFAULT_QUOTA_BYTES):
        self.path = path
        self.quota_bytes = quota_bytes
        self._items: dict[str, str] = {}
        self._loaded = False

    # -- string store --------------------------------------------------------

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        if self.path is not None and self.path.exists():
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            if not isinstance(raw, dict):
                raise ValueError(f"Local store is not a JSON object: {self.path}")
            self._items = {str(k): str(v) for k, v in raw.items()}
        self._loaded = True

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._items, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(self.path)

    def used_bytes(self) -> int:
        """Total size of stored keys and values."""
        self._ensure_loaded()
        return sum(_entry_size(k, v) for k, v in self._items.items())

    def get_item(self, key: str) -> str | None:
        self._ensure_loaded()
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._ensure_loaded()
        previous = self._items.get(key)
        used = self.used_bytes()
        if previous is not None:
            used -= _entry_size(key, previous)
        if used + _entry_size(key, value) > self.quota_bytes:
            raise QuotaError(
                f"Local store quota exceeded writing '{key}' "
                f"({self.quota_bytes} bytes available)"
            )
        self._items[key] = value
        try:
            self._flush()
        except OSError as e:
            if previous is None:
                del self._items[key]
            else:
                self._items[key] = previous
            raise StorageError(f"Could not write local store: {e}") from e

    def remove_item(self, key: str) -> None:
        self._ensure_loaded()
        previous = self._items.pop(key, None)
        if previous is None:
            return
        try:
            self._flush()
        except OSError as e:
            self._items[key] = previous
            raise StorageError(f"Could not write local store: {e}") from e

    # -- backend contract ----------------------------------------------------

    async def init(self) -> None:
        try:
            self._ensure_loaded()
        except (OSError, ValueError) as e:
            raise InitializationError(f"Could not open local store {self.path}: {e}") from e

    async def save(self, key: str, value: StoredValue) -> None:
        serialized = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
        try:
            self.set_item(key, serialized)
        except QuotaError:
            logger.error("local.quota_exceeded", key=key, quota_bytes=self.quota_bytes)
            raise

    async def load(self, key: str) -> StoredValue:
        data = self.get_item(key)
        if data is None:
            return None
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return data

    async def remove(self, key: str) -> None:
        self.remove_item(key)
