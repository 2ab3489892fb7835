"""Storage facade.

Single entry point for persistence. On first use it builds the configured
backend and initializes it; if that fails it switches to the local backend
for the rest of the process and never retries the original one.

Values crossing the facade are normalized for string-oriented callers:

- save: a string holding valid JSON is parsed before reaching the backend
- load: non-string values come back JSON-encoded, strings come back as-is

Usage:
    storage = get_storage()
    await storage.save("stats", '{"correct": 1, "wrong": 0}')
    raw = await storage.load("stats")
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Callable

import structlog

from wordmemo.config.app_config import StorageConfig, get_storage_config
from wordmemo.storage.base import (
    BackendType,
    InitializationError,
    PersistenceBackend,
    StorageError,
    StoredValue,
)
from wordmemo.storage.document import DocumentBackend
from wordmemo.storage.local import LocalBackend
from wordmemo.storage.remote import RemoteBackend

logger = structlog.get_logger(__name__)

BackendFactory = Callable[[BackendType, StorageConfig], PersistenceBackend]


@dataclass
class BackendSelection:
    """Which backend ended up active, and why."""

    requested: BackendType
    active: BackendType
    warnings: list[str] = field(default_factory=list)

    @property
    def downgraded(self) -> bool:
        return self.active != self.requested


def create_backend(backend_type: BackendType, config: StorageConfig) -> PersistenceBackend:
    """Build an uninitialized backend of the given type."""
    if backend_type == "document":
        return DocumentBackend(db_path=config.document.db_path)
    if backend_type == "remote":
        return RemoteBackend(
            endpoint=config.remote.endpoint,
            timeout_ms=config.remote.timeout_ms,
        )
    return LocalBackend(path=config.local.path, quota_bytes=config.local.quota_bytes)


def _to_backend_value(value: Any) -> StoredValue:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def _to_caller_value(value: StoredValue) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class StorageFacade:
    """Lazily selects one backend and delegates every call to it."""

    def __init__(
        self,
        config: StorageConfig | None = None,
        backend_factory: BackendFactory | None = None,
    ):
        """Initialize the facade. Nothing is opened until first use.

        Args:
            config: Storage configuration (loads app config if not provided)
            backend_factory: Builds backends by type (for testing)
        """
        self.config = config or get_storage_config()
        self._factory = backend_factory or create_backend
        self._backend: PersistenceBackend | None = None
        self._selection: BackendSelection | None = None
        self._init_lock = asyncio.Lock()

    @property
    def selection(self) -> BackendSelection | None:
        """Result of initialization, None until the first call."""
        return self._selection

    @property
    def backend(self) -> PersistenceBackend | None:
        return self._backend

    async def _init_fallback(self, warnings: list[str]) -> PersistenceBackend:
        fallback = self._factory("local", self.config)
        try:
            await fallback.init()
            return fallback
        except StorageError as e:
            warnings.append(f"local store unavailable, keeping data in memory: {e}")
            logger.warning("storage.local_fallback_in_memory", error=str(e))
            memory = LocalBackend(path=None, quota_bytes=self.config.local.quota_bytes)
            await memory.init()
            return memory

    async def initialize(self) -> BackendSelection:
        """Select and open the backend. Runs once per facade."""
        if self._selection is not None:
            return self._selection

        async with self._init_lock:
            if self._selection is None:
                self._selection = await self._select()
        return self._selection

    async def _select(self) -> BackendSelection:
        requested = self.config.backend_type
        warnings: list[str] = []
        backend = self._factory(requested, self.config)

        try:
            await backend.init()
        except (StorageError, OSError) as e:
            warnings.append(f"{requested} backend failed to initialize: {e}")
            logger.warning(
                "storage.fallback",
                requested=requested,
                active="local",
                error=str(e),
            )
            if requested == "local":
                backend = LocalBackend(path=None, quota_bytes=self.config.local.quota_bytes)
                await backend.init()
            else:
                backend = await self._init_fallback(warnings)

        self._backend = backend
        logger.info("storage.initialized", requested=requested, active=backend.name)
        return BackendSelection(
            requested=requested,
            active=backend.name,
            warnings=warnings,
        )

    async def _active(self) -> PersistenceBackend:
        await self.initialize()
        if self._backend is None:
            raise InitializationError("No storage backend is active")
        return self._backend

    async def save(self, key: str, value: Any) -> None:
        backend = await self._active()
        await backend.save(key, _to_backend_value(value))

    async def load(self, key: str) -> str | None:
        backend = await self._active()
        return _to_caller_value(await backend.load(key))

    async def remove(self, key: str) -> None:
        backend = await self._active()
        await backend.remove(key)


# =============================================================================
# PROCESS-WIDE INSTANCE
# =============================================================================

_storage: StorageFacade | None = None


def get_storage() -> StorageFacade:
    """Get the process-wide storage facade."""
    global _storage
    if _storage is None:
        _storage = StorageFacade()
    return _storage


def reset_storage() -> None:
    """Drop the process-wide facade (for testing)."""
    global _storage
    _storage = None
