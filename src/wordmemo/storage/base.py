"""Persistence backend contract and storage errors.

Every backend exposes the same asynchronous key-value contract:

    await backend.init()
    await backend.save(key, value)
    value = await backend.load(key)   # None when absent
    await backend.remove(key)

Failures are raised as StorageError subclasses; a normal return is success.
Nothing here retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Literal, Union

BackendType = Literal["local", "document", "remote"]

# A string, or anything json.dumps accepts
StoredValue = Union[str, dict[str, Any], list[Any], int, float, bool, None]


# =============================================================================
# ERRORS
# =============================================================================


class StorageError(Exception):
    """Base error for persistence operations."""

    pass


class ConfigurationError(StorageError):
    """Backend is missing required configuration (e.g. remote endpoint)."""

    pass


class InitializationError(StorageError):
    """Backend could not be opened."""

    pass


class QuotaError(StorageError):
    """Local store is full."""

    pass


class TransactionError(StorageError):
    """Document store transaction failed or was blocked."""

    pass


class NetworkError(StorageError):
    """Remote store could not be reached."""

    pass


class RemoteTimeoutError(NetworkError):
    """Remote request exceeded its timeout and was cancelled."""

    pass


class RemoteStatusError(NetworkError):
    """Remote store answered with a non-success HTTP status."""

    def __init__(self, status_code: int, url: str = ""):
        self.status_code = status_code
        self.url = url
        super().__init__(f"Remote request failed with HTTP {status_code}: {url}")


# =============================================================================
# CONTRACT
# =============================================================================


class PersistenceBackend(ABC):
    """Uniform asynchronous key-value store."""

    name: BackendType

    @abstractmethod
    async def init(self) -> None:
        """Open the backend. Raises InitializationError on failure."""

    @abstractmethod
    async def save(self, key: str, value: StoredValue) -> None:
        """Store a value under key, replacing any previous value."""

    @abstractmethod
    async def load(self, key: str) -> StoredValue:
        """Return the value stored under key, or None when absent."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key. Removing a missing key is not an error."""
