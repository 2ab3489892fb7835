"""Persistence layer.

Modules:
- base: backend contract and storage errors
- local: local key-value store (JSON file or memory)
- document: SQLite document store with versioned schema
- remote: HTTP key-value client
- facade: backend selection, fallback and value normalization
"""

from wordmemo.storage.base import (
    ConfigurationError,
    InitializationError,
    NetworkError,
    PersistenceBackend,
    QuotaError,
    RemoteStatusError,
    RemoteTimeoutError,
    StorageError,
    TransactionError,
)

__all__ = [
    "ConfigurationError",
    "InitializationError",
    "NetworkError",
    "PersistenceBackend",
    "QuotaError",
    "RemoteStatusError",
    "RemoteTimeoutError",
    "StorageError",
    "TransactionError",
]
