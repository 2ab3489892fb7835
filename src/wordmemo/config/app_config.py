"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml
(path overridable with WORDMEMO_CONFIG), with built-in defaults when the
file is missing. Legacy storage keys (type: localstorage | indexeddb | api)
are mapped onto the current backend names.

Usage:
    from wordmemo.config.app_config import load_app_config, get_storage_config

    config = load_app_config()
    storage = get_storage_config()
"""

from __future__ import annotations

import copy
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

from wordmemo.storage.base import BackendType

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")
CONFIG_ENV = "WORDMEMO_CONFIG"
BACKEND_ENV = "WORDMEMO_BACKEND"

BACKEND_TYPES: tuple[str, ...] = ("local", "document", "remote")

# Storage type names used by the browser version of the app
LEGACY_BACKEND_NAMES = {
    "localstorage": "local",
    "indexeddb": "document",
    "api": "remote",
}

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024


@dataclass
class RemoteConfig:
    """Remote HTTP store settings."""

    endpoint: str = ""
    timeout_ms: int = DEFAULT_TIMEOUT_MS


@dataclass
class LocalConfig:
    """Local key-value store settings. path None keeps data in memory."""

    path: Path | None = None
    quota_bytes: int = DEFAULT_QUOTA_BYTES


@dataclass
class DocumentConfig:
    """Document store (SQLite) settings."""

    db_path: Path = Path("db/wordmemo.db")


@dataclass
class StorageConfig:
    """Which backend to use and how to reach each one."""

    backend_type: BackendType = "document"
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    local: LocalConfig = field(default_factory=LocalConfig)
    document: DocumentConfig = field(default_factory=DocumentConfig)


@dataclass
class QuizConfig:
    """Quiz defaults."""

    default_mode: str = "definition"
    auto_advance: bool = True


@dataclass
class AppConfig:
    """Application-wide configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    quiz: QuizConfig = field(default_factory=QuizConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "storage": {
            "backend_type": "document",
            "remote": {
                "endpoint": "",
                "timeout_ms": DEFAULT_TIMEOUT_MS,
            },
            "local": {
                "path": "data/state/local_store.json",
                "quota_bytes": DEFAULT_QUOTA_BYTES,
            },
            "document": {
                "db_path": "db/wordmemo.db",
            },
        },
        "quiz": {
            "default_mode": "definition",
            "auto_advance": True,
        },
    }


def _normalize_backend_type(value: Any) -> BackendType:
    """Map legacy and current backend names; unknown names fall back to local."""
    name = str(value or "").strip().lower()
    name = LEGACY_BACKEND_NAMES.get(name, name)
    if name not in BACKEND_TYPES:
        logger.warning("unknown_backend_type", backend_type=value, using="local")
        return "local"
    return name  # type: ignore[return-value]


def _convert_legacy_storage(storage: dict[str, Any]) -> dict[str, Any]:
    """Convert the {type, api: {endpoint, timeout}} layout to the current one."""
    result = dict(storage)
    if "type" in storage and "backend_type" not in storage:
        result["backend_type"] = storage["type"]
    api = storage.get("api")
    if isinstance(api, dict) and "remote" not in storage:
        result["remote"] = {
            "endpoint": api.get("endpoint", ""),
            "timeout_ms": api.get("timeout", DEFAULT_TIMEOUT_MS),
        }
    return result


def _parse_storage(data: dict[str, Any]) -> StorageConfig:
    data = _convert_legacy_storage(data)

    remote_data = data.get("remote") or {}
    local_data = data.get("local") or {}
    document_data = data.get("document") or {}

    local_path = local_data.get("path")

    return StorageConfig(
        backend_type=_normalize_backend_type(data.get("backend_type", "document")),
        remote=RemoteConfig(
            endpoint=(remote_data.get("endpoint") or "").rstrip("/"),
            timeout_ms=int(remote_data.get("timeout_ms") or DEFAULT_TIMEOUT_MS),
        ),
        local=LocalConfig(
            path=Path(local_path) if local_path else None,
            quota_bytes=int(local_data.get("quota_bytes") or DEFAULT_QUOTA_BYTES),
        ),
        document=DocumentConfig(
            db_path=Path(document_data.get("db_path") or "db/wordmemo.db"),
        ),
    )


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    storage = _parse_storage(data.get("storage") or {})

    backend_override = os.environ.get(BACKEND_ENV)
    if backend_override:
        storage.backend_type = _normalize_backend_type(backend_override)

    quiz_data = data.get("quiz") or {}
    quiz = QuizConfig(
        default_mode=quiz_data.get("default_mode", "definition"),
        auto_advance=bool(quiz_data.get("auto_advance", True)),
    )

    return AppConfig(storage=storage, quiz=quiz)


def _config_path() -> Path:
    override = os.environ.get(CONFIG_ENV)
    return Path(override) if override else CONFIG_FILE


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    config_path = _config_path()
    data: dict[str, Any]

    if config_path.exists():
        logger.debug("loading_app_config", source=str(config_path))
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config", missing=str(config_path))
        data = copy.deepcopy(_get_defaults())

    _cached_config = _parse_config(data)
    return _cached_config


def get_storage_config() -> StorageConfig:
    """Get the storage section of the application config."""
    return load_app_config().storage


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
