"""Configuration package for WordMemo."""

from wordmemo.config.app_config import (
    AppConfig,
    DocumentConfig,
    LocalConfig,
    QuizConfig,
    RemoteConfig,
    StorageConfig,
    clear_config_cache,
    get_storage_config,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "DocumentConfig",
    "LocalConfig",
    "QuizConfig",
    "RemoteConfig",
    "StorageConfig",
    "clear_config_cache",
    "get_storage_config",
    "load_app_config",
]
