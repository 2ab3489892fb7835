"""Tests for application configuration loading (F3)."""

from pathlib import Path

from wordmemo.config.app_config import (
    BACKEND_ENV,
    get_storage_config,
    load_app_config,
)


class TestDefaults:
    """Built-in defaults when no file exists."""

    def test_defaults_without_file(self):
        config = load_app_config()

        assert config.storage.backend_type == "document"
        assert config.storage.remote.endpoint == ""
        assert config.storage.remote.timeout_ms == 5000
        assert config.storage.local.path == Path("data/state/local_store.json")
        assert config.storage.document.db_path == Path("db/wordmemo.db")
        assert config.quiz.default_mode == "definition"
        assert config.quiz.auto_advance is True

    def test_config_is_cached(self):
        assert load_app_config() is load_app_config()


class TestYamlFile:
    """Loading from data/config/app_config_v1.yaml (or WORDMEMO_CONFIG)."""

    def test_reads_storage_section(self, write_config, tmp_path):
        write_config(
            f"""
storage:
  backend_type: remote
  remote:
    endpoint: https://store.test/api/
    timeout_ms: 1500
  local:
    path: {tmp_path / "local.json"}
    quota_bytes: 1024
quiz:
  default_mode: term
"""
        )

        storage = get_storage_config()

        assert storage.backend_type == "remote"
        assert storage.remote.endpoint == "https://store.test/api"
        assert storage.remote.timeout_ms == 1500
        assert storage.local.path == tmp_path / "local.json"
        assert storage.local.quota_bytes == 1024
        assert load_app_config().quiz.default_mode == "term"

    def test_empty_file_uses_fallbacks(self, write_config):
        write_config("")

        config = load_app_config()

        assert config.storage.backend_type == "document"
        assert config.storage.local.path is None

    def test_force_reload(self, write_config):
        path = write_config("storage:\n  backend_type: local\n")
        assert load_app_config().storage.backend_type == "local"

        path.write_text("storage:\n  backend_type: remote\n", encoding="utf-8")

        assert load_app_config().storage.backend_type == "local"
        assert load_app_config(force_reload=True).storage.backend_type == "remote"


class TestBackendNames:
    """Legacy names, unknown names and environment override."""

    def test_legacy_type_names(self, write_config):
        for legacy, current in (("localstorage", "local"), ("indexeddb", "document"), ("api", "remote")):
            write_config(f"storage:\n  type: {legacy}\n")
            assert get_storage_config().backend_type == current

    def test_legacy_api_section(self, write_config):
        write_config(
            """
storage:
  type: api
  api:
    endpoint: https://legacy.test
    timeout: 2000
"""
        )

        storage = get_storage_config()

        assert storage.backend_type == "remote"
        assert storage.remote.endpoint == "https://legacy.test"
        assert storage.remote.timeout_ms == 2000

    def test_unknown_type_falls_back_to_local(self, write_config):
        write_config("storage:\n  backend_type: floppy\n")

        assert get_storage_config().backend_type == "local"

    def test_environment_override(self, write_config, monkeypatch):
        write_config("storage:\n  backend_type: document\n")
        monkeypatch.setenv(BACKEND_ENV, "LocalStorage")

        assert get_storage_config().backend_type == "local"
