"""Shared pytest configuration.

Tests are grouped by phase directory:
- f1: word bank parser, answer grader, data model
- f2: persistence backends (local, document, remote)
- f3: storage facade and configuration
- f4: quiz session and CLI

Directories for phases beyond CURRENT_PHASE are skipped.
"""

import pytest

from wordmemo.config.app_config import BACKEND_ENV, CONFIG_ENV, clear_config_cache
from wordmemo.storage.facade import reset_storage

CURRENT_PHASE = 4


def _phase_of(item) -> int | None:
    for part in item.path.parts:
        if part.startswith("f") and part[1:].isdigit():
            return int(part[1:])
    return None


def pytest_collection_modifyitems(config, items):
    """Skip tests whose phase is not reached yet."""
    for item in items:
        phase = _phase_of(item)
        if phase is not None and phase > CURRENT_PHASE:
            item.add_marker(
                pytest.mark.skip(reason=f"Phase F{phase} not enabled (current: F{CURRENT_PHASE})")
            )


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point config at a missing file and drop cached config/storage."""
    monkeypatch.setenv(CONFIG_ENV, str(tmp_path / "no-config.yaml"))
    monkeypatch.delenv(BACKEND_ENV, raising=False)
    clear_config_cache()
    reset_storage()
    yield
    clear_config_cache()
    reset_storage()


@pytest.fixture
def write_config(isolated_config, monkeypatch, tmp_path):
    """Write a YAML config file and point WORDMEMO_CONFIG at it."""

    def _write(text: str):
        path = tmp_path / "app_config_v1.yaml"
        path.write_text(text, encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV, str(path))
        clear_config_cache()
        return path

    return _write
