"""Shared pytest fixtures for clawbridge.runtime tests."""

from __future__ import annotations

from pathlib import Path

import pytest

_SETTING_KEYS = (
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "CLAWDBOT_GATEWAY_URL",
    "CLAWDBOT_GATEWAY_TOKEN",
    "CLAWDBOT_MODEL",
    "CLAWDBOT_SYSTEM_PROMPT",
    "CLAWDBOT_CLI",
    "CLI_TIMEOUT_SECONDS",
    "GATEWAY_TIMEOUT_SECONDS",
    "CALLBACK_TIMEOUT_SECONDS",
    "SYNC_BUDGET_SECONDS",
    "HISTORY_LIMIT",
    "HISTORY_MAX_MESSAGES",
    "PAIRING_CODE",
    "CLI_UNKNOWN_MARKERS",
)


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("CLAWBRIDGE_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    for key in _SETTING_KEYS:
        monkeypatch.delenv(key, raising=False)
    return data_dir


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_data_dir: Path):
    from clawbridge.runtime.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir
