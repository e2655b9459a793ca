"""Application settings -- reads from ``.env`` file and environment."""

from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton

logger = logging.getLogger(__name__)

DEFAULT_UNKNOWN_MARKERS: tuple[str, ...] = ("unknown command", "not recognized", "is not")


def _int(raw: str, default: int) -> int:
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-integer setting value %r (using %d)", raw, default)
        return default


def _float(raw: str, default: float) -> float:
    try:
        return float(raw) if raw else default
    except ValueError:
        logger.warning("Ignoring non-numeric setting value %r (using %s)", raw, default)
        return default


class Settings:

    _DATA_DIR_ENV: ClassVar[str] = "CLAWBRIDGE_DATA_DIR"

    def __init__(self) -> None:
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            dotenv = str(Path(data_dir) / ".env") if data_dir else ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        e = self._read

        self.host: str = e("HOST") or "0.0.0.0"
        self.port: int = _int(e("PORT"), 8080)
        self.log_level: str = (e("LOG_LEVEL") or "INFO").upper()

        self.gateway_url: str = (e("CLAWDBOT_GATEWAY_URL") or "http://127.0.0.1:18789").rstrip("/")
        self.gateway_token: str = e("CLAWDBOT_GATEWAY_TOKEN")
        self.model: str = e("CLAWDBOT_MODEL")
        self.system_prompt: str = e("CLAWDBOT_SYSTEM_PROMPT")

        self.cli_program: str = e("CLAWDBOT_CLI") or "clawdbot"
        self.cli_timeout: float = _float(e("CLI_TIMEOUT_SECONDS"), 30.0)
        self.gateway_timeout: float = _float(e("GATEWAY_TIMEOUT_SECONDS"), 90.0)
        self.callback_timeout: float = _float(e("CALLBACK_TIMEOUT_SECONDS"), 10.0)
        self.sync_budget: float = _float(e("SYNC_BUDGET_SECONDS"), 5.0)

        self.history_limit: int = _int(e("HISTORY_LIMIT"), 10)
        self.history_max_messages: int = _int(e("HISTORY_MAX_MESSAGES"), 50)

        self.pairing_code: str = e("PAIRING_CODE")

        raw_markers = e("CLI_UNKNOWN_MARKERS")
        self.cli_unknown_markers: tuple[str, ...] = tuple(
            m.strip().lower() for m in raw_markers.split(",") if m.strip()
        ) if raw_markers else DEFAULT_UNKNOWN_MARKERS

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def ensure_pairing_code(self) -> bool:
        """Generate and persist a pairing code when none is configured.

        Returns ``True`` when a new code was written.
        """
        if self.pairing_code:
            return False
        self.write_env(PAIRING_CODE=secrets.token_urlsafe(9))
        return True

    def write_env(self, **kwargs: str) -> None:
        self.env.write(**kwargs)
        self.reload()

    def redacted(self) -> dict[str, str]:
        """Settings safe to show in logs and status replies."""
        return {
            "gateway_url": self.gateway_url,
            "model": self.model or "(gateway default)",
            "cli_program": self.cli_program,
            "gateway_token": "set" if self.gateway_token else "not set",
            "pairing_code": "set" if self.pairing_code else "not set",
        }


cfg = Settings()


def _reset_cfg() -> None:
    # Re-read in place so modules holding a reference to ``cfg`` see the reset.
    cfg.__init__()


register_singleton(_reset_cfg)
