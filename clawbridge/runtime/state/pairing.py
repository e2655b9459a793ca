"""Sender verification through a shared pairing code."""

from __future__ import annotations

import hmac
import logging
import threading
from dataclasses import dataclass
from datetime import UTC, datetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairingResult:
    success: bool
    message: str


@dataclass(frozen=True)
class PairedUser:
    user_id: str
    name: str
    paired_at: str


class PairingStore:
    """Tracks which senders have presented the pairing code."""

    def __init__(self, pairing_code: str) -> None:
        self._code = pairing_code
        self._lock = threading.Lock()
        self._users: dict[str, PairedUser] = {}

    def is_verified(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._users

    @property
    def verified_count(self) -> int:
        with self._lock:
            return len(self._users)

    def verify_pairing_code(
        self, user_id: str, code: str, name: str | None = None,
    ) -> PairingResult:
        if not self._code:
            logger.error("[pairing.verify] no pairing code configured; rejecting %s", user_id)
            return PairingResult(False, "Pairing is not configured on this server.")

        if not hmac.compare_digest(code.encode(), self._code.encode()):
            logger.warning("[pairing.verify] wrong code from %s", user_id)
            return PairingResult(False, "The pairing code is not valid.")

        display = (name or "").strip() or "friend"
        with self._lock:
            already = user_id in self._users
            self._users[user_id] = PairedUser(
                user_id=user_id,
                name=display,
                paired_at=datetime.now(UTC).isoformat(),
            )
        if already:
            return PairingResult(True, f"✅ You are already paired, {display}.")
        logger.info("[pairing.verify] paired %s as %r", user_id, display)
        return PairingResult(True, f"✅ Pairing complete! Welcome, {display}.")
