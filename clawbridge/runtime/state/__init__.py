"""Process-lifetime state: conversation history and paired senders."""

from __future__ import annotations

from .pairing import PairedUser, PairingResult, PairingStore
from .session_store import ChatMessage, ConversationStore

__all__ = [
    "ChatMessage",
    "ConversationStore",
    "PairedUser",
    "PairingResult",
    "PairingStore",
]
