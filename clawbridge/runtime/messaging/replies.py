"""Delivery-agnostic reply types and the curated quick-reply sets."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


@dataclass(frozen=True)
class QuickReply:
    label: str
    message: str


class ResponseMode(enum.Enum):
    SYNC = "sync"
    CALLBACK = "callback"


class Route(enum.Enum):
    PAIRING = "pairing"
    UNVERIFIED = "unverified"
    COMMAND = "command"
    CHAT = "chat"
    ERROR = "error"


@dataclass(frozen=True)
class Reply:
    """Outcome of one inbound utterance, before it is put on the wire."""

    text: str
    route: Route
    quick_replies: tuple[QuickReply, ...] = field(default_factory=tuple)


# Shown for the bare "/" command, in display order.
COMMAND_MENU: tuple[QuickReply, ...] = (
    QuickReply("📊 Status", "/status"),
    QuickReply("❓ Help", "/help"),
    QuickReply("🤖 Model", "/model"),
    QuickReply("🔄 Clear", "/clear"),
    QuickReply("🧠 Think", "/think"),
    QuickReply("💡 Usage", "/usage"),
    QuickReply("📝 All commands", "/commands"),
)

GET_STARTED: tuple[QuickReply, ...] = (
    QuickReply("Get started", "Hello!"),
    QuickReply("Help", "/help"),
)

PAIRING_HELP: tuple[QuickReply, ...] = (
    QuickReply("How to pair", "/help pair"),
)

AFTER_CLEAR: tuple[QuickReply, ...] = (
    QuickReply("New conversation", "Hello"),
)

AFTER_COMMAND: tuple[QuickReply, ...] = (
    QuickReply("Help", "/help"),
    QuickReply("Status", "/status"),
)

AFTER_CHAT: tuple[QuickReply, ...] = (
    QuickReply("Continue", "Please continue"),
    QuickReply("New topic", "/clear"),
)
