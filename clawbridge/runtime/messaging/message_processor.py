"""Per-utterance decision pipeline shared by the sync and callback paths.

``MessageProcessor.decide`` routes one inbound utterance through pairing,
verification, slash commands, and chat, and returns a :class:`Reply`. How
the reply travels (HTTP body or callback POST) is the caller's concern; the
only thing the mode changes here is which quick replies are attached.
"""

from __future__ import annotations

import logging

from ..services.gateway import GatewayClient
from ..state.pairing import PairingStore
from ..state.session_store import ConversationStore
from .commands import PAIR_COMMAND, CommandDispatcher, is_command
from .commands.system import PAIR_HELP_TEXT
from .directives import extract_directives
from .replies import (
    AFTER_CHAT,
    AFTER_CLEAR,
    AFTER_COMMAND,
    GET_STARTED,
    PAIRING_HELP,
    QuickReply,
    Reply,
    ResponseMode,
    Route,
)

logger = logging.getLogger(__name__)

THINKING_TEXT = "🦞 Thinking..."
SERVER_ERROR_TEXT = "A server error occurred."
PROCESSING_ERROR_TEXT = "An error occurred while processing your message."

PAIR_USAGE_TEXT = """📝 How to pair

/pair <code> [name]

Examples:
/pair myCode
/pair myCode Jane"""

UNVERIFIED_TEXT = (
    "🔐 Verification required.\n\n"
    'Send "/pair <code>" or "/pair <code> <name>".'
)

_CLEAR_COMMAND = "/clear"
# The PAIRING_HELP quick reply; answered before the verification gate.
_PAIR_HELP_WORDS = ("/help", "pair")


class MessageProcessor:

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        conversations: ConversationStore,
        pairing: PairingStore,
        gateway: GatewayClient,
    ) -> None:
        self.dispatcher = dispatcher
        self.conversations = conversations
        self.pairing = pairing
        self.gateway = gateway

    async def decide(self, sender_id: str, utterance: str, mode: ResponseMode) -> Reply:
        callback = mode is ResponseMode.CALLBACK

        words = utterance.split()
        if words and words[0].lower() == PAIR_COMMAND:
            return self._pair(sender_id, words, callback)

        if not self.pairing.is_verified(sender_id):
            if tuple(w.lower() for w in words) == _PAIR_HELP_WORDS:
                return Reply(PAIR_HELP_TEXT, Route.PAIRING)
            logger.info("[processor.decide] unverified sender %s", sender_id)
            return Reply(
                UNVERIFIED_TEXT,
                Route.UNVERIFIED,
                PAIRING_HELP if callback else (),
            )

        directives = extract_directives(utterance)
        if directives.directives and directives.clean_message:
            return await self._chat(
                sender_id, directives.clean_message, directives.directives, callback,
            )

        if is_command(utterance):
            result = await self.dispatcher.handle(utterance, sender_id)
            if result.handled and result.response:
                return Reply(
                    result.response,
                    Route.COMMAND,
                    self._command_quick_replies(utterance, result.quick_replies, callback),
                )

        return await self._chat(sender_id, utterance, (), callback)

    def _pair(self, sender_id: str, parts: list[str], callback: bool) -> Reply:
        if len(parts) < 2:
            return Reply(PAIR_USAGE_TEXT, Route.PAIRING)
        code = parts[1]
        name = " ".join(parts[2:]) or None

        result = self.pairing.verify_pairing_code(sender_id, code, name)
        if not result.success:
            return Reply(f"❌ {result.message}", Route.PAIRING)
        return Reply(result.message, Route.PAIRING, GET_STARTED if callback else ())

    @staticmethod
    def _command_quick_replies(
        utterance: str,
        own: tuple[QuickReply, ...] | None,
        callback: bool,
    ) -> tuple[QuickReply, ...]:
        if own:
            return own
        if not callback:
            return ()
        if utterance.strip().lower().startswith(_CLEAR_COMMAND):
            return AFTER_CLEAR
        return AFTER_COMMAND

    async def _chat(
        self,
        sender_id: str,
        message: str,
        directives: tuple[str, ...],
        callback: bool,
    ) -> Reply:
        """Relay one chat turn; history is read before *message* is appended."""
        async with self.conversations.session_lock(sender_id):
            history = self.conversations.get_history(sender_id)
            self.conversations.add_message(sender_id, "user", message)
            reply = await self.gateway.ask(message, sender_id, history, directives)
            self.conversations.add_message(sender_id, "assistant", reply.text)

        logger.info(
            "[processor.chat] sender=%s directives=%s reply_len=%d",
            sender_id, list(directives), len(reply.text),
        )
        return Reply(reply.text, Route.CHAT, AFTER_CHAT if callback else ())
