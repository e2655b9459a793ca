"""Shared slash-command dispatcher.

Resolves a parsed command against the command table, runs it, and
normalises the outcome into a :class:`CommandResult`. Tokens missing from
the table are forwarded to the Clawdbot CLI as ``clawdbot <token> <args>``;
when the CLI does not know them either, the message is handed back to the
caller as ordinary chat.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...config.settings import Settings, cfg
from ...services.cli_runner import CliError, CliErrorKind, CliRunner, quote_args, shell_quote
from ...state.session_store import ConversationStore
from ..replies import COMMAND_MENU, QuickReply
from . import agent as _agent_cmds
from . import modes as _mode_cmds
from . import session as _session_cmds
from . import system as _system_cmds
from ._parser import COMMAND_MARKER, ParsedCommand, is_command, parse_command
from ._table import Alias, CommandDef, CommandTable, External, Handler

if TYPE_CHECKING:
    from ...services.gateway import GatewayClient

logger = logging.getLogger(__name__)

PAIR_COMMAND = "/pair"
EMPTY_ACK = "✅ Command executed."


@dataclass(frozen=True)
class CommandContext:
    command: str
    args: str
    session_id: str


@dataclass(frozen=True)
class CommandResult:
    handled: bool
    response: str | None = None
    session_reset: bool = False
    quick_replies: tuple[QuickReply, ...] | None = None

    def __post_init__(self) -> None:
        if not self.handled and self.response is not None:
            raise ValueError("An unhandled command result carries no response")
        if self.handled and not (self.response and self.response.strip()):
            raise ValueError("A handled command result needs a response")

    @classmethod
    def not_handled(cls) -> CommandResult:
        return cls(handled=False)

    @classmethod
    def reply(
        cls,
        text: str | None,
        *,
        session_reset: bool = False,
        quick_replies: Sequence[QuickReply] | None = None,
    ) -> CommandResult:
        """Build a handled result; blank text becomes :data:`EMPTY_ACK`."""
        return cls(
            handled=True,
            response=text if text and text.strip() else EMPTY_ACK,
            session_reset=session_reset,
            quick_replies=tuple(quick_replies) if quick_replies else None,
        )


def build_command_table(cli: str = "clawdbot") -> CommandTable:
    def ext(token: str, sub: str, description: str) -> CommandDef:
        return CommandDef(token, External(f"{cli} {sub}"), description)

    def alias(token: str, target: str) -> CommandDef:
        return CommandDef(token, Alias(target), f"Alias of {target}")

    return CommandTable([
        CommandDef(
            "/",
            Handler(_system_cmds.cmd_menu, quick_replies=COMMAND_MENU),
            "Pick a command",
        ),
        # Status / info
        ext("/status", "status", "System status"),
        CommandDef("/help", Handler(_system_cmds.cmd_help), "Show help"),
        CommandDef("/commands", Handler(_system_cmds.cmd_commands), "List all commands"),
        ext("/whoami", "whoami", "Who am I"),
        alias("/id", "/whoami"),
        ext("/context", "context", "Context information"),
        ext("/usage", "usage", "Usage"),
        # Model / session
        CommandDef("/model", Handler(_session_cmds.cmd_model), "List or switch models"),
        alias("/models", "/model"),
        CommandDef(
            "/reset",
            Handler(_session_cmds.cmd_reset, resets_session=True),
            "Start a new conversation",
        ),
        alias("/new", "/reset"),
        CommandDef(
            "/clear",
            Handler(_session_cmds.cmd_clear, resets_session=True),
            "Clear conversation history",
        ),
        ext("/stop", "stop", "Stop the current task"),
        # Modes
        CommandDef("/think", Handler(_mode_cmds.cmd_think), "Thinking depth"),
        alias("/thinking", "/think"),
        alias("/t", "/think"),
        CommandDef("/verbose", Handler(_mode_cmds.cmd_verbose), "Verbose output"),
        alias("/v", "/verbose"),
        CommandDef("/reasoning", Handler(_mode_cmds.cmd_reasoning), "Show reasoning"),
        alias("/reason", "/reasoning"),
        CommandDef("/elevated", Handler(_mode_cmds.cmd_elevated), "Elevated permissions"),
        alias("/elev", "/elevated"),
        CommandDef("/tts", Handler(_mode_cmds.cmd_tts), "Text-to-speech"),
        # Agent
        CommandDef("/skill", Handler(_agent_cmds.cmd_skill), "Run a skill"),
        ext("/subagents", "sessions list --kind subagent", "List sub-agents"),
        # Local
        CommandDef("/localstatus", Handler(_system_cmds.cmd_localstatus), "Bridge status (local)"),
    ])


class CommandDispatcher:

    def __init__(
        self,
        runner: CliRunner,
        conversations: ConversationStore,
        *,
        gateway: GatewayClient | None = None,
        table: CommandTable | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.runner = runner
        self.conversations = conversations
        self.gateway = gateway
        self.settings = settings or cfg
        self.table = table or build_command_table(runner.program)

    async def handle(self, message: str, session_id: str) -> CommandResult:
        if not is_command(message):
            return CommandResult.not_handled()

        parsed = parse_command(message)
        logger.info("[commands.handle] %s (args=%r)", parsed.command, parsed.args)

        # Pairing runs before verification, upstream of this dispatcher.
        if parsed.command == PAIR_COMMAND:
            return CommandResult.not_handled()

        return await self.execute(self.table.resolve(parsed.command), parsed, session_id)

    async def execute(
        self, entry: CommandDef | None, parsed: ParsedCommand, session_id: str,
    ) -> CommandResult:
        try:
            if entry is None:
                text = await self._forward_unknown(parsed)
                if text is None:
                    return CommandResult.not_handled()
                return CommandResult.reply(text)

            action = entry.action
            if isinstance(action, Handler):
                ctx = CommandContext(command=entry.token, args=parsed.args, session_id=session_id)
                text = await action.fn(self, ctx)
                return CommandResult.reply(
                    text,
                    session_reset=action.resets_session,
                    quick_replies=action.quick_replies,
                )
            if isinstance(action, External):
                return CommandResult.reply(await self.runner.run(action.command_line(parsed.args)))
            raise TypeError(f"Unresolved alias reached execution: {entry.token}")
        except Exception as exc:
            logger.error("[commands.execute] %s failed: %s", parsed.command, exc, exc_info=True)
            return CommandResult.reply(f"❌ An error occurred while running the command.\n\n{exc}")

    async def _forward_unknown(self, parsed: ParsedCommand) -> str | None:
        """Run ``<cli> <token> <args>``; ``None`` means the CLI does not know it."""
        sub = parsed.command[len(COMMAND_MARKER):]
        command_line = self.runner.command_line(shell_quote(sub), quote_args(parsed.args))
        logger.info("[commands.forward] unknown command -> %s", command_line)
        try:
            return await self.runner.run(command_line)
        except CliError as exc:
            if exc.kind is CliErrorKind.UNKNOWN_COMMAND:
                logger.debug("[commands.forward] CLI does not know %s; treating as chat", sub)
                return None
            raise
