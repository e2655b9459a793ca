"""Session and model management commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...services.cli_runner import quote_args

if TYPE_CHECKING:
    from ._dispatcher import CommandContext, CommandDispatcher

RESET_TEXT = "🔄 Conversation reset. Start a new conversation!"
CLEAR_TEXT = "✅ Conversation history cleared."


async def cmd_reset(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    dispatcher.conversations.clear_history(ctx.session_id)
    return RESET_TEXT


async def cmd_clear(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    dispatcher.conversations.clear_history(ctx.session_id)
    return CLEAR_TEXT


async def cmd_model(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    runner = dispatcher.runner
    args = ctx.args.strip()
    if not args or args.lower() == "list":
        return await runner.run(runner.command_line("model", "list"))
    if args.lower() == "status":
        return await runner.run(runner.command_line("model", "status"))
    return await runner.run(runner.command_line("model", "set", quote_args(args)))
