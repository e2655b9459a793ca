"""Skill commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ...services.cli_runner import shell_quote

if TYPE_CHECKING:
    from ._dispatcher import CommandContext, CommandDispatcher


async def cmd_skill(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    runner = dispatcher.runner
    if not ctx.args:
        return await runner.run(runner.command_line("skill", "list"))
    name, _, skill_input = ctx.args.partition(" ")
    skill_input = skill_input.strip()
    return await runner.run(runner.command_line(
        "skill", "run", shell_quote(name), shell_quote(skill_input) if skill_input else "",
    ))
