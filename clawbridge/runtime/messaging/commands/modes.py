"""Mode commands -- /think, /verbose, /reasoning, /elevated, /tts.

These only validate and acknowledge. The mode itself takes effect when
the user prefixes a chat message with the matching directive, which the
gateway applies to that turn.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..directives import ELEVATED_MODES, REASONING_MODES, THINK_LEVELS, VERBOSE_MODES

if TYPE_CHECKING:
    from ._dispatcher import CommandContext, CommandDispatcher

TTS_OPTIONS: tuple[str, ...] = (
    "off", "always", "inbound", "tagged", "status", "provider", "limit", "summary", "audio",
)

NEXT_MESSAGE_NOTE = "Applies from the next message."


def usage_text(icon: str, title: str, token: str, placeholder: str, values: tuple[str, ...]) -> str:
    return f"{icon} {title}\n\nUsage: {token} <{placeholder}>\nOptions: {', '.join(values)}"


def rejection_text(value: str, values: tuple[str, ...]) -> str:
    return f"❌ Invalid option \"{value}\".\nAvailable: {', '.join(values)}"


def validate_option(
    args: str,
    *,
    icon: str,
    title: str,
    token: str,
    placeholder: str,
    values: tuple[str, ...],
) -> str:
    """Acknowledge a single option value out of *values*."""
    if not args:
        example = values[-2] if len(values) > 1 else values[0]
        return usage_text(icon, title, token, placeholder, values) + f"\n\nExample: {token} {example}"
    value = args.strip().lower()
    if value not in values:
        return rejection_text(args.strip(), values)
    return f"{icon} {title}: {value}\n\n{NEXT_MESSAGE_NOTE}"


async def cmd_think(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    return validate_option(
        ctx.args, icon="🧠", title="Thinking mode", token="/think",
        placeholder="level", values=THINK_LEVELS,
    )


async def cmd_verbose(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    return validate_option(
        ctx.args, icon="📝", title="Verbose mode", token="/verbose",
        placeholder="mode", values=VERBOSE_MODES,
    )


async def cmd_reasoning(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    return validate_option(
        ctx.args, icon="💭", title="Reasoning display", token="/reasoning",
        placeholder="mode", values=REASONING_MODES,
    )


async def cmd_elevated(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    return validate_option(
        ctx.args, icon="🔐", title="Elevated mode", token="/elevated",
        placeholder="mode", values=ELEVATED_MODES,
    )


async def cmd_tts(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    # TTS_OPTIONS is only the usage hint; the gateway interprets the value.
    if not ctx.args.strip():
        return usage_text("🔊", "Text-to-speech", "/tts", "option", TTS_OPTIONS)
    return f"🔊 TTS: {ctx.args.strip()}\n\n{NEXT_MESSAGE_NOTE}"
