"""Menu, help, and bridge status commands."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from ._table import Alias

if TYPE_CHECKING:
    from ._dispatcher import CommandContext, CommandDispatcher

BOOT_TIME = time.monotonic()

MENU_PROMPT = "🦞 Pick a command!"

# Display grouping for /commands.
CATEGORIES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("📊 Status / info", ("/status", "/help", "/commands", "/whoami", "/context", "/usage")),
    ("🤖 Model / modes", ("/model", "/think", "/verbose", "/reasoning", "/elevated")),
    ("💬 Session", ("/reset", "/clear", "/stop")),
    ("🔧 Other", ("/tts", "/skill", "/subagents", "/localstatus")),
)

HELP_TEXT = """🦞 Clawdbot help

📌 Basics
/help - show this help
/status - system status
/commands - full command list

📌 Session
/reset - start a new conversation
/clear - clear conversation history
/stop - stop the current task

📌 Model
/model - list models
/model <name> - switch model
/model status - model status

📌 Thinking / output
/think <level> - thinking depth (off/low/medium/high)
/verbose <on/off> - verbose mode
/reasoning <on/off> - show reasoning

📌 Other
/usage - usage
/whoami - who am I
/skill <name> - run a skill

💡 Examples
"Hello" - regular chat
"/model opus" - switch model
"/think high analyse this problem" - answer with deep thinking"""

PAIR_HELP_TEXT = """🔐 Pairing

Send the pairing code you received from the bot owner:
/pair <code>
/pair <code> <your name>

Example: /pair mySecretCode Jane"""


async def cmd_menu(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    return MENU_PROMPT


async def cmd_help(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    if ctx.args.strip().lower() == "pair":
        return PAIR_HELP_TEXT
    return HELP_TEXT


async def cmd_commands(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    table = dispatcher.table
    lines = ["🦞 Clawdbot commands", ""]
    for category, tokens in CATEGORIES:
        lines.append(category)
        for token in tokens:
            entry = table.get(token)
            if entry is None or isinstance(entry.action, Alias):
                continue
            aliases = table.aliases_of(token)
            suffix = f" ({', '.join(aliases)})" if aliases else ""
            lines.append(f"  {token} - {entry.description}{suffix}")
        lines.append("")
    return "\n".join(lines).strip()


def format_uptime(seconds: float) -> str:
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s"


async def cmd_localstatus(dispatcher: CommandDispatcher, ctx: CommandContext) -> str:
    settings = dispatcher.settings
    gateway = dispatcher.gateway
    if gateway is None:
        reachable = "not configured"
    else:
        reachable = "reachable" if await gateway.check_health() else "unreachable"
    stats = dispatcher.conversations.get_stats()
    lines = [
        "🦞 KakaoTalk bridge status",
        "",
        "✅ Server: running",
        f"⏱️ Uptime: {format_uptime(time.monotonic() - BOOT_TIME)}",
        f"📍 Gateway: {settings.gateway_url} ({reachable})",
        f"🤖 Model: {settings.model or 'default'}",
        f"💬 Active sessions: {stats.get('active_sessions', 0)}",
        "",
        "💡 Use /status for the full Clawdbot status.",
    ]
    return "\n".join(lines)
