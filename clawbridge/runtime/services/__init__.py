"""External collaborators: the Clawdbot CLI and the chat gateway."""

from __future__ import annotations

from .cli_runner import CliError, CliErrorKind, CliRunner, quote_args, shell_quote, strip_ansi
from .gateway import ChatReply, GatewayClient, GatewayError

__all__ = [
    "ChatReply",
    "CliError",
    "CliErrorKind",
    "CliRunner",
    "GatewayClient",
    "GatewayError",
    "quote_args",
    "shell_quote",
    "strip_ansi",
]
