"""Slash-command dispatcher and command implementations.

Sub-modules group commands by domain:

- ``agent``   -- skills
- ``modes``   -- thinking, verbose, reasoning, elevated, TTS acknowledgements
- ``session`` -- history reset and model switching
- ``system``  -- command menu, help, and bridge status
"""

from ._dispatcher import (
    EMPTY_ACK,
    PAIR_COMMAND,
    CommandContext,
    CommandDispatcher,
    CommandResult,
    build_command_table,
)
from ._parser import COMMAND_MARKER, ParsedCommand, is_command, parse_command
from ._table import Alias, CommandDef, CommandTable, External, Handler
from .system import BOOT_TIME

__all__ = [
    "Alias",
    "BOOT_TIME",
    "COMMAND_MARKER",
    "CommandContext",
    "CommandDef",
    "CommandDispatcher",
    "CommandResult",
    "CommandTable",
    "EMPTY_ACK",
    "External",
    "Handler",
    "PAIR_COMMAND",
    "ParsedCommand",
    "build_command_table",
    "is_command",
    "parse_command",
]
