"""Slash-command recognition and parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass

COMMAND_MARKER = "/"

# "/model opus" and "/model: opus" parse the same way.
_COMMAND_RE = re.compile(r"^(/\w+):?\s*(.*)", re.DOTALL)


@dataclass(frozen=True)
class ParsedCommand:
    command: str
    args: str = ""

    def __post_init__(self) -> None:
        if not self.command:
            raise ValueError("ParsedCommand.command must not be empty")


def is_command(message: str) -> bool:
    return message.strip().startswith(COMMAND_MARKER)


def parse_command(message: str) -> ParsedCommand:
    trimmed = message.strip()
    match = _COMMAND_RE.match(trimmed)
    if match:
        return ParsedCommand(command=match.group(1).lower(), args=match.group(2).strip())
    return ParsedCommand(command=trimmed.lower())
