"""Leading mode directives on chat messages.

A chat message may start with mode-setting tokens such as
``/think high`` or ``/model opus``. They are split off so the gateway can
apply them to the turn while conversation history keeps only the
message itself.

Patterns are tried once each, in priority order, against what is left of
the message after earlier matches were removed. Several different
directives can therefore stack at the front of one message, but the same
kind never matches twice.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field

THINK_LEVELS: tuple[str, ...] = ("off", "minimal", "low", "medium", "high", "xhigh")
VERBOSE_MODES: tuple[str, ...] = ("on", "full", "off")
REASONING_MODES: tuple[str, ...] = ("on", "off", "stream")
ELEVATED_MODES: tuple[str, ...] = ("on", "off", "ask", "full")

THINK_TOKENS: tuple[str, ...] = ("think", "thinking", "t")
VERBOSE_TOKENS: tuple[str, ...] = ("verbose", "v")
REASONING_TOKENS: tuple[str, ...] = ("reasoning", "reason")
ELEVATED_TOKENS: tuple[str, ...] = ("elevated", "elev")


class DirectiveKind(enum.Enum):
    THINK = "think"
    VERBOSE = "verbose"
    REASONING = "reasoning"
    ELEVATED = "elevated"
    MODEL = "model"
    EXEC = "exec"


def _option_pattern(tokens: tuple[str, ...], values: tuple[str, ...]) -> re.Pattern[str]:
    return re.compile(
        rf"^/({'|'.join(tokens)})\s+({'|'.join(values)})\s+",
        re.IGNORECASE,
    )


_PATTERNS: tuple[tuple[DirectiveKind, re.Pattern[str]], ...] = (
    (DirectiveKind.THINK, _option_pattern(THINK_TOKENS, THINK_LEVELS)),
    (DirectiveKind.VERBOSE, _option_pattern(VERBOSE_TOKENS, VERBOSE_MODES)),
    (DirectiveKind.REASONING, _option_pattern(REASONING_TOKENS, REASONING_MODES)),
    (DirectiveKind.ELEVATED, _option_pattern(ELEVATED_TOKENS, ELEVATED_MODES)),
    (DirectiveKind.MODEL, re.compile(r"^/model\s+(\S+)\s+", re.IGNORECASE)),
    (DirectiveKind.EXEC, re.compile(r"^/(exec)\s+\S+\s+", re.IGNORECASE)),
)


@dataclass(frozen=True)
class DirectiveResult:
    directives: tuple[str, ...] = field(default_factory=tuple)
    clean_message: str = ""


def extract_directives(message: str) -> DirectiveResult:
    directives: list[str] = []
    remainder = message
    for _kind, pattern in _PATTERNS:
        match = pattern.match(remainder)
        if match:
            directives.append(match.group(0).strip())
            remainder = remainder[match.end():].strip()
    return DirectiveResult(directives=tuple(directives), clean_message=remainder)


def directive_kind(directive: str) -> DirectiveKind | None:
    """Return which pattern *directive* (as produced by extraction) belongs to."""
    candidate = directive.strip() + " "
    for kind, pattern in _PATTERNS:
        if pattern.match(candidate):
            return kind
    return None
