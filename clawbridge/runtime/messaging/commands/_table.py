"""Command table -- maps slash tokens to what they do.

Every entry carries exactly one action:

- :class:`External` -- a ``clawdbot`` command line; arguments are appended.
- :class:`Handler`  -- an async function producing the reply text.
- :class:`Alias`    -- the token of a canonical entry; resolving an alias
  yields that entry, so aliases always behave like their target.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from ...services.cli_runner import quote_args
from ..replies import QuickReply

if TYPE_CHECKING:
    from ._dispatcher import CommandContext, CommandDispatcher

HandlerFn = Callable[["CommandDispatcher", "CommandContext"], Awaitable[str]]


@dataclass(frozen=True)
class External:
    template: str

    def __post_init__(self) -> None:
        if not self.template.strip():
            raise ValueError("External command template must not be empty")

    def command_line(self, args: str) -> str:
        quoted = quote_args(args)
        return f"{self.template} {quoted}" if quoted else self.template


@dataclass(frozen=True)
class Handler:
    fn: HandlerFn
    resets_session: bool = False
    quick_replies: tuple[QuickReply, ...] = ()


@dataclass(frozen=True)
class Alias:
    target: str


Action = Union[External, Handler, Alias]


@dataclass(frozen=True)
class CommandDef:
    token: str
    action: Action
    description: str = ""

    def __post_init__(self) -> None:
        if not self.token.startswith("/"):
            raise ValueError(f"Command token must start with '/': {self.token!r}")
        if self.token != self.token.lower():
            raise ValueError(f"Command token must be lower-case: {self.token!r}")
        if not isinstance(self.action, (External, Handler, Alias)):
            raise TypeError(
                f"{self.token}: action must be External, Handler or Alias, "
                f"not {type(self.action).__name__}"
            )

    @property
    def is_alias(self) -> bool:
        return isinstance(self.action, Alias)


class CommandTable:
    """Immutable registry of :class:`CommandDef` entries."""

    def __init__(self, entries: Iterable[CommandDef]) -> None:
        table: dict[str, CommandDef] = {}
        for entry in entries:
            if entry.token in table:
                raise ValueError(f"Duplicate command token: {entry.token}")
            table[entry.token] = entry
        for entry in table.values():
            if isinstance(entry.action, Alias):
                target = table.get(entry.action.target)
                if target is None:
                    raise ValueError(f"{entry.token} aliases unknown command {entry.action.target}")
                if target.is_alias:
                    raise ValueError(f"{entry.token} aliases another alias ({target.token})")
        self._entries = table

    def __contains__(self, token: object) -> bool:
        return isinstance(token, str) and token.lower() in self._entries

    def __iter__(self) -> Iterator[CommandDef]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, token: str) -> CommandDef | None:
        """Return the raw entry for *token*, without following aliases."""
        return self._entries.get(token.lower())

    def resolve(self, token: str) -> CommandDef | None:
        """Return the canonical entry for *token*, following one alias hop."""
        entry = self.get(token)
        if entry is not None and isinstance(entry.action, Alias):
            return self._entries[entry.action.target]
        return entry

    def aliases_of(self, token: str) -> list[str]:
        return [
            e.token for e in self._entries.values()
            if isinstance(e.action, Alias) and e.action.target == token
        ]
