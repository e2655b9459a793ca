"""External CLI invocation -- runs ``clawdbot`` sub-commands in a shell."""

from __future__ import annotations

import asyncio
import enum
import logging
import os
import re
import shlex
import signal
from collections.abc import Iterable

from ..config.settings import DEFAULT_UNKNOWN_MARKERS

logger = logging.getLogger(__name__)

_ANSI_RE = re.compile(r"\x1B(?:\[[0-?]*[ -/]*[@-~]|[@-Z\\-_])")

# POSIX shells exit with 127 when the program cannot be found.
_EXIT_NOT_FOUND = 127

_READ_CHUNK = 4096
_DRAIN_GRACE = 1.0


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text or "")


def shell_quote(text: str) -> str:
    return shlex.quote(text)


def quote_args(args: str) -> str:
    """Quote each whitespace-separated word of user-supplied *args*."""
    return " ".join(shlex.quote(word) for word in args.split())


class CliErrorKind(enum.Enum):
    TIMEOUT = "timeout"
    EXIT = "exit"
    UNKNOWN_COMMAND = "unknown_command"
    NOT_FOUND = "not_found"


class CliError(Exception):
    """A CLI invocation that failed without producing usable output."""

    def __init__(
        self,
        message: str,
        *,
        kind: CliErrorKind,
        exit_code: int | None = None,
        output: str = "",
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.exit_code = exit_code
        self.output = output


class CliRunner:
    """Runs command lines with a wall-clock limit and colour disabled."""

    def __init__(
        self,
        program: str = "clawdbot",
        timeout: float = 30.0,
        unknown_markers: Iterable[str] = DEFAULT_UNKNOWN_MARKERS,
    ) -> None:
        self.program = program
        self.timeout = timeout
        self._unknown_markers = tuple(m.lower() for m in unknown_markers)

    def command_line(self, *parts: str) -> str:
        """Join ``program`` and *parts*, skipping empty parts."""
        return " ".join([self.program, *(p for p in parts if p)])

    async def run(self, command: str, timeout: float | None = None) -> str:
        """Run *command* and return its escape-stripped output.

        Output captured before a timeout or non-zero exit is preferred over
        raising; :class:`CliError` is raised only when there is nothing to
        show.
        """
        limit = self.timeout if timeout is None else timeout
        logger.debug("[cli.run] executing: %s (timeout=%.0fs)", command, limit)
        env = {**os.environ, "FORCE_COLOR": "0", "NO_COLOR": "1"}

        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                start_new_session=True,
            )
        except OSError as exc:
            raise CliError(
                f"Failed to start '{command}': {exc}", kind=CliErrorKind.NOT_FOUND,
            ) from exc

        out_buf = bytearray()
        err_buf = bytearray()
        readers = asyncio.gather(
            _pump(proc.stdout, out_buf),
            _pump(proc.stderr, err_buf),
        )

        timed_out = False
        try:
            await asyncio.wait_for(proc.wait(), timeout=limit)
        except TimeoutError:
            timed_out = True
            _kill_group(proc)
            await proc.wait()

        try:
            await asyncio.wait_for(readers, timeout=_DRAIN_GRACE)
        except TimeoutError:
            readers.cancel()
            logger.warning("[cli.run] output pipes still open after exit: %s", command)

        stdout = strip_ansi(out_buf.decode("utf-8", errors="replace")).strip()
        stderr = strip_ansi(err_buf.decode("utf-8", errors="replace")).strip()

        if timed_out:
            logger.error("[cli.run] timed out after %.0fs: %s", limit, command)
            if stdout:
                return stdout
            raise CliError(
                f"Command timed out after {limit:.0f}s: {command}",
                kind=CliErrorKind.TIMEOUT,
                output=stderr,
            )

        if proc.returncode == 0:
            output = stdout or stderr
            logger.debug("[cli.run] output: %s", output[:200])
            return output

        logger.error("[cli.run] exit %s: %s -- %s", proc.returncode, command, stderr[:200])
        if stdout:
            return stdout
        raise CliError(
            f"Command failed (exit {proc.returncode}): {command}\n{stderr}".rstrip(),
            kind=self.classify(proc.returncode, stderr),
            exit_code=proc.returncode,
            output=stderr,
        )

    def classify(self, exit_code: int | None, output: str) -> CliErrorKind:
        """Map a failed exit to a :class:`CliErrorKind`."""
        if exit_code == _EXIT_NOT_FOUND:
            return CliErrorKind.NOT_FOUND
        lowered = output.lower()
        if any(marker in lowered for marker in self._unknown_markers):
            return CliErrorKind.UNKNOWN_COMMAND
        return CliErrorKind.EXIT


async def _pump(stream: asyncio.StreamReader | None, buf: bytearray) -> None:
    if stream is None:
        return
    while chunk := await stream.read(_READ_CHUNK):
        buf.extend(chunk)


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    # The shell runs in its own session; kill it together with its children.
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        try:
            proc.kill()
        except ProcessLookupError:
            pass
