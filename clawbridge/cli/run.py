"""Single-utterance CLI entry point.

Pushes one utterance through the same pairing / command / chat pipeline the
webhook uses, prints the reply, and exits. The sender is treated as already
paired, so commands and chat can be tried without the chat platform.

Usage::

    clawbridge-run "/status"
    clawbridge-run "/think high why is the sky blue?"
    clawbridge-run --file question.txt
    echo "/model list" | clawbridge-run -
    clawbridge-run --callback "/clear"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from clawbridge.runtime.config.settings import cfg
from clawbridge.runtime.messaging.commands import CommandDispatcher
from clawbridge.runtime.messaging.message_processor import SERVER_ERROR_TEXT, MessageProcessor
from clawbridge.runtime.messaging.replies import Reply, ResponseMode, Route
from clawbridge.runtime.services.cli_runner import CliRunner
from clawbridge.runtime.services.gateway import GatewayClient
from clawbridge.runtime.state.pairing import PairingStore
from clawbridge.runtime.state.session_store import ConversationStore

logger = logging.getLogger(__name__)
console = Console()

DEFAULT_USER = "cli-user"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clawbridge-run",
        description="Send one utterance through the bridge and print the reply.",
    )
    parser.add_argument(
        "utterance",
        nargs="?",
        default=None,
        help="The message or slash command.  Use '-' to read from stdin.",
    )
    parser.add_argument(
        "-f", "--file",
        type=str,
        default=None,
        help="Read the utterance from a file.",
    )
    parser.add_argument(
        "--user",
        type=str,
        default=DEFAULT_USER,
        help=f"Sender id to use (default: {DEFAULT_USER}).",
    )
    parser.add_argument(
        "--callback",
        action="store_true",
        default=False,
        help="Decide as on the callback path (attaches the callback quick replies).",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Print only the reply text.",
    )
    return parser


def _resolve_utterance(args: argparse.Namespace) -> str:
    """Return the utterance from args, file, or stdin."""
    if args.file:
        path = Path(args.file)
        if not path.is_file():
            console.print(f"[red]Error:[/red] file not found: {path}")
            sys.exit(1)
        return path.read_text().strip()

    if args.utterance == "-":
        if sys.stdin.isatty():
            console.print("[red]Error:[/red] stdin is a TTY but '-' was specified. Pipe input or use an argument.")
            sys.exit(1)
        return sys.stdin.read().strip()

    if args.utterance:
        return args.utterance

    console.print("[red]Error:[/red] no utterance provided. Use a positional argument, --file, or pipe to stdin with '-'.")
    sys.exit(1)


def _build_processor(user_id: str) -> tuple[MessageProcessor, GatewayClient]:
    """Wire a processor from ``cfg`` with *user_id* already paired."""
    # A throwaway code keeps the real one out of the process.
    pairing = PairingStore(pairing_code="cli")
    pairing.verify_pairing_code(user_id, "cli", name="cli")

    conversations = ConversationStore(cfg.history_max_messages)
    runner = CliRunner(cfg.cli_program, cfg.cli_timeout, cfg.cli_unknown_markers)
    gateway = GatewayClient(
        cfg.gateway_url,
        token=cfg.gateway_token,
        model=cfg.model,
        system_prompt=cfg.system_prompt,
        history_limit=cfg.history_limit,
        timeout=cfg.gateway_timeout,
    )
    dispatcher = CommandDispatcher(runner, conversations, gateway=gateway, settings=cfg)
    return MessageProcessor(dispatcher, conversations, pairing, gateway), gateway


def _print_reply(reply: Reply, *, quiet: bool) -> None:
    if quiet:
        console.print(reply.text, markup=False, highlight=False)
        return
    console.print(Panel(Text(reply.text), title=f"[bold]{reply.route.value}[/bold]", expand=False))
    if reply.quick_replies:
        labels = "  ".join(f"[cyan]{qr.label}[/cyan] -> {qr.message}" for qr in reply.quick_replies)
        console.print(f"[dim]Quick replies:[/dim] {labels}")


async def _run(args: argparse.Namespace) -> int:
    utterance = _resolve_utterance(args)
    mode = ResponseMode.CALLBACK if args.callback else ResponseMode.SYNC

    if not args.quiet:
        console.print(f"[bold green]clawbridge-run[/bold green] -> {cfg.gateway_url}\n")

    processor, gateway = _build_processor(args.user)
    exit_code = 0
    try:
        reply = await processor.decide(args.user, utterance, mode)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        exit_code = 130
    except Exception as exc:
        logger.error("[cli] pipeline error: %s", exc, exc_info=True)
        reply = Reply(f"{SERVER_ERROR_TEXT}\n\n{exc}", Route.ERROR)
        exit_code = 1
    finally:
        await gateway.close()

    if exit_code != 130:
        _print_reply(reply, quiet=args.quiet)

    return exit_code


def main() -> None:
    """CLI entry point for ``clawbridge-run``."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.utterance is None and args.file is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )

    try:
        code = asyncio.run(_run(args))
    except KeyboardInterrupt:
        code = 130

    sys.exit(code)


if __name__ == "__main__":
    main()
