"""Webhook server -- app factory and entry point."""

from __future__ import annotations

import logging

from aiohttp import web

from .. import __version__
from ..config.settings import Settings, cfg
from ..messaging.commands import CommandDispatcher
from ..messaging.kakao import CallbackClient
from ..messaging.message_processor import MessageProcessor
from ..services.cli_runner import CliRunner
from ..services.gateway import GatewayClient
from ..state.pairing import PairingStore
from ..state.session_store import ConversationStore
from .middleware import QuietAccessLogger, error_middleware, request_log_middleware
from .routes import SkillRoutes

logger = logging.getLogger(__name__)

_NOISY_LOGGERS = ("aiohttp.client", "aiohttp.internal", "asyncio")


def _quiet_noisy_loggers() -> None:
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def create_app(
    settings: Settings | None = None,
    *,
    runner: CliRunner | None = None,
    gateway: GatewayClient | None = None,
    callbacks: CallbackClient | None = None,
    conversations: ConversationStore | None = None,
    pairing: PairingStore | None = None,
) -> web.Application:
    """Wire the bridge together; every collaborator can be swapped in tests."""
    settings = settings or cfg

    if pairing is None:
        pairing = PairingStore(settings.pairing_code)
    if conversations is None:
        store = pairing
        conversations = ConversationStore(
            settings.history_max_messages,
            verified_count=lambda: store.verified_count,
        )
    if runner is None:
        runner = CliRunner(
            settings.cli_program,
            settings.cli_timeout,
            settings.cli_unknown_markers,
        )
    if gateway is None:
        gateway = GatewayClient(
            settings.gateway_url,
            token=settings.gateway_token,
            model=settings.model,
            system_prompt=settings.system_prompt,
            history_limit=settings.history_limit,
            timeout=settings.gateway_timeout,
        )
    if callbacks is None:
        callbacks = CallbackClient(settings.callback_timeout)

    dispatcher = CommandDispatcher(runner, conversations, gateway=gateway, settings=settings)
    processor = MessageProcessor(dispatcher, conversations, pairing, gateway)
    skill_routes = SkillRoutes(processor, callbacks, conversations, settings=settings)

    app = web.Application(middlewares=[request_log_middleware, error_middleware])
    skill_routes.register(app.router)

    async def _on_cleanup(_app: web.Application) -> None:
        await skill_routes.wait_pending()
        await gateway.close()
        await callbacks.close()

    app.on_cleanup.append(_on_cleanup)
    return app


def main() -> None:
    import argparse

    parser = argparse.ArgumentParser(description="KakaoTalk skill server for Clawdbot")
    parser.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0).")
    parser.add_argument("--port", type=int, default=None, help="Port (default: PORT or 8080).")
    args = parser.parse_args()

    cfg.reload()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    _quiet_noisy_loggers()

    if cfg.ensure_pairing_code():
        logger.info("Generated PAIRING_CODE (persisted to %s)", cfg.env.path)
        # Print to stdout so the code is visible regardless of log level.
        print(f"\n  --> pairing code: {cfg.pairing_code}\n", flush=True)

    host = args.host or cfg.host
    port = args.port or cfg.port
    logger.info("clawbridge %s on %s:%d", __version__, host, port)
    logger.info("Settings: %s", cfg.redacted())
    logger.info("Webhook URL: http://localhost:%d/skill", port)

    web.run_app(create_app(), host=host, port=port, access_log_class=QuietAccessLogger)


if __name__ == "__main__":
    main()
