"""HTTP middleware -- request logging, last-resort error envelopes, access log."""

from __future__ import annotations

import logging

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger

from ..messaging.kakao import text_response
from ..messaging.message_processor import SERVER_ERROR_TEXT

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes health-check polling to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        level = logging.DEBUG if request.path in _QUIET_PATHS else logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


@web.middleware
async def request_log_middleware(request: web.Request, handler):  # type: ignore[type-arg]
    logger.debug("[http] %s %s", request.method, request.path)
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler):  # type: ignore[type-arg]
    """Answer with a platform text envelope when a route raises."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception as exc:
        logger.error(
            "[http] %s %s failed: %s", request.method, request.path, exc, exc_info=True,
        )
        return web.json_response(text_response(SERVER_ERROR_TEXT), status=500)
