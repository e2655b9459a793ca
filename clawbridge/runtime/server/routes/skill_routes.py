"""Kakao skill webhook routes -- POST /skill and GET /health."""

from __future__ import annotations

import asyncio
import json
import logging
import time

from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...config.settings import Settings, cfg
from ...messaging.commands import BOOT_TIME
from ...messaging.kakao import (
    CallbackClient,
    CallbackError,
    immediate_response,
    text_response,
)
from ...messaging.message_processor import (
    PROCESSING_ERROR_TEXT,
    THINKING_TEXT,
    MessageProcessor,
)
from ...messaging.replies import ResponseMode
from ...state.session_store import ConversationStore

logger = logging.getLogger(__name__)

INVALID_REQUEST_TEXT = "The request could not be read."


# -- inbound payload models ------------------------------------------------


class UserProperties(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bot_user_key: str | None = Field(default=None, alias="botUserKey")


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    properties: UserProperties | None = None


class UserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    utterance: str
    user: User
    callback_url: str | None = Field(default=None, alias="callbackUrl")

    @property
    def sender_id(self) -> str:
        props = self.user.properties
        return (props.bot_user_key if props else None) or self.user.id


class SkillRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_request: UserRequest = Field(alias="userRequest")


# -- routes ----------------------------------------------------------------


class SkillRoutes:
    """Webhook handler for the Kakao skill server.

    With a callback URL the handler answers at once with the provisional
    ``useCallback`` envelope and finishes the turn in a background task;
    without one it runs the turn inline and returns the final envelope.
    """

    def __init__(
        self,
        processor: MessageProcessor,
        callbacks: CallbackClient,
        conversations: ConversationStore,
        settings: Settings | None = None,
    ) -> None:
        self._processor = processor
        self._callbacks = callbacks
        self._conversations = conversations
        self._settings = settings or cfg
        self._tasks: set[asyncio.Task[None]] = set()

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/skill", self._skill)
        router.add_get("/health", self._health)

    async def wait_pending(self) -> None:
        """Let in-flight callback deliveries finish."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _health(self, _req: web.Request) -> web.Response:
        return web.json_response({
            "status": "ok",
            "uptime": round(time.monotonic() - BOOT_TIME, 3),
            "sessions": self._conversations.get_stats(),
        })

    async def _skill(self, req: web.Request) -> web.Response:
        try:
            payload = SkillRequest.model_validate(await req.json())
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning("[skill.request] malformed payload: %s", exc)
            return web.json_response(text_response(INVALID_REQUEST_TEXT), status=400)

        user_request = payload.user_request
        sender_id = user_request.sender_id
        utterance = user_request.utterance
        logger.info("[skill.request] from %s: %r", sender_id, utterance[:80])

        if user_request.callback_url:
            self._spawn(self._deliver(sender_id, utterance, user_request.callback_url))
            return web.json_response(immediate_response(THINKING_TEXT))

        started = time.monotonic()
        reply = await self._processor.decide(sender_id, utterance, ResponseMode.SYNC)
        elapsed = time.monotonic() - started
        if elapsed > self._settings.sync_budget:
            logger.warning(
                "[skill.sync] reply for %s took %.1fs (platform budget %.1fs)",
                sender_id, elapsed, self._settings.sync_budget,
            )
        return web.json_response(text_response(reply.text, reply.quick_replies))

    def _spawn(self, coro) -> None:  # type: ignore[no-untyped-def]
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _deliver(self, sender_id: str, utterance: str, callback_url: str) -> None:
        try:
            reply = await self._processor.decide(sender_id, utterance, ResponseMode.CALLBACK)
            await self._callbacks.send_callback(callback_url, reply.text, reply.quick_replies)
        except Exception as exc:
            logger.error("[skill.callback] processing for %s failed: %s", sender_id, exc, exc_info=True)
            try:
                await self._callbacks.send_error_callback(callback_url, PROCESSING_ERROR_TEXT)
            except CallbackError as cb_exc:
                logger.error("[skill.callback] error callback for %s failed: %s", sender_id, cb_exc)
