"""Clawdbot gateway client -- OpenAI-compatible chat completions over HTTP.

Slash commands never reach this module; it only relays free-form chat.
Failures are turned into a canned reply so the caller always has text to
deliver.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from ..state.session_store import ChatMessage

logger = logging.getLogger(__name__)

TIMEOUT_REPLY = (
    "⏳ The answer is taking a while. Please try again shortly, "
    "or ask a simpler question!"
)
FAILURE_REPLY = "Sorry, something went wrong while processing your message. Please try again shortly."
EMPTY_REPLY = "No response was received."

_HEALTH_TIMEOUT = 5.0
_MODEL_DIRECTIVE = "/model"


class GatewayError(Exception):
    """The gateway answered with an error status or an unreadable body."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass
class ChatReply:
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)


def _is_timeout(exc: BaseException) -> bool:
    if isinstance(exc, TimeoutError):
        return True
    text = str(exc).lower()
    return "timeout" in text or "timed out" in text or "etimedout" in text


def _model_override(directives: Sequence[str]) -> str | None:
    for directive in directives:
        head, _, value = directive.partition(" ")
        if head.lower() == _MODEL_DIRECTIVE and value.strip():
            return value.strip()
    return None


class GatewayClient:

    def __init__(
        self,
        base_url: str,
        *,
        token: str = "",
        model: str = "",
        system_prompt: str = "",
        history_limit: int = 10,
        timeout: float = 90.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token = token
        self._model = model
        self._system_prompt = system_prompt
        self._history_limit = history_limit
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def model(self) -> str:
        return self._model

    def _http(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def build_request(
        self,
        message: str,
        history: Sequence[ChatMessage],
        directives: Sequence[str] = (),
    ) -> dict[str, Any]:
        """Assemble the chat-completions body for one user turn."""
        messages: list[dict[str, str]] = []
        if self._system_prompt:
            messages.append({"role": "system", "content": self._system_prompt})
        recent = list(history)[-self._history_limit:] if self._history_limit > 0 else []
        messages.extend({"role": m.role, "content": m.content} for m in recent)
        content = " ".join([*directives, message]) if directives else message
        messages.append({"role": "user", "content": content})

        body: dict[str, Any] = {"messages": messages, "stream": False}
        model = _model_override(directives) or self._model
        if model:
            body["model"] = model
        return body

    async def ask(
        self,
        message: str,
        session_id: str,
        history: Sequence[ChatMessage] = (),
        directives: Sequence[str] = (),
    ) -> ChatReply:
        """Relay *message* and return the reply, or a fallback reply on failure."""
        logger.info("[gateway.ask] session=%s message=%r", session_id, message[:50])
        try:
            return await self._complete(message, history, directives)
        except Exception as exc:
            logger.error("[gateway.ask] failed for session=%s: %s", session_id, exc, exc_info=True)
            return ChatReply(
                text=TIMEOUT_REPLY if _is_timeout(exc) else FAILURE_REPLY,
                metadata={"error": type(exc).__name__, "processing_ms": 0},
            )

    async def _complete(
        self,
        message: str,
        history: Sequence[ChatMessage],
        directives: Sequence[str],
    ) -> ChatReply:
        started = time.monotonic()
        body = self.build_request(message, history, directives)
        url = f"{self.base_url}/v1/chat/completions"
        logger.debug("[gateway.ask] POST %s body=%s", url, json.dumps(body, ensure_ascii=False)[:500])

        async with self._http().post(
            url,
            json=body,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        ) as resp:
            if resp.status >= 300:
                detail = await resp.text()
                logger.error("[gateway.ask] HTTP %d: %s", resp.status, detail[:200])
                raise GatewayError(f"Gateway API error: {resp.status}", status=resp.status)
            try:
                data = await resp.json(content_type=None)
            except (json.JSONDecodeError, aiohttp.ContentTypeError) as exc:
                raise GatewayError(f"Unreadable gateway response: {exc}", status=resp.status) from exc

        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info("[gateway.ask] responded in %dms", elapsed_ms)
        metadata: dict[str, Any] = {"processing_ms": elapsed_ms}
        if directives:
            metadata["directives"] = list(directives)
        if isinstance(data, dict) and data.get("usage"):
            metadata["usage"] = data["usage"]
        return ChatReply(text=_reply_text(data) or EMPTY_REPLY, metadata=metadata)

    async def check_health(self) -> bool:
        try:
            async with self._http().get(
                f"{self.base_url}/health",
                timeout=aiohttp.ClientTimeout(total=_HEALTH_TIMEOUT),
            ) as resp:
                return resp.status < 300
        except Exception as exc:
            logger.debug("[gateway.health] unreachable: %s", exc)
            return False


def _reply_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    content = (choices[0].get("message") or {}).get("content")
    return content if isinstance(content, str) else ""
