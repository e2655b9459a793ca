"""KakaoTalk skill-server envelopes and callback delivery.

Skill responses use the v2.0 template format::

    {"version": "2.0",
     "template": {"outputs": [{"simpleText": {"text": "..."}}],
                  "quickReplies": [{"label": "...", "action": "message",
                                    "messageText": "..."}]}}
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import aiohttp

from .replies import QuickReply

logger = logging.getLogger(__name__)

SKILL_VERSION = "2.0"
MAX_TEXT_LENGTH = 1000
MAX_OUTPUTS = 3
MAX_QUICK_REPLIES = 10

_TRUNCATION_MARK = "…"


class CallbackError(Exception):
    """The platform rejected or never received a callback POST."""


def split_message(text: str, max_len: int = MAX_TEXT_LENGTH) -> list[str]:
    if len(text) <= max_len:
        return [text]
    chunks: list[str] = []
    while text:
        if len(text) <= max_len:
            chunks.append(text)
            break
        split_at = text.rfind("\n", 0, max_len)
        if split_at < max_len // 2:
            split_at = text.rfind(" ", 0, max_len)
        if split_at < max_len // 2:
            split_at = max_len
        chunks.append(text[:split_at])
        text = text[split_at:].lstrip()
    return chunks


def _outputs(text: str) -> list[dict[str, Any]]:
    chunks = split_message(text or " ")
    if len(chunks) > MAX_OUTPUTS:
        chunks = chunks[:MAX_OUTPUTS]
        last = chunks[-1][: MAX_TEXT_LENGTH - len(_TRUNCATION_MARK)]
        chunks[-1] = last + _TRUNCATION_MARK
    return [{"simpleText": {"text": chunk}} for chunk in chunks]


def quick_reply_payload(quick_replies: Sequence[QuickReply]) -> list[dict[str, str]]:
    return [
        {"label": qr.label, "action": "message", "messageText": qr.message}
        for qr in list(quick_replies)[:MAX_QUICK_REPLIES]
    ]


def text_response(
    text: str, quick_replies: Sequence[QuickReply] | None = None,
) -> dict[str, Any]:
    template: dict[str, Any] = {"outputs": _outputs(text)}
    if quick_replies:
        template["quickReplies"] = quick_reply_payload(quick_replies)
    return {"version": SKILL_VERSION, "template": template}


def immediate_response(text: str) -> dict[str, Any]:
    """Provisional reply telling the platform the answer will arrive by callback."""
    return {"version": SKILL_VERSION, "useCallback": True, "data": {"text": text}}


def error_response(text: str) -> dict[str, Any]:
    response = text_response(text)
    response["data"] = {"error": True}
    return response


class CallbackClient:
    """POSTs final replies to the per-request callback URL."""

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    def _http(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def send_callback(
        self,
        url: str,
        text: str,
        quick_replies: Sequence[QuickReply] | None = None,
    ) -> None:
        await self._post(url, text_response(text, quick_replies))

    async def send_error_callback(self, url: str, text: str) -> None:
        await self._post(url, error_response(text))

    async def _post(self, url: str, payload: dict[str, Any]) -> None:
        try:
            async with self._http().post(
                url, json=payload, timeout=aiohttp.ClientTimeout(total=self._timeout),
            ) as resp:
                if resp.status >= 300:
                    detail = await resp.text()
                    raise CallbackError(f"Callback rejected (HTTP {resp.status}): {detail[:200]}")
        except aiohttp.ClientError as exc:
            raise CallbackError(f"Callback failed: {exc}") from exc
        except TimeoutError as exc:
            raise CallbackError(f"Callback timed out after {self._timeout:.0f}s") from exc
        logger.info("[kakao.callback] delivered to %s", url)
