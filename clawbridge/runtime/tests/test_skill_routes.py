"""Tests for the skill webhook via real HTTP calls.

The app is built with ``create_app`` and fake collaborators, then driven
through a TestClient, verifying that:
  - requests without a callback URL are answered inline
  - requests with a callback URL are acknowledged at once and the final
    answer is POSTed to the callback URL
  - malformed payloads get a 400 envelope, unexpected errors a 500
  - /health reports session stats
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from clawbridge.runtime.config.settings import Settings
from clawbridge.runtime.messaging.kakao import CallbackClient
from clawbridge.runtime.messaging.message_processor import (
    PROCESSING_ERROR_TEXT,
    SERVER_ERROR_TEXT,
    THINKING_TEXT,
    UNVERIFIED_TEXT,
)
from clawbridge.runtime.server.app import create_app
from clawbridge.runtime.server.routes.skill_routes import INVALID_REQUEST_TEXT
from clawbridge.runtime.services.cli_runner import CliRunner
from clawbridge.runtime.services.gateway import ChatReply
from clawbridge.runtime.state.pairing import PairingStore
from clawbridge.runtime.state.session_store import ConversationStore


# -- helpers ----------------------------------------------------------------


class _Receiver:
    """Stands in for the platform's callback endpoint."""

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []
        self.arrived = asyncio.Event()

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/cb", self._handle)
        return app

    async def _handle(self, req: web.Request) -> web.Response:
        self.payloads.append(await req.json())
        self.arrived.set()
        return web.json_response({"status": "SUCCESS"})


def _payload(utterance: str, user_id: str = "paired", **extra: Any) -> dict[str, Any]:
    user_request: dict[str, Any] = {"utterance": utterance, "user": {"id": user_id}}
    user_request.update(extra)
    return {"userRequest": user_request}


def _texts(body: dict[str, Any]) -> list[str]:
    return [o["simpleText"]["text"] for o in body["template"]["outputs"]]


class _Bridge:
    """create_app wired to mocks, with handles kept for assertions."""

    def __init__(self) -> None:
        self.settings = Settings()
        self.runner = CliRunner(program="clawdbot")
        self.runner.run = AsyncMock(return_value="status ok")  # type: ignore[method-assign]
        self.gateway = MagicMock()
        self.gateway.ask = AsyncMock(return_value=ChatReply(text="AI answer"))
        self.gateway.check_health = AsyncMock(return_value=True)
        self.gateway.close = AsyncMock()
        self.pairing = PairingStore("code123")
        self.pairing.verify_pairing_code("paired", "code123", "Jane")
        self.conversations = ConversationStore(verified_count=lambda: self.pairing.verified_count)
        self.callbacks = CallbackClient(timeout=5.0)

    def app(self) -> web.Application:
        return create_app(
            self.settings,
            runner=self.runner,
            gateway=self.gateway,
            callbacks=self.callbacks,
            conversations=self.conversations,
            pairing=self.pairing,
        )


@pytest.fixture()
def bridge(data_dir) -> _Bridge:
    return _Bridge()


# -- tests ------------------------------------------------------------------


class TestSyncPath:
    @pytest.mark.asyncio
    async def test_chat_answered_inline(self, bridge: _Bridge) -> None:
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.post("/skill", json=_payload("hello"))
            assert resp.status == 200
            body = await resp.json()
        assert body["version"] == "2.0"
        assert _texts(body) == ["AI answer"]
        assert "quickReplies" not in body["template"]
        assert "useCallback" not in body

    @pytest.mark.asyncio
    async def test_command_answered_inline(self, bridge: _Bridge) -> None:
        async with TestClient(TestServer(bridge.app())) as client:
            body = await (await client.post("/skill", json=_payload("/status"))).json()
        assert _texts(body) == ["status ok"]
        bridge.gateway.ask.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unverified_sender(self, bridge: _Bridge) -> None:
        async with TestClient(TestServer(bridge.app())) as client:
            body = await (await client.post("/skill", json=_payload("hi", user_id="stranger"))).json()
        assert _texts(body) == [UNVERIFIED_TEXT]

    @pytest.mark.asyncio
    async def test_bot_user_key_preferred(self, bridge: _Bridge) -> None:
        bridge.pairing.verify_pairing_code("bk-1", "code123")
        payload = {
            "userRequest": {
                "utterance": "hello",
                "user": {"id": "raw-id", "properties": {"botUserKey": "bk-1"}},
            },
            "bot": {"id": "ignored"},
        }
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.post("/skill", json=payload)
            assert resp.status == 200
        assert bridge.gateway.ask.call_args.args[1] == "bk-1"

    @pytest.mark.asyncio
    async def test_null_properties_fall_back_to_user_id(self, bridge: _Bridge) -> None:
        payload = {"userRequest": {"utterance": "hello", "user": {"id": "paired", "properties": None}}}
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.post("/skill", json=payload)
            assert resp.status == 200
        assert bridge.gateway.ask.call_args.args[1] == "paired"

    @pytest.mark.asyncio
    async def test_slow_reply_logs_warning(self, bridge: _Bridge, caplog) -> None:
        bridge.settings.sync_budget = 0.0

        async def _slow(*_args: Any) -> ChatReply:
            await asyncio.sleep(0.05)
            return ChatReply(text="late")

        bridge.gateway.ask.side_effect = _slow
        with caplog.at_level(logging.WARNING):
            async with TestClient(TestServer(bridge.app())) as client:
                body = await (await client.post("/skill", json=_payload("hello"))).json()
        assert _texts(body) == ["late"]
        assert any("[skill.sync]" in r.getMessage() for r in caplog.records)


class TestMalformed:
    @pytest.mark.asyncio
    async def test_invalid_json(self, bridge: _Bridge) -> None:
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.post(
                "/skill", data="{not json", headers={"Content-Type": "application/json"},
            )
            assert resp.status == 400
            body = await resp.json()
        assert _texts(body) == [INVALID_REQUEST_TEXT]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {},
        [],
        {"userRequest": {"user": {"id": "u1"}}},
        {"userRequest": {"utterance": "hi"}},
    ])
    async def test_missing_fields(self, bridge: _Bridge, payload: Any) -> None:
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.post("/skill", json=payload)
            assert resp.status == 400
        bridge.gateway.ask.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unexpected_error_is_500(self, bridge: _Bridge) -> None:
        bridge.gateway.ask.side_effect = RuntimeError("boom")
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.post("/skill", json=_payload("hello"))
            assert resp.status == 500
            body = await resp.json()
        assert _texts(body) == [SERVER_ERROR_TEXT]
        assert "boom" not in str(body)


class TestCallbackPath:
    @pytest.mark.asyncio
    async def test_immediate_ack_then_callback(self, bridge: _Bridge) -> None:
        receiver = _Receiver()
        async with TestServer(receiver.app()) as cb_server:
            url = str(cb_server.make_url("/cb"))
            async with TestClient(TestServer(bridge.app())) as client:
                resp = await client.post("/skill", json=_payload("hello", callbackUrl=url))
                assert resp.status == 200
                body = await resp.json()
                assert body == {"version": "2.0", "useCallback": True, "data": {"text": THINKING_TEXT}}
                await asyncio.wait_for(receiver.arrived.wait(), timeout=5.0)

        final = receiver.payloads[0]
        assert _texts(final) == ["AI answer"]
        assert [q["messageText"] for q in final["template"]["quickReplies"]]

    @pytest.mark.asyncio
    async def test_processing_failure_sends_error_callback(self, bridge: _Bridge) -> None:
        bridge.gateway.ask.side_effect = RuntimeError("boom")
        receiver = _Receiver()
        async with TestServer(receiver.app()) as cb_server:
            url = str(cb_server.make_url("/cb"))
            async with TestClient(TestServer(bridge.app())) as client:
                resp = await client.post("/skill", json=_payload("hello", callbackUrl=url))
                assert resp.status == 200
                await asyncio.wait_for(receiver.arrived.wait(), timeout=5.0)

        error = receiver.payloads[0]
        assert error["data"] == {"error": True}
        assert _texts(error) == [PROCESSING_ERROR_TEXT]

    @pytest.mark.asyncio
    async def test_unreachable_callback_does_not_break_webhook(self, bridge: _Bridge) -> None:
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.post(
                "/skill", json=_payload("hello", callbackUrl="http://127.0.0.1:1/cb"),
            )
            assert resp.status == 200
            second = await client.post("/skill", json=_payload("/status"))
            assert second.status == 200


class TestHealth:
    @pytest.mark.asyncio
    async def test_reports_stats(self, bridge: _Bridge) -> None:
        bridge.conversations.add_message("paired", "user", "hi")
        async with TestClient(TestServer(bridge.app())) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            body = await resp.json()
        assert body["status"] == "ok"
        assert body["uptime"] >= 0
        assert body["sessions"] == {"active_sessions": 1, "total_messages": 1, "verified_users": 1}
