"""Tests for the Clawdbot gateway client against a fake gateway."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from clawbridge.runtime.services.gateway import (
    EMPTY_REPLY,
    FAILURE_REPLY,
    TIMEOUT_REPLY,
    GatewayClient,
)
from clawbridge.runtime.state.session_store import ChatMessage


class FakeGateway:
    """Records chat-completions requests and answers as configured."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []
        self.headers: list[dict[str, str]] = []
        self.status = 200
        self.body: Any = {
            "choices": [{"message": {"role": "assistant", "content": "Hi from Clawdbot"}}],
            "usage": {"total_tokens": 12},
        }
        self.delay = 0.0

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/v1/chat/completions", self._complete)
        app.router.add_get("/health", self._health)
        return app

    async def _complete(self, req: web.Request) -> web.Response:
        self.requests.append(await req.json())
        self.headers.append(dict(req.headers))
        if self.delay:
            await asyncio.sleep(self.delay)
        return web.json_response(self.body, status=self.status)

    async def _health(self, _req: web.Request) -> web.Response:
        return web.json_response({"ok": True})


def _history(*pairs: tuple[str, str]) -> list[ChatMessage]:
    return [ChatMessage(role=role, content=content) for role, content in pairs]  # type: ignore[arg-type]


class TestBuildRequest:
    def test_minimal_body(self) -> None:
        client = GatewayClient("http://gw")
        body = client.build_request("hello", [])
        assert body == {"messages": [{"role": "user", "content": "hello"}], "stream": False}

    def test_system_prompt_history_and_model(self) -> None:
        client = GatewayClient("http://gw", model="sonnet", system_prompt="Be brief.", history_limit=2)
        history = _history(("user", "one"), ("assistant", "two"), ("user", "three"))
        body = client.build_request("four", history)
        assert body["model"] == "sonnet"
        assert body["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "assistant", "content": "two"},
            {"role": "user", "content": "three"},
            {"role": "user", "content": "four"},
        ]

    def test_zero_history_limit(self) -> None:
        client = GatewayClient("http://gw", history_limit=0)
        body = client.build_request("x", _history(("user", "old")))
        assert body["messages"] == [{"role": "user", "content": "x"}]

    def test_directives_prefix_turn_and_model_override(self) -> None:
        client = GatewayClient("http://gw", model="sonnet")
        body = client.build_request("compare", [], ["/think high", "/model opus"])
        assert body["messages"][-1]["content"] == "/think high /model opus compare"
        assert body["model"] == "opus"


class TestAsk:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        fake = FakeGateway()
        async with TestServer(fake.app()) as server:
            client = GatewayClient(str(server.make_url("")), token="tok")
            try:
                reply = await client.ask("hello", "u1", _history(("user", "earlier")))
            finally:
                await client.close()
        assert reply.text == "Hi from Clawdbot"
        assert reply.metadata["usage"] == {"total_tokens": 12}
        assert reply.metadata["processing_ms"] >= 0
        assert fake.requests[0]["stream"] is False
        assert fake.requests[0]["messages"][-1] == {"role": "user", "content": "hello"}
        assert fake.headers[0]["Authorization"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_no_token_no_auth_header(self) -> None:
        fake = FakeGateway()
        async with TestServer(fake.app()) as server:
            client = GatewayClient(str(server.make_url("")))
            try:
                await client.ask("hello", "u1")
            finally:
                await client.close()
        assert "Authorization" not in fake.headers[0]
        assert "model" not in fake.requests[0]

    @pytest.mark.asyncio
    async def test_directives_in_metadata(self) -> None:
        fake = FakeGateway()
        async with TestServer(fake.app()) as server:
            client = GatewayClient(str(server.make_url("")))
            try:
                reply = await client.ask("why", "u1", directives=["/think high"])
            finally:
                await client.close()
        assert reply.metadata["directives"] == ["/think high"]
        assert fake.requests[0]["messages"][-1]["content"] == "/think high why"

    @pytest.mark.asyncio
    async def test_error_status_gives_fallback(self) -> None:
        fake = FakeGateway()
        fake.status = 502
        fake.body = {"error": "upstream"}
        async with TestServer(fake.app()) as server:
            client = GatewayClient(str(server.make_url("")))
            try:
                reply = await client.ask("hello", "u1")
            finally:
                await client.close()
        assert reply.text == FAILURE_REPLY
        assert reply.metadata["error"] == "GatewayError"

    @pytest.mark.asyncio
    async def test_empty_content_gives_no_response_text(self) -> None:
        fake = FakeGateway()
        fake.body = {"choices": []}
        async with TestServer(fake.app()) as server:
            client = GatewayClient(str(server.make_url("")))
            try:
                reply = await client.ask("hello", "u1")
            finally:
                await client.close()
        assert reply.text == EMPTY_REPLY

    @pytest.mark.asyncio
    async def test_timeout_gives_timeout_text(self) -> None:
        fake = FakeGateway()
        fake.delay = 1.0
        async with TestServer(fake.app()) as server:
            client = GatewayClient(str(server.make_url("")), timeout=0.2)
            try:
                reply = await client.ask("hello", "u1")
            finally:
                await client.close()
        assert reply.text == TIMEOUT_REPLY

    @pytest.mark.asyncio
    async def test_unreachable_gives_fallback(self) -> None:
        client = GatewayClient("http://127.0.0.1:1", timeout=2.0)
        try:
            reply = await client.ask("hello", "u1")
        finally:
            await client.close()
        assert reply.text in (FAILURE_REPLY, TIMEOUT_REPLY)


class TestHealth:
    @pytest.mark.asyncio
    async def test_reachable(self) -> None:
        fake = FakeGateway()
        async with TestServer(fake.app()) as server:
            client = GatewayClient(str(server.make_url("")))
            try:
                assert await client.check_health() is True
            finally:
                await client.close()

    @pytest.mark.asyncio
    async def test_unreachable(self) -> None:
        client = GatewayClient("http://127.0.0.1:1")
        try:
            assert await client.check_health() is False
        finally:
            await client.close()
