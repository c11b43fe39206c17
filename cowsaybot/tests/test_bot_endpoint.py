"""Tests for BotEndpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from cowsaybot.server.bot_endpoint import BotEndpoint


@pytest.fixture()
def endpoint() -> BotEndpoint:
    adapter = AsyncMock()
    adapter.process_activity = AsyncMock(return_value=None)
    bot = AsyncMock()
    return BotEndpoint(adapter, bot)


def _patch_bot_creds():
    """Patch cfg in bot_endpoint module to report bot credentials as configured."""
    return patch.multiple(
        "cowsaybot.server.bot_endpoint.cfg",
        bot_app_id="test-id",
        bot_app_password="test-pw",
    )


def _app(endpoint: BotEndpoint) -> web.Application:
    app = web.Application()
    endpoint.register(app.router)
    return app


class TestHandle:
    @pytest.mark.asyncio
    async def test_no_credentials(self, endpoint: BotEndpoint) -> None:
        async with TestClient(TestServer(_app(endpoint))) as client:
            resp = await client.post("/api/messages", json={"type": "message"})
            assert resp.status == 503
            data = await resp.json()
            assert "not configured" in data["message"].lower()
        endpoint.adapter.process_activity.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_success(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            async with TestClient(TestServer(_app(endpoint))) as client:
                resp = await client.post(
                    "/api/messages",
                    json={"type": "message", "text": "!cowsay hi"},
                    headers={"Authorization": "Bearer fake"},
                )
                assert resp.status == 200
        args = endpoint.adapter.process_activity.call_args[0]
        assert args[1] == "Bearer fake"

    @pytest.mark.asyncio
    async def test_process_returns_response(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            mock_response = MagicMock()
            mock_response.status = 201
            mock_response.body = b'{"ok": true}'
            endpoint.adapter.process_activity.return_value = mock_response
            async with TestClient(TestServer(_app(endpoint))) as client:
                resp = await client.post(
                    "/api/messages",
                    json={"type": "message"},
                    headers={"Authorization": "Bearer fake"},
                )
                assert resp.status == 201

    @pytest.mark.asyncio
    async def test_invalid_json(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            async with TestClient(TestServer(_app(endpoint))) as client:
                resp = await client.post(
                    "/api/messages",
                    data=b"{not json",
                    headers={"Content-Type": "application/json"},
                )
                assert resp.status == 400
                data = await resp.json()
                assert "invalid json" in data["message"].lower()

    @pytest.mark.asyncio
    async def test_non_object_body(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            async with TestClient(TestServer(_app(endpoint))) as client:
                resp = await client.post("/api/messages", json=["message"])
                assert resp.status == 400

    @pytest.mark.asyncio
    async def test_permission_error(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            endpoint.adapter.process_activity.side_effect = PermissionError("denied")
            async with TestClient(TestServer(_app(endpoint))) as client:
                resp = await client.post(
                    "/api/messages",
                    json={"type": "message"},
                    headers={"Authorization": "Bearer fake"},
                )
                assert resp.status == 401

    @pytest.mark.asyncio
    async def test_internal_error(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            endpoint.adapter.process_activity.side_effect = RuntimeError("boom")
            async with TestClient(TestServer(_app(endpoint))) as client:
                resp = await client.post(
                    "/api/messages",
                    json={"type": "message"},
                    headers={"Authorization": "Bearer fake"},
                )
                assert resp.status == 500
                data = await resp.json()
                assert "boom" not in data["message"]

    @pytest.mark.asyncio
    async def test_passes_activity_object(self, endpoint: BotEndpoint) -> None:
        """process_activity must receive an Activity, not a raw dict."""
        from botbuilder.schema import Activity

        with _patch_bot_creds():
            async with TestClient(TestServer(_app(endpoint))) as client:
                resp = await client.post(
                    "/api/messages",
                    json={"type": "message", "text": "!tuxsay hi", "channelId": "slack"},
                    headers={"Authorization": "Bearer fake"},
                )
                assert resp.status == 200
                activity_arg = endpoint.adapter.process_activity.call_args[0][0]
                assert isinstance(activity_arg, Activity)
                assert activity_arg.type == "message"
                assert activity_arg.channel_id == "slack"
                assert activity_arg.text == "!tuxsay hi"

    @pytest.mark.asyncio
    async def test_turn_callback_is_bot(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            async with TestClient(TestServer(_app(endpoint))) as client:
                await client.post("/api/messages", json={"type": "message"})
        assert endpoint.adapter.process_activity.call_args[0][2] is endpoint._bot.on_turn


class TestProbe:
    @pytest.mark.asyncio
    async def test_get_messages_probe(self, endpoint: BotEndpoint) -> None:
        async with TestClient(TestServer(_app(endpoint))) as client:
            resp = await client.get("/api/messages")
            assert resp.status == 200
            data = await resp.json()
            assert data["status"] == "ok"
            assert data["method"] == "POST required"
            assert data["bot_configured"] is False

    @pytest.mark.asyncio
    async def test_probe_reports_credentials(self, endpoint: BotEndpoint) -> None:
        with _patch_bot_creds():
            async with TestClient(TestServer(_app(endpoint))) as client:
                data = await (await client.get("/api/messages")).json()
                assert data["bot_configured"] is True
