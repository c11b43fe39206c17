"""Bot Framework endpoint -- POST /api/messages."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from aiohttp import web
from botbuilder.schema import Activity

from ..config.settings import cfg

if TYPE_CHECKING:
    from botbuilder.core import BotFrameworkAdapter

    from ..messaging.bot import Bot

logger = logging.getLogger(__name__)


class BotEndpoint:
    """Hands incoming Bot Framework activities to the adapter."""

    def __init__(self, adapter: BotFrameworkAdapter, bot: Bot) -> None:
        self.adapter = adapter
        self._bot = bot

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/messages", self.handle)
        router.add_get("/api/messages", self._get_messages)

    async def _get_messages(self, _req: web.Request) -> web.Response:
        """GET /api/messages -- simple health probe for the bot endpoint."""
        return web.json_response({
            "status": "ok",
            "endpoint": "/api/messages",
            "method": "POST required",
            "bot_configured": cfg.bot_configured,
        })

    async def handle(self, req: web.Request) -> web.Response:
        if not cfg.bot_configured:
            logger.warning("[bot] Rejected activity from %s: credentials not configured", req.remote)
            return web.json_response(
                {"status": "error", "message": "Bot credentials not configured"},
                status=503,
            )

        raw_body = await req.read()
        try:
            body = json.loads(raw_body)
        except ValueError as exc:
            logger.warning("[bot] Invalid JSON body from %s: %s", req.remote, exc)
            return web.json_response(
                {"status": "error", "message": f"Invalid JSON: {exc}"},
                status=400,
            )
        if not isinstance(body, dict):
            return web.json_response(
                {"status": "error", "message": "Activity must be a JSON object"},
                status=400,
            )

        activity_type = body.get("type", "?")
        channel = body.get("channelId", "?")
        logger.debug("[bot] Activity: type=%s channel=%s", activity_type, channel)

        try:
            activity = Activity().deserialize(body)
            auth_header = req.headers.get("Authorization", "")
            response = await self.adapter.process_activity(activity, auth_header, self._bot.on_turn)
            if response:
                return web.Response(
                    status=response.status,
                    body=response.body,
                    content_type="application/json",
                )
            return web.Response(status=200)
        except PermissionError as exc:
            logger.warning("[bot] Authentication failed (401): %s", exc)
            return web.Response(status=401, text=str(exc))
        except Exception as exc:
            logger.exception(
                "[bot] Error processing activity: %s (type=%s channel=%s)",
                exc, activity_type, channel,
            )
            return web.json_response(
                {"status": "error", "message": "Processing failed"},
                status=500,
            )
