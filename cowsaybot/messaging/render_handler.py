"""Render pipeline -- trigger command in, rendered art out."""

from __future__ import annotations

import logging

from ..services.renderer import RenderRequest, SubprocessRenderer
from .commands import IncomingMessage, ReplyFn
from .matcher import CommandMatcher
from .variants import resolve_flags

logger = logging.getLogger(__name__)


class RenderCommandHandler:
    """Runs matcher, variant resolver and renderer for one chat message.

    This is the only place render failures and unexpected errors are
    logged and dropped; the channel either gets the art or nothing.
    """

    name = "render"

    def __init__(self, renderer: SubprocessRenderer, matcher: CommandMatcher | None = None) -> None:
        self._renderer = renderer
        self._matcher = matcher or CommandMatcher()

    @property
    def matcher(self) -> CommandMatcher:
        return self._matcher

    async def try_handle(self, message: IncomingMessage, reply: ReplyFn) -> bool:
        try:
            parsed = self._matcher.match(message.text)
            if parsed is None:
                return False

            request = RenderRequest(
                flags=resolve_flags(parsed.command),
                payload=parsed.payload,
                timeout=self._renderer.timeout,
            )
            result = await self._renderer.render(request)
            if not result:
                logger.warning(
                    "[render] %s from %s in %s failed (%s): %s",
                    parsed.command.value, message.sender, message.channel,
                    getattr(result.value, "value", result.value), result.message,
                )
                return True

            text = result.value.rstrip()
            if not text.strip():
                logger.info("[render] %s produced no output; nothing sent", parsed.command.value)
                return True

            await reply(text)
            return True
        except Exception:
            logger.exception(
                "[render] Unhandled error for message from %s in %s: %r",
                message.sender, message.channel, message.text[:200],
            )
            return True
