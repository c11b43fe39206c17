"""Bot Framework ActivityHandler -- routes channel messages to the dispatcher."""

from __future__ import annotations

import logging

from botbuilder.core import ActivityHandler, TurnContext
from botbuilder.schema import Activity, ActivityTypes, ChannelAccount

from .commands import CommandDispatcher, IncomingMessage

logger = logging.getLogger(__name__)


class Bot(ActivityHandler):
    def __init__(self, dispatcher: CommandDispatcher) -> None:
        self._dispatcher = dispatcher

    async def on_message_activity(self, turn_context: TurnContext) -> None:
        message = to_incoming_message(turn_context.activity)
        if not message.text.strip():
            return

        async def reply_fn(text: str) -> None:
            await _reply(turn_context, text)

        handled = await self._dispatcher.try_handle(message, reply_fn)
        if not handled:
            logger.debug("[bot] Ignored line in %s: %r", message.channel, message.text[:60])

    async def on_members_added_activity(
        self,
        members_added: list[ChannelAccount],
        turn_context: TurnContext,
    ) -> None:
        for member in members_added:
            if member.id != turn_context.activity.recipient.id:
                logger.info("[bot] Member joined %s: %s", turn_context.activity.channel_id, member.id)


def to_incoming_message(activity: Activity) -> IncomingMessage:
    conversation = activity.conversation
    conversation_id = conversation.id if conversation and conversation.id else ""
    channel = f"{activity.channel_id or 'unknown'}:{conversation_id}"
    sender = activity.from_property.id if activity.from_property and activity.from_property.id else "?"
    return IncomingMessage(
        channel=channel,
        sender=sender,
        text=activity.text or "",
        is_group=bool(conversation and conversation.is_group),
    )


async def _reply(ctx: TurnContext, text: str) -> None:
    await ctx.send_activity(
        Activity(type=ActivityTypes.message, text=text, text_format="plain")
    )
