"""Handler collection -- offers each chat message to the registered handlers.

The dispatcher is shared by the Bot Framework handler and the console
harness so both apply the same cooldown and response-scope rules.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

ReplyFn = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class IncomingMessage:
    """A chat line as delivered by the protocol client."""

    channel: str
    sender: str
    text: str
    is_group: bool = True


class MessageHandler(Protocol):
    name: str

    async def try_handle(self, message: IncomingMessage, reply: ReplyFn) -> bool: ...


class ResponseScope(str, Enum):
    ANY = "any"
    CHANNEL = "channel"
    PRIVATE = "private"

    def allows(self, message: IncomingMessage) -> bool:
        if self is ResponseScope.CHANNEL:
            return message.is_group
        if self is ResponseScope.PRIVATE:
            return not message.is_group
        return True


@dataclass
class HandlerRegistration:
    handler: MessageHandler
    cooldown: float = 0.0
    scope: ResponseScope = ResponseScope.ANY
    last_handled: dict[str, float] = field(default_factory=dict)
    in_flight: set[str] = field(default_factory=set)

    def cooling_down(self, channel: str, now: float) -> bool:
        if channel in self.in_flight:
            return True
        last = self.last_handled.get(channel)
        return last is not None and now - last < self.cooldown

    def stamp(self, channel: str, now: float) -> None:
        """Start the cooldown in *channel*, dropping windows that have already closed."""
        self.last_handled = {c: t for c, t in self.last_handled.items() if now - t < self.cooldown}
        self.last_handled[channel] = now


class CommandDispatcher:
    """Ordered collection of message handlers.

    A message goes to each eligible handler in registration order until one
    returns ``True``. After a handler accepts a message it stays silent in
    that conversation for its cooldown.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._registrations: list[HandlerRegistration] = []
        self._clock = clock

    def register(
        self,
        handler: MessageHandler,
        *,
        cooldown: float = 0.0,
        scope: ResponseScope | str = ResponseScope.ANY,
    ) -> None:
        if cooldown < 0:
            raise ValueError(f"Cooldown for handler '{handler.name}' must not be negative")
        if any(r.handler.name == handler.name for r in self._registrations):
            raise ValueError(f"Handler '{handler.name}' is already registered")
        self._registrations.append(
            HandlerRegistration(handler=handler, cooldown=cooldown, scope=ResponseScope(scope))
        )
        logger.debug("Registered handler %s (cooldown=%ss scope=%s)", handler.name, cooldown, scope)

    @property
    def handlers(self) -> list[MessageHandler]:
        return [r.handler for r in self._registrations]

    async def try_handle(self, message: IncomingMessage, reply: ReplyFn) -> bool:
        for reg in self._registrations:
            if not reg.scope.allows(message):
                continue
            if not reg.cooldown:
                if await reg.handler.try_handle(message, reply):
                    return True
                continue
            if reg.cooling_down(message.channel, self._clock()):
                logger.debug(
                    "Handler %s cooling down in %s; ignoring %r",
                    reg.handler.name, message.channel, message.text[:40],
                )
                continue
            # Held while the handler runs so overlapping messages see the cooldown.
            reg.in_flight.add(message.channel)
            try:
                handled = await reg.handler.try_handle(message, reply)
            finally:
                reg.in_flight.discard(message.channel)
            if handled:
                reg.stamp(message.channel, self._clock())
                return True
        return False


class HelpHandler:
    """Answers ``<marker>help`` with the list of trigger words."""

    name = "help"

    def __init__(self, trigger_words: list[str], marker: str = "!", bot_name: str = "CowSayBot") -> None:
        self._words = list(trigger_words)
        self._marker = marker
        self._bot_name = bot_name

    async def try_handle(self, message: IncomingMessage, reply: ReplyFn) -> bool:
        if message.text.strip() != f"{self._marker}help":
            return False
        lines = [f"{self._bot_name} commands", ""]
        lines += [f"  {self._marker}{word} <text>" for word in self._words]
        lines.append(f"  {self._marker}help")
        await reply("\n".join(lines))
        return True
