"""Trigger commands and the renderer flags each one selects."""

from __future__ import annotations

from enum import Enum
from typing import Any


class TriggerCommand(str, Enum):
    """Recognised trigger words. The value is the literal word typed in chat."""

    DEFAULT = "cowsay"
    TUX = "tuxsay"
    VADER = "vadersay"
    MOOSE = "moosesay"
    LION = "lionsay"


# Adding a variant means adding an enum member and, unless it is the
# renderer's baseline, a row here.
VARIANT_FLAGS: dict[TriggerCommand, tuple[str, ...]] = {
    TriggerCommand.DEFAULT: (),
    TriggerCommand.TUX: ("-f", "tux"),
    TriggerCommand.VADER: ("-f", "vader"),
    TriggerCommand.MOOSE: ("-f", "moose"),
    TriggerCommand.LION: ("-f", "moofasa"),
}


def resolve_flags(command: Any) -> tuple[str, ...]:
    """Return the renderer arguments for *command*.

    Accepts a :class:`TriggerCommand` or its trigger word. Anything not in
    the table resolves to no flags, i.e. the renderer's default art.
    """
    if not isinstance(command, TriggerCommand):
        try:
            command = TriggerCommand(command)
        except (ValueError, TypeError):
            return ()
    return VARIANT_FLAGS.get(command, ())


def trigger_words() -> list[str]:
    return [c.value for c in TriggerCommand]
