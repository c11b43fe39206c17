"""Recognise trigger commands in chat text and extract their payload."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass

from .variants import TriggerCommand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedCommand:
    command: TriggerCommand
    payload: str


def default_table() -> dict[str, TriggerCommand]:
    return {c.value: c for c in TriggerCommand}


class CommandMatcher:
    """Matches ``<marker><trigger><whitespace><payload>`` at the start of a line.

    The pattern is built once from *table*. Alternatives are tried longest
    first and must be followed by whitespace, so ``!cowsayx hi`` never
    matches ``cowsay`` and a shorter word cannot shadow a longer one.
    """

    def __init__(
        self,
        table: Mapping[str, TriggerCommand] | None = None,
        marker: str = "!",
    ) -> None:
        table = dict(table if table is not None else default_table())
        if len(marker) != 1 or marker.isspace():
            raise ValueError(f"Command marker must be a single non-space character, got {marker!r}")
        if not table:
            raise ValueError("At least one trigger word is required")
        for word in table:
            if not word or any(ch.isspace() for ch in word):
                raise ValueError(f"Invalid trigger word {word!r}")

        self.marker = marker
        self._table = table
        words = sorted(table, key=len, reverse=True)
        alternation = "|".join(re.escape(w) for w in words)
        self._pattern = re.compile(
            rf"{re.escape(marker)}(?P<cmd>{alternation})\s+(?P<payload>\S.*)",
            re.DOTALL,
        )

    @property
    def trigger_words(self) -> list[str]:
        return list(self._table)

    def match(self, text: str) -> ParsedCommand | None:
        m = self._pattern.match(text or "")
        if m is None:
            logger.debug("[match] no trigger in %r", (text or "")[:60])
            return None
        payload = m.group("payload").rstrip()
        return ParsedCommand(command=self._table[m.group("cmd")], payload=payload)
