"""Startup checks that must pass before the bot connects anywhere."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from .settings import RESPONSE_SCOPES, Settings

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Configuration is unusable; the process should exit with status 1."""


def resolve_program(program: str | Path) -> Path | None:
    """Return the executable path for *program*, or ``None`` if unusable.

    Bare names are looked up on ``PATH``.
    """
    p = Path(program)
    if p.parent == Path(".") and not p.is_file():
        found = shutil.which(str(program))
        return Path(found) if found else None
    if p.is_file() and os.access(p, os.X_OK):
        return p
    return None


def validate_startup(settings: Settings) -> Path:
    """Validate *settings* and return the resolved renderer path.

    Raises :class:`ConfigError` describing the first problem found.
    """
    if settings.invalid:
        bad = ", ".join(f"{k}={v!r}" for k, v in sorted(settings.invalid.items()))
        raise ConfigError(f"Invalid numeric setting(s): {bad}")

    program = resolve_program(settings.renderer_program)
    if program is None:
        raise ConfigError(
            f"Renderer not installed or not executable at {settings.renderer_program}"
        )

    marker = settings.command_marker
    if len(marker) != 1 or marker.isspace():
        raise ConfigError(f"COMMAND_MARKER must be a single non-space character, got {marker!r}")
    if settings.response_scope not in RESPONSE_SCOPES:
        raise ConfigError(
            f"RESPONSE_SCOPE must be one of {', '.join(sorted(RESPONSE_SCOPES))}, "
            f"got {settings.response_scope!r}"
        )
    if settings.handler_cooldown < 0:
        raise ConfigError(f"HANDLER_COOLDOWN must not be negative, got {settings.handler_cooldown}")
    if not 0 < settings.bot_port < 65536:
        raise ConfigError(f"BOT_PORT out of range: {settings.bot_port}")
    if not settings.bot_configured:
        logger.warning("Bot credentials not configured; /api/messages will reject activities")

    logger.info("Renderer: %s", program)
    return program
