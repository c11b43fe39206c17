"""Application settings -- reads from environment and ``.env`` file.

All configuration is consolidated here. Environment variables win over
the ``.env`` file so container deployments can override a checked-in file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from ..util.env_file import EnvFile

DEFAULT_RENDERER = "/usr/bin/cowsay"
DEFAULT_MARKER = "!"
DEFAULT_COOLDOWN = 5.0

# Hard ceiling for one renderer invocation, measured from process start.
RENDER_TIMEOUT = 15.0

RESPONSE_SCOPES: frozenset[str] = frozenset({"any", "channel", "private"})


class Settings:
    """Runtime configuration sourced from environment variables and ``.env``."""

    def __init__(self) -> None:
        self.reload()

    def reload(self) -> None:
        """Re-read the ``.env`` file and environment variables."""
        self.env = EnvFile(os.getenv("DOTENV_PATH") or ".env")
        e = self._read
        self.invalid: dict[str, str] = {}

        self.bot_app_id: str = e("BOT_APP_ID")
        self.bot_app_password: str = e("BOT_APP_PASSWORD")
        self.bot_app_tenant_id: str = e("BOT_APP_TENANT_ID")
        self.bot_host: str = e("BOT_HOST") or "0.0.0.0"
        self.bot_port: int = self._number("BOT_PORT", int, 3978)
        self.bot_name: str = e("BOT_NAME") or "CowSayBot"

        self.renderer_program: Path = Path(e("COWSAY_PROGRAM") or DEFAULT_RENDERER)
        self.command_marker: str = e("COMMAND_MARKER") or DEFAULT_MARKER
        self.handler_cooldown: float = self._number("HANDLER_COOLDOWN", float, DEFAULT_COOLDOWN)
        self.response_scope: str = (e("RESPONSE_SCOPE") or "any").lower()

        self.log_level: str = (e("LOG_LEVEL") or "INFO").upper()

    @property
    def render_timeout(self) -> float:
        return RENDER_TIMEOUT

    @property
    def bot_configured(self) -> bool:
        return bool(self.bot_app_id and self.bot_app_password)

    # -- helpers -----------------------------------------------------------

    def _read(self, key: str) -> str:
        return os.getenv(key) or self.env.read(key)

    def _number(self, key: str, kind: type, default: float) -> Any:
        raw = self._read(key)
        if not raw:
            return kind(default)
        try:
            return kind(raw)
        except ValueError:
            self.invalid[key] = raw
            return kind(default)


# Module-level singleton
cfg = Settings()
