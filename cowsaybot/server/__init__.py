"""Server module -- aiohttp application factory, lifecycle and shutdown coordination."""

from __future__ import annotations

from .app import BotServer, build_dispatcher, create_adapter, create_app, main, run

__all__ = ["BotServer", "build_dispatcher", "create_adapter", "create_app", "main", "run"]
