"""Bot server -- app factory, protocol client lifecycle and entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from aiohttp import web
from aiohttp.abc import AbstractAccessLogger
from botbuilder.core import BotFrameworkAdapter, BotFrameworkAdapterSettings, TurnContext

from .. import __version__
from ..config.settings import Settings, cfg
from ..config.validation import ConfigError, validate_startup
from ..messaging.bot import Bot
from ..messaging.commands import CommandDispatcher, HelpHandler
from ..messaging.matcher import CommandMatcher
from ..messaging.render_handler import RenderCommandHandler
from ..services.renderer import SubprocessRenderer
from .bot_endpoint import BotEndpoint
from .shutdown import ShutdownCoordinator, ShutdownSignal

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})

LOG_FORMAT = "%(asctime)s  %(name)s  %(levelname)s  %(message)s"


# ---------------------------------------------------------------------------
# Access logger
# ---------------------------------------------------------------------------


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes health-probe log entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        level = logging.DEBUG if request.path in _QUIET_PATHS else logging.INFO
        self.logger.log(
            level,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


# ---------------------------------------------------------------------------
# Bot Framework adapter
# ---------------------------------------------------------------------------


def create_adapter(settings: Settings = cfg) -> BotFrameworkAdapter:
    adapter_settings = BotFrameworkAdapterSettings(
        app_id=settings.bot_app_id or None,
        app_password=settings.bot_app_password or None,
        channel_auth_tenant=settings.bot_app_tenant_id or None,
    )
    adapter = BotFrameworkAdapter(adapter_settings)

    async def on_error(context: TurnContext, error: Exception) -> None:
        # Nothing is sent back: the channel only ever sees rendered art.
        logger.error(
            "Bot turn error in %s: %s",
            context.activity.channel_id if context.activity else "?", error,
            exc_info=error,
        )

    adapter.on_turn_error = on_error
    return adapter


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_dispatcher(renderer: SubprocessRenderer, settings: Settings = cfg) -> CommandDispatcher:
    """Register the bot's handler collection."""
    matcher = CommandMatcher(marker=settings.command_marker)
    dispatcher = CommandDispatcher()
    dispatcher.register(
        HelpHandler(matcher.trigger_words, marker=settings.command_marker, bot_name=settings.bot_name),
        scope=settings.response_scope,
    )
    dispatcher.register(
        RenderCommandHandler(renderer, matcher),
        cooldown=settings.handler_cooldown,
        scope=settings.response_scope,
    )
    return dispatcher


def create_app(dispatcher: CommandDispatcher, adapter: BotFrameworkAdapter | None = None) -> web.Application:
    app = web.Application()
    endpoint = BotEndpoint(adapter or create_adapter(), Bot(dispatcher))
    endpoint.register(app.router)
    app.router.add_get("/health", _health)
    return app


async def _health(_req: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "version": __version__})


# ---------------------------------------------------------------------------
# Protocol client lifecycle
# ---------------------------------------------------------------------------


class BotServer:
    """Starts and stops the aiohttp site that receives Bot Framework traffic."""

    def __init__(self, app: web.Application, host: str, port: int) -> None:
        self._app = app
        self._host = host
        self._port = port
        self._runner: web.AppRunner | None = None

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        runner = web.AppRunner(self._app, access_log_class=QuietAccessLogger)
        await runner.setup()
        try:
            site = web.TCPSite(runner, self._host, self._port)
            await site.start()
        except BaseException:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info("Listening for Bot Framework activities on %s:%d", self._host, self._port)

    async def stop(self) -> None:
        if self._runner is None:
            return
        logger.info("Stopping bot server ...")
        runner, self._runner = self._runner, None
        await runner.cleanup()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def run(settings: Settings = cfg) -> int:
    """Validate, serve until SIGINT/SIGTERM, tear down. Returns the exit code."""
    try:
        program = validate_startup(settings)
    except ConfigError as exc:
        logger.error("%s. Aborting.", exc)
        return 1

    renderer = SubprocessRenderer(program, timeout=settings.render_timeout)
    try:
        dispatcher = build_dispatcher(renderer, settings)
    except ValueError as exc:
        logger.error("Invalid handler configuration: %s. Aborting.", exc)
        return 1

    shutdown = ShutdownSignal()
    coordinator = ShutdownCoordinator(shutdown)
    coordinator_task = asyncio.create_task(coordinator.run(), name="shutdown-coordinator")
    server = BotServer(create_app(dispatcher), settings.bot_host, settings.bot_port)

    try:
        try:
            await server.start()
        except OSError as exc:
            logger.error("Could not start bot server on %s:%d: %s", settings.bot_host, settings.bot_port, exc)
            coordinator_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await coordinator_task
            return 1

        reason = await shutdown.wait()
        logger.info("Shutdown requested (%s)", reason)
        await server.stop()
        await coordinator_task
        return 0
    finally:
        await server.stop()
        coordinator.close()


def main() -> None:
    logging.basicConfig(level=getattr(logging, cfg.log_level, logging.INFO), format=LOG_FORMAT)
    logger.info("Starting %s %s ...", cfg.bot_name, __version__)
    try:
        code = asyncio.run(run())
    except KeyboardInterrupt:
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
