"""Interactive console -- try trigger commands without a Bot Framework channel."""

from __future__ import annotations

import asyncio
import logging

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from rich.console import Console
from rich.text import Text

from .config.settings import cfg
from .config.validation import ConfigError, validate_startup
from .messaging.commands import CommandDispatcher, IncomingMessage
from .server.app import LOG_FORMAT, build_dispatcher
from .services.renderer import SubprocessRenderer

console = Console()

_QUIT = {"/quit", "/exit"}


async def handle_line(dispatcher: CommandDispatcher, text: str) -> bool:
    """Feed one console line through *dispatcher*; returns whether it was handled."""
    message = IncomingMessage(channel="console", sender="console", text=text, is_group=False)

    async def reply(out: str) -> None:
        console.print(Text(out))

    handled = await dispatcher.try_handle(message, reply)
    if not handled:
        console.print("[dim]-- not a command --[/dim]")
    return handled


async def _main() -> int:
    try:
        program = validate_startup(cfg)
    except ConfigError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        return 1

    dispatcher = build_dispatcher(SubprocessRenderer(program, timeout=cfg.render_timeout), cfg)
    console.print(
        f"[bold green]{cfg.bot_name}[/bold green] console\n"
        f"Try [bold]{cfg.command_marker}help[/bold]; [bold]/quit[/bold] to exit.\n"
    )
    prompt_session: PromptSession[str] = PromptSession()

    while True:
        try:
            user_input = await asyncio.to_thread(prompt_session.prompt, HTML("<b>you &gt;</b> "))
        except (EOFError, KeyboardInterrupt):
            break

        text = user_input.strip()
        if not text:
            continue
        if text.lower() in _QUIT:
            break
        await handle_line(dispatcher, text)

    console.print("[dim]Goodbye.[/dim]")
    return 0


def main() -> None:
    logging.basicConfig(level=getattr(logging, cfg.log_level, logging.WARNING), format=LOG_FORMAT)
    try:
        code = asyncio.run(_main())
    except KeyboardInterrupt:
        code = 0
    raise SystemExit(code)


if __name__ == "__main__":
    main()
