"""Shared pytest fixtures for cowsaybot tests."""

from __future__ import annotations

import stat
from collections.abc import Callable
from pathlib import Path

import pytest

_ENV_KEYS = (
    "BOT_APP_ID",
    "BOT_APP_PASSWORD",
    "BOT_APP_TENANT_ID",
    "BOT_HOST",
    "BOT_PORT",
    "BOT_NAME",
    "COWSAY_PROGRAM",
    "COMMAND_MARKER",
    "HANDLER_COOLDOWN",
    "RESPONSE_SCOPE",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    dotenv = tmp_path / ".env"
    monkeypatch.setenv("DOTENV_PATH", str(dotenv))
    return dotenv


@pytest.fixture(autouse=True)
def _reload_settings(_isolate_env: Path):
    from cowsaybot.config.settings import cfg

    cfg.reload()
    yield
    cfg.reload()


@pytest.fixture()
def dotenv(_isolate_env: Path) -> Path:
    return _isolate_env


@pytest.fixture()
def make_renderer(tmp_path: Path) -> Callable[[str], Path]:
    """Write an executable ``/bin/sh`` script standing in for ``cowsay``."""
    counter = iter(range(1000))

    def _make(body: str) -> Path:
        path = tmp_path / f"fake-cowsay-{next(counter)}"
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture()
def echo_renderer(make_renderer: Callable[[str], Path]) -> Path:
    """Renderer that wraps stdin in ``< ... >`` and echoes its flags first when given."""
    return make_renderer(
        'if [ "$#" -gt 0 ]; then echo "flags: $*"; fi\n'
        'printf "< %s >\\n" "$(cat)"'
    )
