"""Root conftest: ``--run-slow`` opts in to the slow renderer checks."""

from __future__ import annotations

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help=(
            "Also run tests marked @pytest.mark.slow: the renderer descriptor-leak "
            "check, which spawns a few dozen fake cowsay processes."
        ),
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="spawns many renderer processes; pass --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
