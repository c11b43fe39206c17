"""Shutdown coordination -- turns SIGINT/SIGTERM into one orderly stop.

The main flow starts the protocol client and then awaits
:meth:`ShutdownSignal.wait` instead of anything protocol specific. A
dedicated task, :meth:`ShutdownCoordinator.run`, installs the signal
handlers and fires the signal when the first of them arrives.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    """Single-fire event: set once, observed any number of times, never reset."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    def fire(self, reason: str) -> bool:
        """Fire the signal. Returns ``False`` if it had already fired."""
        if self._event.is_set():
            return False
        self.reason = reason
        self._event.set()
        return True

    async def wait(self) -> str | None:
        await self._event.wait()
        return self.reason


class ShutdownCoordinator:
    """Waits for an OS termination request and fires *shutdown* exactly once."""

    def __init__(
        self,
        shutdown: ShutdownSignal,
        signals: tuple[signal.Signals, ...] = SHUTDOWN_SIGNALS,
    ) -> None:
        self.shutdown = shutdown
        self._signals = signals
        self._loop: asyncio.AbstractEventLoop | None = None
        self._arrived: asyncio.Future[signal.Signals] | None = None
        self._installed: list[signal.Signals] = []
        self._previous: dict[signal.Signals, Any] = {}

    async def run(self) -> str | None:
        """Install handlers, block until a signal arrives, fire, return its name."""
        self._loop = asyncio.get_running_loop()
        self._arrived = self._loop.create_future()
        self._install()
        try:
            sig = await self._arrived
        except asyncio.CancelledError:
            logger.debug("[shutdown] coordinator cancelled before any signal")
            raise
        if self.shutdown.fire(sig.name):
            logger.info("[shutdown] Received %s, shutting down ...", sig.name)
        return sig.name

    def close(self) -> None:
        """Remove the handlers installed by :meth:`run`."""
        for sig in self._installed:
            if sig in self._previous:
                signal.signal(sig, self._previous[sig])
            elif self._loop is not None:
                self._loop.remove_signal_handler(sig)
        self._installed.clear()
        self._previous.clear()

    # -- internals ---------------------------------------------------------

    def _install(self) -> None:
        assert self._loop is not None
        for sig in self._signals:
            handler = self._make_handler(sig)
            try:
                self._loop.add_signal_handler(sig, handler)
            except (NotImplementedError, RuntimeError):
                # Event loops without signal support (e.g. Windows proactor).
                loop = self._loop
                self._previous[sig] = signal.signal(
                    sig, lambda _signum, _frame, h=handler: loop.call_soon_threadsafe(h)
                )
            self._installed.append(sig)

    def _make_handler(self, sig: signal.Signals) -> Callable[[], None]:
        def _on_signal() -> None:
            self._deliver(sig)

        return _on_signal

    def _deliver(self, sig: signal.Signals) -> None:
        if self._arrived is not None and not self._arrived.done():
            self._arrived.set_result(sig)
        else:
            logger.info("[shutdown] %s received while already shutting down; ignored", sig.name)
