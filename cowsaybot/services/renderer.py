"""Subprocess renderer -- pipes a payload through the external ``cowsay`` binary.

One call spawns exactly one process. The write, read and exit-wait all run
under a single deadline that starts when the process is spawned; whatever
happens, the renderer and anything it forked are killed and the child is
reaped before ``render`` returns, so no pipe or zombie outlives the call.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..config.settings import RENDER_TIMEOUT
from ..messaging.variants import TriggerCommand, resolve_flags
from ..util.result import Result

logger = logging.getLogger(__name__)

# Upper bound on reaping after SIGKILL, on top of the render deadline.
REAP_GRACE = 2.0

# The renderer runs in its own session so one killpg reaches anything it forked.
_OWN_GROUP = os.name == "posix"


class RenderState(str, Enum):
    IDLE = "idle"
    SPAWNED = "spawned"
    INPUT_WRITTEN = "input_written"
    WAITING_FOR_EXIT = "waiting_for_exit"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    WRITE_FAILED = "write_failed"
    LAUNCH_FAILED = "launch_failed"


@dataclass(frozen=True)
class RenderRequest:
    flags: tuple[str, ...]
    payload: str
    timeout: float = RENDER_TIMEOUT


class SubprocessRenderer:
    """Runs the renderer binary at *program* once per request."""

    def __init__(self, program: str | Path, timeout: float = RENDER_TIMEOUT) -> None:
        self.program = Path(program)
        self.timeout = timeout

    def is_available(self) -> bool:
        return self.program.is_file() and os.access(self.program, os.X_OK)

    async def render_text(self, command: TriggerCommand | str, payload: str) -> Result:
        request = RenderRequest(flags=resolve_flags(command), payload=payload, timeout=self.timeout)
        return await self.render(request)

    async def render(self, request: RenderRequest) -> Result:
        """Render *request*; never raises for renderer-side failures.

        Returns ``Result.ok(value=<stdout text>)`` when the process exits 0
        within the deadline, otherwise ``Result.fail(<reason>, value=<state>)``.
        """
        argv = [str(self.program), *request.flags]
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                start_new_session=_OWN_GROUP,
            )
        except OSError as exc:
            logger.warning("[render] launch failed for %s: %s", argv, exc)
            return Result.fail(f"Could not launch {self.program}: {exc}", value=RenderState.LAUNCH_FAILED)

        progress = [RenderState.SPAWNED]
        logger.debug("[render] spawned pid=%s argv=%s", proc.pid, argv)
        try:
            try:
                output = await asyncio.wait_for(
                    self._exchange(proc, request.payload.encode("utf-8"), progress),
                    timeout=request.timeout,
                )
                progress[0] = RenderState.COMPLETED
            except asyncio.TimeoutError:
                stage = progress[0].value
                progress[0] = RenderState.TIMED_OUT
                return Result.fail(
                    f"Renderer timed out after {request.timeout:g}s while {stage} (pid {proc.pid})",
                    value=RenderState.TIMED_OUT,
                )
            except (BrokenPipeError, ConnectionResetError) as exc:
                progress[0] = RenderState.WRITE_FAILED
                return Result.fail(f"Could not write payload to renderer: {exc}", value=RenderState.WRITE_FAILED)
        finally:
            await self._cleanup(proc, progress[0])

        return self._assemble(proc, output)

    @staticmethod
    async def _exchange(
        proc: asyncio.subprocess.Process,
        data: bytes,
        progress: list[RenderState],
    ) -> bytes:
        assert proc.stdin is not None and proc.stdout is not None
        proc.stdin.write(data)
        await proc.stdin.drain()
        proc.stdin.close()
        progress[0] = RenderState.INPUT_WRITTEN
        output = await proc.stdout.read()
        progress[0] = RenderState.WAITING_FOR_EXIT
        await proc.wait()
        return output

    @staticmethod
    async def _cleanup(proc: asyncio.subprocess.Process, state: RenderState) -> None:
        if state is not RenderState.COMPLETED:
            logger.info("[render] killing pid=%s and its group (state=%s)", proc.pid, state.value)
            _kill_group(proc)
        if proc.stdin is not None and not proc.stdin.is_closing():
            proc.stdin.close()
        try:
            # Shielded so a cancelled caller still reaps the child.
            await asyncio.wait_for(asyncio.shield(proc.wait()), timeout=REAP_GRACE)
        except asyncio.TimeoutError:
            logger.warning(
                "[render] pid=%s not reaped %gs after SIGKILL; giving up on it",
                proc.pid, REAP_GRACE,
            )

    def _assemble(self, proc: asyncio.subprocess.Process, output: bytes) -> Result:
        code = proc.returncode
        if code is not None and code < 0:
            try:
                name = signal.Signals(-code).name
            except ValueError:
                name = str(-code)
            return Result.fail(f"Renderer was killed by {name}", value=RenderState.COMPLETED)
        if code != 0:
            return Result.fail(f"Renderer exited with status {code}", value=RenderState.COMPLETED)
        text = output.decode("utf-8", errors="replace")
        return Result.ok(f"Rendered {len(output)} bytes", value=text)


def _kill_group(proc: asyncio.subprocess.Process) -> None:
    """SIGKILL the renderer and every process left in its group.

    A wrapper script that does not ``exec`` keeps its own children on the
    stdout pipe; killing only the direct child would leave ``wait()``
    blocked until they exit.
    """
    if _OWN_GROUP:
        with contextlib.suppress(ProcessLookupError, PermissionError):
            os.killpg(proc.pid, signal.SIGKILL)
    if proc.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
