"""Waiting on child processes that can be interrupted, and on server ports."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import ContextError, context
from .logger import TRACE

log = logging.getLogger(__name__)

_SOCKET_ATTEMPTS = 20
_SOCKET_DELAY = 0.5


@dataclass(frozen=True)
class ProcessOutput:
    """Exit code and captured output of a finished process."""

    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    def has_stderr(self) -> bool:
        """True if more than a single byte was written to stderr."""
        return len(self.stderr) > 1

    def has_stdout(self) -> bool:
        """True if more than a single byte was written to stdout."""
        return len(self.stdout) > 1


class CommandOutcome(enum.Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class CommandResult:
    """How a command ended, with its output when that was captured."""

    outcome: CommandOutcome
    output: ProcessOutput | None = None


async def _race(main: Awaitable[Any], interrupt: Awaitable[Any]) -> tuple[asyncio.Future, bool]:
    main_task = asyncio.ensure_future(main)
    interrupt_task = asyncio.ensure_future(interrupt)
    try:
        await asyncio.wait({main_task, interrupt_task}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        main_task.cancel()
        interrupt_task.cancel()
        raise
    if main_task.done():
        interrupt_task.cancel()
        if interrupt_task.done() and not interrupt_task.cancelled():
            interrupt_task.exception()
        return main_task, False
    if not interrupt_task.cancelled():
        interrupt_task.exception()
    main_task.cancel()
    await asyncio.wait({main_task})
    return main_task, True


def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()


async def wait_interruptible(
    name: str, process: asyncio.subprocess.Process, interrupt: Awaitable[Any]
) -> CommandResult:
    """Wait for ``process``, killing it if ``interrupt`` completes first."""
    task, interrupted = await _race(process.wait(), interrupt)
    if interrupted:
        with context("Could not kill process"):
            _kill(process)
            await process.wait()
        log.log(TRACE, "%s process interrupted", name)
        return CommandResult(CommandOutcome.INTERRUPTED)
    try:
        code = task.result()
    except Exception as err:
        raise ContextError(f"Command failed due to: {err}") from err
    if code == 0:
        log.log(TRACE, "%s process finished with success", name)
        return CommandResult(CommandOutcome.SUCCESS)
    log.log(TRACE, "%s process finished with code %s", name, code)
    return CommandResult(CommandOutcome.FAILURE)


async def wait_piped_interruptible(
    name: str,
    args: Sequence[str],
    interrupt: Awaitable[Any],
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run ``args`` with captured output; kill it if ``interrupt`` completes first."""
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env) if env is not None else None,
    )
    task, interrupted = await _race(process.communicate(), interrupt)
    if interrupted:
        _kill(process)
        await process.wait()
        log.log(TRACE, "%s process interrupted", name)
        return CommandResult(CommandOutcome.INTERRUPTED)
    try:
        stdout, stderr = task.result()
    except Exception as err:
        raise ContextError(f"Command failed due to: {err}") from err
    output = ProcessOutput(process.returncode or 0, stdout or b"", stderr or b"")
    if output.success:
        log.log(TRACE, "%s process finished with success", name)
        return CommandResult(CommandOutcome.SUCCESS, output)
    log.log(TRACE, "%s process finished with code %s", name, output.returncode)
    return CommandResult(CommandOutcome.FAILURE, output)


async def wait_for_socket(name: str, addr: tuple[str, int]) -> bool:
    """Poll a TCP address until it accepts a connection; False after ten seconds."""
    host, port = addr
    for _ in range(_SOCKET_ATTEMPTS):
        try:
            _, writer = await asyncio.open_connection(host, port)
        except OSError:
            await asyncio.sleep(_SOCKET_DELAY)
            continue
        writer.close()
        with contextlib.suppress(OSError):
            await writer.wait_closed()
        log.debug("%s server port %s:%s open", name, host, port)
        return True
    log.warning("%s timed out waiting for port %s:%s", name, host, port)
    return False