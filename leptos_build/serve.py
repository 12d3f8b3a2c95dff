"""Running the built server binary and restarting it when it is rebuilt."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path

from . import fs
from .logger import GRAY, TRACE, paint
from .paths import append_str_to_filename, determine_pdb_filename
from .signals import (
    INTERRUPT,
    RELOAD,
    SERVER_RESTART,
    Interrupt,
    Lagged,
    ReloadSignal,
    ServerRestart,
)

log = logging.getLogger(__name__)

Envs = Mapping[str, str] | Iterable[tuple[str, str]]


class ServerProcess:
    """The running server binary, if any."""

    def __init__(self, binary: str | os.PathLike, envs: Envs = ()) -> None:
        self.binary = Path(binary)
        self.envs: dict[str, str] = dict(envs)
        self.process: asyncio.subprocess.Process | None = None

    async def _runnable_binary(self) -> Path:
        if sys.platform != "win32":
            return self.binary
        # A running binary cannot be overwritten here, so run a copy.
        new_bin = Path(append_str_to_filename(self.binary, "_leptos"))
        log.debug(
            "Copying server binary %s to %s", paint(GRAY, str(self.binary)), paint(GRAY, str(new_bin))
        )
        await fs.copy(self.binary, new_bin)
        pdb = determine_pdb_filename(self.binary)
        if pdb is not None:
            new_pdb = Path(append_str_to_filename(pdb, "_leptos"))
            log.debug(
                "Copying server binary debug info %s to %s",
                paint(GRAY, str(pdb)),
                paint(GRAY, str(new_pdb)),
            )
            await fs.copy(pdb, new_pdb)
        return new_bin

    async def start(self) -> None:
        """Start the binary if it exists; otherwise leave no process running."""
        if not self.binary.exists():
            log.debug("Serve no exe found %s", paint(GRAY, str(self.binary)))
            self.process = None
            return
        bin_path = await self._runnable_binary()
        log.debug("Serve running %s", paint(GRAY, str(bin_path)))
        self.process = await asyncio.create_subprocess_exec(
            str(bin_path), env={**os.environ, **self.envs}
        )
        log.info("Serving at http://%s", self.envs.get("LEPTOS_SITE_ADDR", ""))

    async def kill(self) -> None:
        """Kill the running process and wait for it to end."""
        process = self.process
        if process is None:
            return
        try:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
            await process.wait()
        except OSError as err:
            log.error("Serve error killing server process: %s", err)
        else:
            log.log(TRACE, "Serve stopped")
        self.process = None

    async def restart(self) -> None:
        await self.kill()
        await self.start()
        log.log(TRACE, "Serve restarted")

    async def wait(self) -> None:
        """Wait for the running process, if any, to exit."""
        if self.process is None:
            return
        try:
            await self.process.wait()
        except OSError as err:
            log.error("Serve error while waiting for server process to exit: %s", err)
        else:
            log.log(TRACE, "Serve process exited")


async def _start_new(binary: str | os.PathLike, envs: Envs) -> ServerProcess:
    server = ServerProcess(binary, envs)
    await server.start()
    return server


async def _settle(*tasks: asyncio.Future) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def spawn(
    binary: str | os.PathLike,
    envs: Envs,
    interrupt: Interrupt | None = None,
    restart: ServerRestart | None = None,
    reload: ReloadSignal | None = None,
) -> asyncio.Task:
    """Run the server, restarting it on request, until shutdown."""
    interrupt = interrupt if interrupt is not None else INTERRUPT
    restart = restart if restart is not None else SERVER_RESTART
    reload = reload if reload is not None else RELOAD
    shutdown = interrupt.subscribe_shutdown()
    changes = restart.subscribe()
    envs = dict(envs)

    async def run() -> None:
        server = await _start_new(binary, envs)
        shutdown_task = asyncio.ensure_future(shutdown.recv())
        change_task = asyncio.ensure_future(changes.recv())
        try:
            while True:
                done, _ = await asyncio.wait(
                    {shutdown_task, change_task}, return_when=asyncio.FIRST_COMPLETED
                )
                if shutdown_task in done:
                    await server.kill()
                    return
                try:
                    change_task.result()
                    requested = True
                except Lagged:
                    requested = False
                change_task = asyncio.ensure_future(changes.recv())
                if requested:
                    await server.restart()
                    reload.send_full()
        finally:
            await _settle(shutdown_task, change_task)

    return asyncio.create_task(run())


async def spawn_oneshot(
    binary: str | os.PathLike,
    envs: Envs,
    interrupt: Interrupt | None = None,
) -> asyncio.Task:
    """Run the server once, until it exits or shutdown is requested."""
    interrupt = interrupt if interrupt is not None else INTERRUPT
    shutdown = interrupt.subscribe_shutdown()
    envs = dict(envs)

    async def run() -> None:
        server = await _start_new(binary, envs)
        shutdown_task = asyncio.ensure_future(shutdown.recv())
        wait_task = asyncio.ensure_future(server.wait())
        try:
            done, _ = await asyncio.wait(
                {shutdown_task, wait_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if shutdown_task in done and wait_task not in done:
                await server.kill()
        finally:
            await _settle(shutdown_task, wait_task)

    return asyncio.create_task(run())