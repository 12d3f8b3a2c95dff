"""The live-reload websocket server that tells browsers what to reload."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import PurePath

from aiohttp import WSCloseCode, WSMsgType, web

from .logger import GRAY, TRACE, paint
from .process import wait_for_socket
from .signals import INTERRUPT, RELOAD, Interrupt, Lagged, ReloadSignal, ReloadType

log = logging.getLogger(__name__)

_CLOSED_TYPES = (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED, WSMsgType.ERROR)


def css_link(path: str | os.PathLike) -> str:
    """The site path of a stylesheet as a link, always using ``/``."""
    return "/".join(PurePath(path).parts)


@dataclass(frozen=True)
class BrowserMessage:
    """What the browser should reload: a stylesheet, a view patch or everything."""

    stylesheet: str | None = None
    patches: str | None = None
    full: bool = False

    @classmethod
    def css(cls, link: str) -> BrowserMessage:
        if not link:
            log.error("Reload internal error: sending css reload but no css file is set.")
        return cls(stylesheet=link)

    @classmethod
    def view(cls, data: str) -> BrowserMessage:
        return cls(patches=data)

    @classmethod
    def all(cls) -> BrowserMessage:
        return cls(full=True)

    def to_json(self) -> str:
        return json.dumps(
            {"css": self.stylesheet, "view": self.patches, "all": self.full},
            separators=(",", ":"),
        )

    def __str__(self) -> str:
        if self.stylesheet is not None:
            return f"reload {self.stylesheet}"
        return "reload all"


async def _port_open(host: str, port: int) -> bool:
    try:
        _, writer = await asyncio.open_connection(host, port)
    except OSError:
        return False
    writer.close()
    with contextlib.suppress(OSError):
        await writer.wait_closed()
    return True


async def _settle(*tasks: asyncio.Future) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class ReloadServer:
    """Serves ``/live_reload`` and forwards reload signals to connected browsers."""

    def __init__(
        self,
        reload_addr: tuple[str, int],
        site_addr: tuple[str, int],
        css_path: str | os.PathLike | None = None,
        reload: ReloadSignal | None = None,
        interrupt: Interrupt | None = None,
    ) -> None:
        self.reload_addr = reload_addr
        self.site_addr = site_addr
        self.css_link = css_link(css_path) if css_path is not None else ""
        self._reload = reload if reload is not None else RELOAD
        self._interrupt = interrupt if interrupt is not None else INTERRUPT
        self._sockets: set[web.WebSocketResponse] = set()
        self.started = asyncio.Event()

    async def run(self) -> bool:
        """Serve until shutdown; False if the server could not be started."""
        keepalive = self._reload.subscribe()
        shutdown = self._interrupt.subscribe_shutdown()
        host, port = self.reload_addr
        if await _port_open(host, port):
            log.error(
                "Reload TCP port %s:%s already in use. You can set the port in the server "
                "integration's RenderOptions reload_port",
                host,
                port,
            )
            self._interrupt.request_shutdown()
            return False

        app = web.Application()
        app.router.add_get("/live_reload", self._websocket_handler)
        runner = web.AppRunner(app)
        await runner.setup()
        try:
            await web.TCPSite(runner, host, port).start()
        except OSError as err:
            log.error("Reload %s", err)
            await runner.cleanup()
            return False

        log.debug("Reload server started %s", paint(GRAY, f"{host}:{port}"))
        self.started.set()
        try:
            try:
                await shutdown.recv()
            except Lagged:
                pass
        finally:
            await asyncio.gather(
                *(ws.close(code=WSCloseCode.GOING_AWAY) for ws in list(self._sockets)),
                return_exceptions=True,
            )
            await runner.cleanup()
            del keepalive
            log.debug("Reload server stopped")
        return True

    async def _websocket_handler(self, request: web.Request) -> web.WebSocketResponse:
        changes = self._reload.subscribe()
        interrupts = self._interrupt.subscribe_any()
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self._sockets.add(ws)
        log.log(TRACE, "Reload websocket connected")
        try:
            await self._serve_socket(ws, changes, interrupts)
        finally:
            self._sockets.discard(ws)
            if not ws.closed:
                await ws.close()
            log.log(TRACE, "Reload websocket closed")
        return ws

    async def _serve_socket(self, ws, changes, interrupts) -> None:
        change_task = asyncio.ensure_future(changes.recv())
        interrupt_task = asyncio.ensure_future(interrupts.recv())
        client_task = asyncio.ensure_future(ws.receive())
        try:
            while True:
                done, _ = await asyncio.wait(
                    {change_task, interrupt_task, client_task},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if client_task in done:
                    message = client_task.result()
                    if message.type in _CLOSED_TYPES:
                        return
                    client_task = asyncio.ensure_future(ws.receive())
                if interrupt_task in done:
                    with contextlib.suppress(Lagged):
                        interrupt_task.result()
                    if self._interrupt.is_shutdown_requested():
                        return
                    interrupt_task = asyncio.ensure_future(interrupts.recv())
                if change_task in done:
                    try:
                        change = change_task.result()
                    except Lagged as err:
                        log.debug("Reload recive error %s", err)
                    else:
                        if change.kind is ReloadType.FULL:
                            await self._send(ws, BrowserMessage.all())
                            return
                        if change.kind is ReloadType.STYLE:
                            await self._send(ws, BrowserMessage.css(self.css_link))
                        else:
                            await self._send(ws, BrowserMessage.view(change.data or ""))
                    change_task = asyncio.ensure_future(changes.recv())
        finally:
            await _settle(change_task, interrupt_task, client_task)

    async def _send(self, ws: web.WebSocketResponse, message: BrowserMessage) -> None:
        if not await wait_for_socket("Reload", self.site_addr):
            log.warning('Reload could not send "%s" to websocket', message)
        try:
            await ws.send_str(message.to_json())
        except Exception as err:
            log.debug("Reload could not send %s due to %s", message, err)
        else:
            log.debug('Reload sent "%s" to browser', message)