"""Broadcast channels and the build's process-wide signals."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import json
import logging
import queue
import threading
import weakref
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .logger import TRACE

log = logging.getLogger(__name__)

T = TypeVar("T")


class SendError(Exception):
    """Raised when a value is sent on a channel nobody listens to."""


class Lagged(Exception):
    """Raised by a receiver that fell behind and lost values."""

    def __init__(self, skipped: int) -> None:
        super().__init__(f"channel lagged by {skipped}")
        self.skipped = skipped


def _wake(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)


class Receiver(Generic[T]):
    """One subscriber's view of a broadcast channel."""

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._skipped = 0
        self._lock = threading.Lock()
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future]] = []

    def _push(self, value: T) -> None:
        with self._lock:
            self._items.append(value)
            if len(self._items) > self._capacity:
                self._items.popleft()
                self._skipped += 1
            waiters, self._waiters = self._waiters, []
        for loop, future in waiters:
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(_wake, future)

    def _ready(self) -> bool:
        return bool(self._skipped or self._items)

    def _take(self) -> T:
        if self._skipped:
            skipped, self._skipped = self._skipped, 0
            raise Lagged(skipped)
        return self._items.popleft()

    def try_recv(self) -> T:
        """The next value; raises queue.Empty when none is waiting."""
        with self._lock:
            if self._ready():
                return self._take()
        raise queue.Empty

    async def recv(self) -> T:
        """Wait for the next value."""
        loop = asyncio.get_running_loop()
        while True:
            with self._lock:
                if self._ready():
                    return self._take()
                future = loop.create_future()
                self._waiters.append((loop, future))
            await future


class Broadcast(Generic[T]):
    """A channel delivering each value to every current subscriber."""

    def __init__(self, capacity: int = 16) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._receivers: weakref.WeakSet[Receiver[T]] = weakref.WeakSet()
        self._lock = threading.Lock()

    def subscribe(self) -> Receiver[T]:
        receiver: Receiver[T] = Receiver(self.capacity)
        with self._lock:
            self._receivers.add(receiver)
        return receiver

    def send(self, value: T) -> int:
        """Deliver ``value``; returns the number of receivers reached."""
        with self._lock:
            receivers = list(self._receivers)
        if not receivers:
            raise SendError("channel has no receivers")
        for receiver in receivers:
            receiver._push(value)
        return len(receivers)


class OutcomeKind(enum.Enum):
    SUCCESS = "success"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """How a build step ended; successful ones carry a value."""

    kind: OutcomeKind
    value: T | None = None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(OutcomeKind.SUCCESS, value)

    @classmethod
    def stopped(cls) -> Outcome[Any]:
        return cls(OutcomeKind.STOPPED)

    @classmethod
    def failed(cls) -> Outcome[Any]:
        return cls(OutcomeKind.FAILED)

    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


class ProductKind(enum.Enum):
    SERVER = "Server"
    FRONT = "Front"
    STYLE = "Style"
    ASSETS = "Assets"
    NONE = "None"


@dataclass(frozen=True)
class Product:
    """Something a build step produced; a style product names its file."""

    kind: ProductKind
    file: str = ""

    @classmethod
    def style(cls, file: str) -> Product:
        return cls(ProductKind.STYLE, file)

    def __str__(self) -> str:
        return self.file if self.kind is ProductKind.STYLE else self.kind.value


class ProductSet:
    """The distinct products of a build round."""

    def __init__(self, products: Iterable[Product] = ()) -> None:
        self._products = frozenset(products)

    @classmethod
    def empty(cls) -> ProductSet:
        return cls()

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[Outcome[Product]]) -> ProductSet:
        """Products of the successful outcomes, leaving out ``NONE``."""
        return cls(
            outcome.value
            for outcome in outcomes
            if outcome.is_success()
            and outcome.value is not None
            and outcome.value.kind is not ProductKind.NONE
        )

    def is_empty(self) -> bool:
        return not self._products

    def only_style(self) -> bool:
        return len(self._products) == 1 and any(
            p.kind is ProductKind.STYLE for p in self._products
        )

    def contains_any(self, products: Iterable[Product]) -> bool:
        return any(p in self._products for p in products)

    def __contains__(self, product: object) -> bool:
        return product in self._products

    def __iter__(self):
        return iter(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProductSet):
            return NotImplemented
        return self._products == other._products

    def __hash__(self) -> int:
        return hash(self._products)

    def __str__(self) -> str:
        return ", ".join(str(p) for p in self._products)

    def __repr__(self) -> str:
        return f"ProductSet({sorted(map(str, self._products))!r})"


class ServerRestart:
    """Asks the running server to restart."""

    def __init__(self) -> None:
        self._channel: Broadcast[None] = Broadcast(1)

    def subscribe(self) -> Receiver[None]:
        return self._channel.subscribe()

    def send(self) -> None:
        log.log(TRACE, "Server restart sent")
        try:
            self._channel.send(None)
        except SendError as err:
            log.error("Error could not send product changes due to %s", err)


class ReloadType(enum.Enum):
    FULL = "full"
    STYLE = "style"
    VIEW_PATCHES = "view_patches"


@dataclass(frozen=True)
class ReloadMessage:
    """A reload request for the browser; view patches carry their JSON."""

    kind: ReloadType
    data: str | None = None


class ReloadSignal:
    """Tells connected browsers to reload."""

    def __init__(self) -> None:
        self._channel: Broadcast[ReloadMessage] = Broadcast(1)

    def _send(self, message: ReloadMessage, label: str) -> None:
        try:
            self._channel.send(message)
        except SendError as err:
            log.error('Error could not send reload "%s" due to: %s', label, err)

    def send_full(self) -> None:
        self._send(ReloadMessage(ReloadType.FULL), "Full")

    def send_style(self) -> None:
        self._send(ReloadMessage(ReloadType.STYLE), "Style")

    def send_view_patches(self, patches: Any) -> None:
        try:
            data = json.dumps(patches)
        except (TypeError, ValueError) as err:
            log.error('Error could not send reload "View Patches" due to: %s', err)
            return
        self._send(ReloadMessage(ReloadType.VIEW_PATCHES, data), "View Patches")

    def subscribe(self) -> Receiver[ReloadMessage]:
        return self._channel.subscribe()


class Interrupt:
    """Shutdown requests and "something changed" notifications."""

    def __init__(self) -> None:
        self._any: Broadcast[None] = Broadcast(10)
        self._shutdown: Broadcast[None] = Broadcast(1)
        self._shutdown_requested = False

    def is_shutdown_requested(self) -> bool:
        return self._shutdown_requested

    def subscribe_any(self) -> Receiver[None]:
        return self._any.subscribe()

    def subscribe_shutdown(self) -> Receiver[None]:
        return self._shutdown.subscribe()

    def send_any(self) -> None:
        try:
            self._any.send(None)
        except SendError as err:
            log.error("Interrupt error could not send due to: %s", err)
        else:
            log.log(TRACE, "Interrupt send done")

    def request_shutdown(self) -> None:
        self._shutdown_requested = True
        with contextlib.suppress(SendError):
            self._shutdown.send(None)
        with contextlib.suppress(SendError):
            self._any.send(None)


SERVER_RESTART = ServerRestart()
RELOAD = ReloadSignal()
INTERRUPT = Interrupt()