"""Log formatting and filtering for the build tool's console output."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass

from .util import pad_left_to

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

ERR_RED = 196
WARN_YELLOW = 214
INFO_GREEN = 77
DBG_BLUE = 26
TRACE_VIOLET = 98
GRAY = 241

_OWN_TARGET = "leptos_build"
_WORD_WIDTH = 12


def paint(color: int, text: str) -> str:
    """Wrap ``text`` in the escape codes for a 256-colour foreground."""
    return f"\x1b[38;5;{color}m{text}\x1b[0m"


class LogTarget(enum.Enum):
    """Third-party log sources that can be switched on."""

    WASM = "wasm"
    SERVER = "server"

    @property
    def flag(self) -> int:
        return 0b0000_0001 if self is LogTarget.WASM else 0b0000_0010


@dataclass(frozen=True)
class LogFlag:
    """The set of third-party log sources selected by the user."""

    bits: int = 0

    @classmethod
    def from_logs(cls, logs: Iterable[LogTarget]) -> LogFlag:
        bits = 0
        for log in logs:
            bits |= log.flag
        return cls(bits)

    def is_set(self, log: LogTarget) -> bool:
        return bool(log.flag & self.bits)

    def matches(self, target: str) -> bool:
        """True if a record from logger ``target`` is selected for output."""
        return self._do_server_log(target) or self._do_wasm_log(target)

    def _do_server_log(self, target: str) -> bool:
        return self.is_set(LogTarget.SERVER) and target.startswith(("hyper", "axum"))

    def _do_wasm_log(self, target: str) -> bool:
        return self.is_set(LogTarget.WASM) and target.startswith(("wasm", "walrus"))


def level_color(level: int) -> int:
    """The colour used for a logging level."""
    if level >= logging.ERROR:
        return ERR_RED
    if level >= logging.WARNING:
        return WARN_YELLOW
    if level >= logging.INFO:
        return INFO_GREEN
    if level >= logging.DEBUG:
        return DBG_BLUE
    return TRACE_VIOLET


def split_word(message: str) -> tuple[str, str]:
    """Split off the first word; with no space the word is empty."""
    word, sep, rest = message.partition(" ")
    if not sep:
        return "", message
    return word, rest


def dependency(target: str) -> str | None:
    """The top-level name of a foreign logger, or None for our own loggers."""
    if target.startswith(_OWN_TARGET):
        return None
    head, sep, _ = target.partition(".")
    return head if sep else None


class LeptosFormatter(logging.Formatter):
    """Prints the first word (or the dependency) right-aligned and coloured."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        color = level_color(record.levelno)
        dep = dependency(record.name)
        if dep is not None:
            line = f"{paint(color, pad_left_to(f'[{dep}]', _WORD_WIDTH))} {message}"
        else:
            word, rest = split_word(message)
            line = f"{paint(color, pad_left_to(word, _WORD_WIDTH))} {rest}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class TargetFilter(logging.Filter):
    """Passes errors, our own records and the selected third-party records."""

    def __init__(self, flag: LogFlag | None = None) -> None:
        super().__init__()
        self.flag = flag

    def filter(self, record: logging.LogRecord) -> bool:
        flag = self.flag if self.flag is not None else _active_flag
        target = record.name
        return (
            record.levelno >= logging.ERROR
            or target.startswith(_OWN_TARGET)
            or (flag is not None and flag.matches(target))
        )


_active_flag: LogFlag | None = None
_setup_lock = threading.Lock()


def setup(verbose: int, logs: Iterable[LogTarget]) -> LogFlag:
    """Install the console handler once; later calls return the first selection."""
    global _active_flag
    with _setup_lock:
        if _active_flag is None:
            if verbose == 0:
                level = logging.INFO
            elif verbose == 1:
                level = logging.DEBUG
            else:
                level = TRACE
            flag = LogFlag.from_logs(logs)
            handler = logging.StreamHandler()
            handler.addFilter(TargetFilter(flag))
            handler.setFormatter(LeptosFormatter())
            root = logging.getLogger()
            root.setLevel(level)
            root.addHandler(handler)
            _active_flag = flag
        return _active_flag