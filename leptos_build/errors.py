"""Errors that carry a context message and the place they were raised from."""

from __future__ import annotations

import inspect
from types import TracebackType


class ContextError(Exception):
    """An error with a context message, an optional source location and a cause."""

    def __init__(self, message: str = "", location: str | None = None) -> None:
        self.message = message
        self.location = location
        super().__init__(self._render())

    def _render(self) -> str:
        if self.location is None:
            return self.message
        if self.message:
            return f"{self.message} at `{self.location}`"
        return f"at `{self.location}`"

    def __str__(self) -> str:
        return self._render()


def _caller_location(depth: int) -> str | None:
    frame = inspect.currentframe()
    for _ in range(depth + 1):
        if frame is None:
            return None
        frame = frame.f_back
    if frame is None:
        return None
    return f"{frame.f_code.co_filename}:{frame.f_lineno}"


class _Context:
    """Re-raises any exception from its block as a ContextError."""

    def __init__(self, message: str, location: str | None) -> None:
        self._message = message
        self._location = location

    def __enter__(self) -> _Context:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        if exc is None or not isinstance(exc, Exception):
            return False
        raise ContextError(self._message, self._location) from exc


def context(message: str) -> _Context:
    """Wrap errors raised in the block with ``message`` and the caller's location."""
    return _Context(str(message), _caller_location(1))


def dot() -> _Context:
    """Wrap errors raised in the block with only the caller's location."""
    return _Context("", _caller_location(1))