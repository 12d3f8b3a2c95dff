"""File-system changes seen by the watcher, with paths relative to the project."""

from __future__ import annotations

import enum
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .errors import ContextError
from .paths import unbase

PathLike = str | os.PathLike


class WatchedKind(enum.Enum):
    REMOVE = "remove"
    RENAME = "rename"
    WRITE = "write"
    CREATE = "create"
    RESCAN = "rescan"


@dataclass(frozen=True)
class Watched:
    """A change to a path; a rename also has the new path, a rescan has none."""

    kind: WatchedKind
    path: Path | None = None
    to: Path | None = None

    def __post_init__(self) -> None:
        if self.kind is WatchedKind.RESCAN:
            if self.path is not None or self.to is not None:
                raise ValueError("a rescan has no path")
            return
        if self.path is None:
            raise ValueError(f"a {self.kind.value} needs a path")
        object.__setattr__(self, "path", Path(self.path))
        if self.kind is WatchedKind.RENAME:
            if self.to is None:
                raise ValueError("a rename needs a target path")
            object.__setattr__(self, "to", Path(self.to))
        elif self.to is not None:
            raise ValueError(f"a {self.kind.value} has no target path")

    @classmethod
    def create(cls, path: PathLike) -> Watched:
        return cls(WatchedKind.CREATE, Path(path))

    @classmethod
    def remove(cls, path: PathLike) -> Watched:
        return cls(WatchedKind.REMOVE, Path(path))

    @classmethod
    def write(cls, path: PathLike) -> Watched:
        return cls(WatchedKind.WRITE, Path(path))

    @classmethod
    def rename(cls, src: PathLike, dst: PathLike) -> Watched:
        return cls(WatchedKind.RENAME, Path(src), Path(dst))

    @classmethod
    def rescan(cls) -> Watched:
        return cls(WatchedKind.RESCAN)

    def path_ext(self) -> str | None:
        """The extension of the (source) path without its dot."""
        if self.path is None:
            return None
        suffix = self.path.suffix
        return suffix[1:] if suffix else None

    def path_starts_with(self, path: PathLike) -> bool:
        if self.path is None:
            return False
        if self.path.is_relative_to(path):
            return True
        return self.to is not None and self.to.is_relative_to(path)

    def path_starts_with_any(self, paths: Iterable[PathLike]) -> bool:
        return any(self.path_starts_with(path) for path in paths)

    def __str__(self) -> str:
        if self.kind is WatchedKind.RESCAN:
            return "rescan"
        if self.kind is WatchedKind.RENAME:
            return f'rename "{self.path}" -> "{self.to}"'
        return f'{self.kind.value} "{self.path}"'


def convert_path(path: PathLike, working_dir: PathLike) -> Path:
    """``path`` relative to ``working_dir`` when it lies under it, else unchanged."""
    try:
        return unbase(path, working_dir)
    except ContextError:
        return Path(path)