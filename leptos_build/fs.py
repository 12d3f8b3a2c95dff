"""Asynchronous file-system operations whose errors name the paths involved."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections import deque
from pathlib import Path

from .errors import context
from .paths import rebase

log = logging.getLogger(__name__)

PathLike = str | os.PathLike


def _q(path: PathLike) -> str:
    return f'"{os.fspath(path)}"'


async def rm_dir_content(directory: PathLike) -> None:
    """Remove everything inside ``directory``, keeping the directory itself."""
    with context(f"Could not remove contents of {_q(directory)}"):
        await _try_rm_dir_content(Path(directory))


async def _try_rm_dir_content(directory: Path) -> None:
    if not directory.exists():
        log.debug("Leptos not cleaning %s because it does not exist", _q(directory))
        return
    for entry in await read_dir(directory):
        if entry.is_dir() and not entry.is_symlink():
            await remove_dir_all(entry)
        else:
            await remove_file(entry)


async def write(path: PathLike, contents: bytes | str) -> None:
    """Write bytes (or UTF-8 text) to ``path``."""
    data = contents.encode("utf-8") if isinstance(contents, str) else bytes(contents)
    with context(f"Could not write to {_q(path)}"):
        await asyncio.to_thread(Path(path).write_bytes, data)


async def read(path: PathLike) -> bytes:
    """Read the bytes of ``path``."""
    with context(f"Could not read {_q(path)}"):
        return await asyncio.to_thread(Path(path).read_bytes)


async def create_dir(path: PathLike) -> None:
    """Create one directory; its parent must exist and it must not."""
    log.debug("FS create_dir %s", _q(path))
    with context(f"Could not create dir {_q(path)}"):
        await asyncio.to_thread(os.mkdir, path)


async def create_dir_all(path: PathLike) -> None:
    """Create a directory and any missing parents."""
    log.debug("FS create_dir_all %s", _q(path))
    with context(f"Could not create {_q(path)}"):
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)


async def read_to_string(path: PathLike) -> str:
    """Read ``path`` as UTF-8 text."""
    with context(f"Could not read to string {_q(path)}"):
        data = await asyncio.to_thread(Path(path).read_bytes)
        return data.decode("utf-8")


def _copy_file(src: PathLike, dst: PathLike) -> int:
    shutil.copyfile(src, dst)
    shutil.copymode(src, dst)
    return os.stat(dst).st_size


async def copy(src: PathLike, dst: PathLike) -> int:
    """Copy a file with its permissions; return the number of bytes copied."""
    with context(f"copy {_q(src)} to {_q(dst)}"):
        return await asyncio.to_thread(_copy_file, src, dst)


async def read_dir(path: PathLike) -> list[Path]:
    """Return the entries of a directory."""
    with context(f"Could not read dir {_q(path)}"):
        return await asyncio.to_thread(lambda: list(Path(path).iterdir()))


async def rename(src: PathLike, dst: PathLike) -> None:
    """Rename ``src`` to ``dst``."""
    with context(f"Could not rename from {_q(src)} to {_q(dst)}"):
        await asyncio.to_thread(os.replace, src, dst)


async def remove_file(path: PathLike) -> None:
    """Remove a file."""
    with context(f"Could not remove file {_q(path)}"):
        await asyncio.to_thread(os.remove, path)


async def remove_dir(path: PathLike) -> None:
    """Remove an empty directory."""
    with context(f"Could not remove dir {_q(path)}"):
        await asyncio.to_thread(os.rmdir, path)


async def remove_dir_all(path: PathLike) -> None:
    """Remove a directory and everything in it."""
    with context(f"Could not remove dir {_q(path)}"):
        await asyncio.to_thread(shutil.rmtree, path)


async def copy_dir_all(src: PathLike, dst: PathLike) -> None:
    """Copy a directory tree into ``dst``."""
    with context(f"Copy dir recursively from {_q(src)} to {_q(dst)}"):
        await _cp_dir_all(Path(src), Path(dst))


async def _cp_dir_all(src: Path, dst: Path) -> None:
    await create_dir_all(dst)
    pending = deque([src])
    while pending:
        current = pending.popleft()
        for entry in await read_dir(current):
            target = rebase(entry, src, dst)
            if entry.is_dir() and not entry.is_symlink():
                await create_dir(target)
                pending.append(entry)
            else:
                await copy(entry, target)