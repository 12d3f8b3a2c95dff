"""Pre-compression of static site files with gzip and brotli."""

from __future__ import annotations

import asyncio
import gzip
import logging
import os
import time
from pathlib import Path

import brotli

from .errors import context

log = logging.getLogger(__name__)


async def compress_static_files(path: str | os.PathLike) -> None:
    """Compress every file under ``path`` without blocking the event loop."""
    start = time.monotonic()
    await asyncio.to_thread(compress_dir_all, path)
    elapsed_ms = int((time.monotonic() - start) * 1000)
    log.info("Precompression of static files finished after %d ms", elapsed_ms)


def compress_dir_all(path: str | os.PathLike) -> None:
    """Write ``.gz`` and ``.br`` siblings for each file under ``path``."""
    path = Path(path)
    log.debug("FS compress_dir_all %s", path)
    with context(f'Could not read "{path}"'):
        entries = list(path.iterdir())
    for entry in entries:
        if entry.is_dir():
            compress_dir_all(entry)
            continue
        if entry.name.endswith((".gz", ".br")):
            continue
        data = entry.read_bytes()
        Path(f"{entry}.gz").write_bytes(gzip.compress(data))
        Path(f"{entry}.br").write_bytes(brotli.compress(data))